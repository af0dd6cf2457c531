"""shellrepo: upload and catalog synchronization for the ShellOS package repository.

Publishes versioned packages (metadata + binary artifact) and keeps a live
view of the published catalog:
  - Identity bootstrap (token or anonymous, fallback identity on failure)
  - Push-based catalog subscription with whole-snapshot replacement
  - Chunked artifact uploads with monotonic progress and one terminal result
  - Publish transactions: upload first, then one atomic metadata commit
"""

__version__ = "0.1.0"
__description__ = "Upload and catalog synchronization coordinator for ShellOS packages"

from shellrepo.core.coordinator import RepositoryCoordinator
from shellrepo.models.publish import PublishRequest

__all__ = ["RepositoryCoordinator", "PublishRequest", "__version__"]
