"""Local collaborator implementations.

Modules
-------
local_auth
    ``LocalAuthProvider``: anonymous and token sign-in without a remote service.
sqlite_catalog
    ``SqliteCatalogStore``: append-only record store with push subscriptions.
local_storage
    ``LocalBlobStorage``: chunked filesystem uploads with progress events.
"""

from __future__ import annotations

from shellrepo.backends.local_auth import LocalAuthProvider
from shellrepo.backends.local_storage import LocalBlobStorage, LocalUploadTask
from shellrepo.backends.sqlite_catalog import SqliteCatalogStore
from shellrepo.config import RepoConfig
from shellrepo.core.coordinator import RepositoryCoordinator

__all__ = [
    "create_local_coordinator",
    "LocalAuthProvider",
    "LocalBlobStorage",
    "LocalUploadTask",
    "SqliteCatalogStore",
]


def create_local_coordinator(config: RepoConfig | None = None) -> RepositoryCoordinator:
    """Build a ``RepositoryCoordinator`` wired to the local collaborators."""
    config = config or RepoConfig()
    return RepositoryCoordinator(
        LocalAuthProvider(accepted_tokens=config.accepted_tokens),
        SqliteCatalogStore(config.catalog_db_path),
        LocalBlobStorage(
            config.storage_path,
            chunk_size=config.upload_chunk_size,
            download_base_url=config.download_base_url,
        ),
        config=config,
    )
