"""shellrepo data models: all Pydantic v2, frozen unless they are form buffers."""

from shellrepo.models.catalog import CatalogSnapshot, SubscriptionState
from shellrepo.models.identity import Identity, IdentitySource
from shellrepo.models.packages import PackageDraft, PackageRecord
from shellrepo.models.publish import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    PackageForm,
    PublishErrorKind,
    PublishOutcome,
    PublishRequest,
    PublishState,
    PublishTransition,
)
from shellrepo.models.uploads import (
    UploadFailed,
    UploadResult,
    UploadSession,
    UploadStatus,
    UploadSucceeded,
)

__all__ = [
    # identity
    "Identity",
    "IdentitySource",
    # packages
    "PackageDraft",
    "PackageRecord",
    # catalog
    "CatalogSnapshot",
    "SubscriptionState",
    # uploads
    "UploadStatus",
    "UploadSession",
    "UploadSucceeded",
    "UploadFailed",
    "UploadResult",
    # publish
    "PublishState",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "PublishErrorKind",
    "PublishRequest",
    "PackageForm",
    "PublishTransition",
    "PublishOutcome",
]
