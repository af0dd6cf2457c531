"""Error taxonomy for the upload and catalog coordinator.

No error in this package is retried automatically. Each class documents the
state the system is left in when it is raised or reported.
"""

from __future__ import annotations


class ShellRepoError(RuntimeError):
    """Base class for all coordinator errors."""


class AuthError(ShellRepoError):
    """Remote authentication failed.

    Non-fatal: the Identity Bootstrapper degrades to a locally generated
    fallback identity and the session continues unauthenticated.
    """


class SubscriptionError(ShellRepoError):
    """The catalog subscription failed or was closed.

    Terminal for that subscription instance. Not retried; the owner of the
    coordinator lifecycle decides whether to open a new one.
    """


class ValidationError(ShellRepoError):
    """A publish request was rejected before any I/O was issued."""


class TransactionInProgressError(ShellRepoError):
    """A publish request arrived while another transaction was in flight."""


class UploadError(ShellRepoError):
    """The artifact upload failed.

    The artifact is assumed absent or partial at its destination. The form
    is left intact and the user may resubmit with the same inputs.
    """


class MetadataCommitError(ShellRepoError):
    """The package record could not be written after a successful upload.

    The artifact is stored but no record references it (orphaned artifact).
    """


class CatalogStoreError(ShellRepoError):
    """A catalog store operation failed (store unreachable, query failure)."""


class StorageError(ShellRepoError):
    """A durable storage operation failed."""


class UploaderBusyError(ShellRepoError):
    """The uploader is not reentrant and an upload is already in flight."""
