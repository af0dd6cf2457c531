"""Collaborator protocols for the coordinator core.

The coordinator depends only on these Protocols. ``shellrepo.backends``
provides local implementations; a hosted deployment supplies adapters for
its own auth provider, document store and object storage.

Callback-style collaborator APIs are kept at this boundary. The core wraps
each one in a single suspension point returning a typed result.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from shellrepo.models.identity import Identity

Unsubscribe = Callable[[], None]
IdentityCallback = Callable[[Identity | None], None]
SnapshotCallback = Callable[[list[dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]
ProgressCallback = Callable[[int, int], None]
CompleteCallback = Callable[[str], None]


@runtime_checkable
class AuthProvider(Protocol):
    """Remote auth collaborator.

    Sign-in methods raise ``AuthError`` on failure. Identity listeners receive
    an ``Identity`` on sign-in or ``None`` when the session is signed out.
    """

    async def sign_in_anonymous(self) -> Identity:
        ...

    async def sign_in_with_token(self, token: str) -> Identity:
        ...

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        ...


@runtime_checkable
class CatalogStore(Protocol):
    """Push-based document store holding package records.

    ``subscribe`` delivers the full set of matching raw records on every
    change (not a diff). Each raw record carries the store-assigned ``id``
    and ``uploadTime`` alongside the fields passed to ``create_record``.
    """

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        ...

    async def create_record(
        self, collection_path: str, fields: dict[str, Any]
    ) -> str:
        """Write one record atomically; return the store-assigned id.

        Raises ``CatalogStoreError`` when the write cannot be completed.
        """
        ...


@runtime_checkable
class UploadTask(Protocol):
    """Handle to one in-flight resumable upload."""

    def on(
        self,
        on_progress: ProgressCallback,
        on_error: ErrorCallback,
        on_complete: CompleteCallback,
    ) -> None:
        ...


@runtime_checkable
class BlobStorage(Protocol):
    """Durable storage accepting resumable uploads."""

    def start_resumable_upload(self, path: str, data: bytes) -> UploadTask:
        ...
