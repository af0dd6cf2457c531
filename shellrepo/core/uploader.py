"""Artifact Uploader — streams a package payload to durable storage.

Wraps the storage collaborator's callback-style resumable upload in a single
suspension point. ``upload()`` returns exactly one terminal
``UploadResult`` per attempt; progress is forwarded as ``UploadSession``
snapshots whose ``bytes_transferred`` never decreases and never exceeds
``total_bytes``.

Destination names are deterministic in (normalized name, version,
extension), so re-uploading the same name and version overwrites the
previous artifact instead of accumulating orphans. Partially written remote
bytes are not cleaned up after a failure.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable

from shellrepo.core.errors import UploaderBusyError
from shellrepo.models.uploads import (
    UploadFailed,
    UploadResult,
    UploadSession,
    UploadStatus,
    UploadSucceeded,
)
from shellrepo.ports import BlobStorage

logger = logging.getLogger(__name__)

_DISALLOWED_NAME_CHARS = re.compile(r"[^a-z0-9_.-]")

ProgressListener = Callable[[UploadSession], None]


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def normalize_package_name(name: str) -> str:
    """Lowercase *name* and strip every character outside ``[a-z0-9_.-]``."""
    return _DISALLOWED_NAME_CHARS.sub("", name.lower())


def file_extension(file_name: str) -> str:
    """Text after the last dot of the base name; the whole base name when
    there is no dot. Directory parts never reach the extension.
    """
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    return base.rsplit(".", 1)[-1]


def package_file_name(name: str, version: str, original_file_name: str) -> str:
    """Artifact file name for a package version.

    >>> package_file_name("MyCoolApp", "1.0.0", "demo.py")
    'mycoolapp_v1.0.0.py'
    """
    return (
        f"{normalize_package_name(name)}_v{version}"
        f".{file_extension(original_file_name)}"
    )


# ---------------------------------------------------------------------------
# Uploader
# ---------------------------------------------------------------------------


class ArtifactUploader:
    """Drives one resumable upload at a time.

    Parameters
    ----------
    storage:
        The durable storage collaborator.
    """

    def __init__(self, storage: BlobStorage) -> None:
        self._storage = storage
        self._session: UploadSession | None = None
        self._busy = False

    @property
    def session(self) -> UploadSession | None:
        """The current upload session, or the last one once terminal."""
        return self._session

    @property
    def busy(self) -> bool:
        return self._busy

    async def upload(
        self,
        path: str,
        data: bytes,
        *,
        on_progress: ProgressListener | None = None,
    ) -> UploadResult:
        """Upload *data* to *path* and return the terminal result.

        Raises ``UploaderBusyError`` if another upload is in flight.
        """
        if self._busy:
            raise UploaderBusyError(
                f"Upload to {self._session.path if self._session else path} in progress"
            )
        self._busy = True
        try:
            return await self._run(path, data, on_progress)
        finally:
            self._busy = False

    async def _run(
        self,
        path: str,
        data: bytes,
        on_progress: ProgressListener | None,
    ) -> UploadResult:
        self._session = UploadSession(path=path, total_bytes=len(data))
        terminal: asyncio.Future[UploadResult] = (
            asyncio.get_running_loop().create_future()
        )

        def _progress(bytes_transferred: int, total_bytes: int) -> None:
            session = self._session
            if terminal.done():
                logger.debug("Ignoring progress for %s after terminal event.", path)
                return
            if not session.bytes_transferred <= bytes_transferred <= session.total_bytes:
                logger.debug(
                    "Ignoring out-of-order progress %d/%d for %s (at %d).",
                    bytes_transferred,
                    total_bytes,
                    path,
                    session.bytes_transferred,
                )
                return
            self._session = session.model_copy(
                update={
                    "bytes_transferred": bytes_transferred,
                    "status": UploadStatus.IN_PROGRESS,
                }
            )
            logger.debug("Upload %s: %.0f%%", path, self._session.percent)
            if on_progress is None:
                return
            try:
                on_progress(self._session)
            except Exception:
                # Listener failures never reach the storage task.
                logger.exception("Progress listener for %s failed.", path)

        def _error(exc: Exception) -> None:
            if terminal.done():
                logger.warning("Ignoring extra terminal error for %s: %s", path, exc)
                return
            self._session = self._session.model_copy(
                update={"status": UploadStatus.FAILED}
            )
            terminal.set_result(
                UploadFailed(
                    path=path,
                    error=str(exc) or type(exc).__name__,
                    bytes_transferred=self._session.bytes_transferred,
                )
            )

        def _complete(download_url: str) -> None:
            if terminal.done():
                logger.warning("Ignoring extra completion for %s.", path)
                return
            self._session = self._session.model_copy(
                update={
                    "bytes_transferred": self._session.total_bytes,
                    "status": UploadStatus.SUCCEEDED,
                }
            )
            terminal.set_result(
                UploadSucceeded(
                    path=path,
                    download_url=download_url,
                    total_bytes=self._session.total_bytes,
                )
            )

        try:
            task = self._storage.start_resumable_upload(path, data)
            task.on(_progress, _error, _complete)
        except Exception as exc:
            logger.exception("Could not start upload to %s.", path)
            _error(exc)

        result = await terminal
        if isinstance(result, UploadSucceeded):
            logger.info("Uploaded %s (%d bytes).", path, result.total_bytes)
        else:
            logger.warning("Upload of %s failed: %s", path, result.error)
        return result
