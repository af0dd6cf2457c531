"""Local durable storage — chunked uploads with progress to the filesystem.

Storage layout: ``{base_path}/{path}`` where *path* is the artifact
destination (for example ``artifacts/{app_id}/packages/{file_name}``).
Uploads are written to a temporary file beside the destination and
atomically moved into place, so an interrupted upload never replaces a
complete artifact. Writing to an existing path overwrites it.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from shellrepo.core.errors import StorageError
from shellrepo.ports import CompleteCallback, ErrorCallback, ProgressCallback

logger = logging.getLogger(__name__)


class LocalUploadTask:
    """An in-flight chunked upload.

    Events are delivered to the callbacks registered with ``on``. Exactly
    one of ``on_error`` / ``on_complete`` fires.
    """

    def __init__(
        self,
        storage: LocalBlobStorage,
        path: str,
        target: Path,
        data: bytes,
    ) -> None:
        self.path = path
        self._storage = storage
        self._target = target
        self._data = data
        self._on_progress: ProgressCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._on_complete: CompleteCallback | None = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    def on(
        self,
        on_progress: ProgressCallback,
        on_error: ErrorCallback,
        on_complete: CompleteCallback,
    ) -> None:
        self._on_progress = on_progress
        self._on_error = on_error
        self._on_complete = on_complete

    @property
    def done(self) -> bool:
        return self._task.done()

    async def _run(self) -> None:
        total = len(self._data)
        chunk_size = self._storage.chunk_size
        partial = self._target.with_name(f".{self._target.name}.part")
        try:
            self._target.parent.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as fh:
                for offset in range(0, total, chunk_size):
                    chunk = self._data[offset:offset + chunk_size]
                    await asyncio.to_thread(fh.write, chunk)
                    if self._on_progress is not None:
                        self._on_progress(offset + len(chunk), total)
            os.replace(partial, self._target)
        except OSError as exc:
            logger.warning("Upload to %s failed: %s", self.path, exc)
            self._fail(partial, StorageError(f"{exc.strerror or exc} ({self.path})"))
            return
        except Exception as exc:
            logger.exception("Upload to %s aborted.", self.path)
            self._fail(partial, StorageError(f"{exc} ({self.path})"))
            return

        try:
            if total == 0 and self._on_progress is not None:
                self._on_progress(0, 0)
        except Exception:
            logger.exception("Progress callback for %s failed.", self.path)
        if self._on_complete is not None:
            self._on_complete(self._storage.download_url(self.path))

    def _fail(self, partial: Path, error: StorageError) -> None:
        partial.unlink(missing_ok=True)
        if self._on_error is not None:
            self._on_error(error)


class LocalBlobStorage:
    """Filesystem-backed durable storage.

    Parameters
    ----------
    base_path:
        Root directory for stored artifacts.
    chunk_size:
        Bytes written between progress events.
    download_base_url:
        Public URL prefix for stored artifacts. File URIs are used when empty.
    """

    def __init__(
        self,
        base_path: Path,
        *,
        chunk_size: int = 256 * 1024,
        download_base_url: str = "",
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size
        self._download_base_url = download_base_url.rstrip("/")

    def resolve(self, path: str) -> Path:
        """Map a storage path to a file below the base directory."""
        target = (self._base / path).resolve()
        if not path or not target.is_relative_to(self._base.resolve()):
            raise StorageError(f"Invalid storage path: {path!r}")
        return target

    def start_resumable_upload(self, path: str, data: bytes) -> LocalUploadTask:
        """Begin writing *data* to *path*. Must be called from a running loop."""
        return LocalUploadTask(self, path, self.resolve(path), data)

    def download_url(self, path: str) -> str:
        if self._download_base_url:
            return f"{self._download_base_url}/{path}"
        return self.resolve(path).as_uri()

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def read(self, path: str) -> bytes:
        target = self.resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"Artifact not found: {path}")
        return target.read_bytes()
