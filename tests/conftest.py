"""Shared test fixtures and collaborator doubles for shellrepo."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from shellrepo.backends.local_storage import LocalBlobStorage
from shellrepo.backends.sqlite_catalog import SqliteCatalogStore
from shellrepo.config import RepoConfig
from shellrepo.core.errors import AuthError, CatalogStoreError, StorageError
from shellrepo.models.identity import Identity, IdentitySource
from shellrepo.models.publish import PublishRequest


# ---------------------------------------------------------------------------
# Collaborator doubles, each appending to a shared call log
# ---------------------------------------------------------------------------


class FakeAuthProvider:
    """Auth double that can be told to fail."""

    def __init__(
        self,
        events: list[str],
        *,
        fail: bool = False,
        user_id: str = "user-123",
    ) -> None:
        self.events = events
        self.fail = fail
        self.user_id = user_id
        self.listeners: list[Callable[[Identity | None], None]] = []
        self.tokens: list[str] = []

    async def sign_in_anonymous(self) -> Identity:
        self.events.append("auth.sign_in_anonymous")
        await asyncio.sleep(0)
        if self.fail:
            raise AuthError("network unreachable")
        return self._signed_in(IdentitySource.ANONYMOUS)

    async def sign_in_with_token(self, token: str) -> Identity:
        self.events.append("auth.sign_in_with_token")
        self.tokens.append(token)
        await asyncio.sleep(0)
        if self.fail:
            raise AuthError("invalid custom token")
        return self._signed_in(IdentitySource.TOKEN)

    def on_identity_change(self, callback: Callable[[Identity | None], None]):
        self.listeners.append(callback)

        def _unsubscribe() -> None:
            self.listeners.remove(callback)

        return _unsubscribe

    def emit(self, identity: Identity | None) -> None:
        for listener in list(self.listeners):
            listener(identity)

    def _signed_in(self, source: IdentitySource) -> Identity:
        identity = Identity(user_id=self.user_id, source=source)
        self.emit(identity)
        return identity


class _FakeSubscription:
    def __init__(self, path: str, on_snapshot, on_error) -> None:
        self.path = path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class FakeCatalogStore:
    """In-memory catalog store pushing full snapshots via ``call_soon``."""

    def __init__(self, events: list[str], *, fail_create: bool = False) -> None:
        self.events = events
        self.fail_create = fail_create
        self.records: dict[str, list[dict[str, Any]]] = {}
        self.subscriptions: list[_FakeSubscription] = []

    def subscribe(self, collection_path: str, on_snapshot, on_error):
        self.events.append("store.subscribe")
        sub = _FakeSubscription(collection_path, on_snapshot, on_error)
        self.subscriptions.append(sub)
        asyncio.get_running_loop().call_soon(self._push, sub)

        def _unsubscribe() -> None:
            self.events.append("store.unsubscribe")
            sub.active = False

        return _unsubscribe

    async def create_record(self, collection_path: str, fields: dict[str, Any]) -> str:
        self.events.append("store.create_record")
        await asyncio.sleep(0)
        if self.fail_create:
            raise CatalogStoreError("store unreachable")
        record_id = uuid.uuid4().hex[:20]
        record = {
            **fields,
            "id": record_id,
            "uploadTime": datetime.now(timezone.utc).isoformat(),
        }
        self.records.setdefault(collection_path, []).append(record)
        self.push_all(collection_path)
        return record_id

    @property
    def active_subscriptions(self) -> list[_FakeSubscription]:
        return [s for s in self.subscriptions if s.active]

    def push_all(self, collection_path: str) -> None:
        loop = asyncio.get_running_loop()
        for sub in self.active_subscriptions:
            if sub.path == collection_path:
                loop.call_soon(self._push, sub)

    def push_raw(self, raw_records: list[dict[str, Any]]) -> None:
        for sub in self.active_subscriptions:
            sub.on_snapshot(raw_records)

    def push_error(self, exc: Exception) -> None:
        for sub in self.active_subscriptions:
            sub.on_error(exc)

    def _push(self, sub: _FakeSubscription) -> None:
        if sub.active:
            sub.on_snapshot(list(self.records.get(sub.path, [])))


class ScriptedUploadTask:
    """Upload task whose events are driven by the test or by ``run``."""

    def __init__(self, path: str, data: bytes) -> None:
        self.path = path
        self.data = data
        self.on_progress = None
        self.on_error = None
        self.on_complete = None

    def on(self, on_progress, on_error, on_complete) -> None:
        self.on_progress = on_progress
        self.on_error = on_error
        self.on_complete = on_complete

    def progress(self, transferred: int, total: int | None = None) -> None:
        self.on_progress(transferred, len(self.data) if total is None else total)

    def fail(self, message: str = "quota exceeded") -> None:
        self.on_error(StorageError(message))

    def complete(self, url: str | None = None) -> None:
        self.on_complete(url or f"https://cdn.example.test/{self.path}")


class ScriptedStorage:
    """Storage double.

    In automatic mode each upload reports progress per ``chunk_size`` and
    then completes (or fails, when ``fail`` is set). In manual mode the test
    drives ``tasks[-1]`` itself.
    """

    def __init__(
        self,
        events: list[str],
        *,
        chunk_size: int = 64 * 1024,
        fail: bool = False,
        manual: bool = False,
        raise_on_start: bool = False,
    ) -> None:
        self.events = events
        self.chunk_size = chunk_size
        self.fail = fail
        self.manual = manual
        self.raise_on_start = raise_on_start
        self.tasks: list[ScriptedUploadTask] = []
        self._drivers: set[asyncio.Task] = set()

    def start_resumable_upload(self, path: str, data: bytes) -> ScriptedUploadTask:
        self.events.append("storage.start_upload")
        if self.raise_on_start:
            raise StorageError("bucket not found")
        task = ScriptedUploadTask(path, data)
        self.tasks.append(task)
        if not self.manual:
            driver = asyncio.get_running_loop().create_task(self._drive(task))
            self._drivers.add(driver)
            driver.add_done_callback(self._drivers.discard)
        return task

    async def _drive(self, task: ScriptedUploadTask) -> None:
        total = len(task.data)
        sent = 0
        while sent < total:
            await asyncio.sleep(0)
            sent = min(total, sent + self.chunk_size)
            task.progress(sent, total)
            if self.fail and sent >= total // 2:
                task.fail()
                return
        await asyncio.sleep(0)
        if self.fail:
            task.fail()
        else:
            task.complete()


async def _settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settle() -> Callable[..., Any]:
    """Coroutine that lets scheduled callbacks and tasks run."""
    return _settle


@pytest.fixture
def collection() -> str:
    return "artifacts/test-app/public/data/packages"


@pytest.fixture
def events() -> list[str]:
    """Shared, ordered log of collaborator calls."""
    return []


@pytest.fixture
def auth(events: list[str]) -> FakeAuthProvider:
    return FakeAuthProvider(events)


@pytest.fixture
def store(events: list[str]) -> FakeCatalogStore:
    return FakeCatalogStore(events)


@pytest.fixture
def storage(events: list[str]) -> ScriptedStorage:
    return ScriptedStorage(events)


@pytest.fixture
def repo_config(tmp_path: Path) -> RepoConfig:
    """Configuration rooted in a temporary directory."""
    return RepoConfig(
        app_id="test-app",
        catalog_db_path=tmp_path / "catalog.db",
        storage_path=tmp_path / "storage",
        upload_chunk_size=64 * 1024,
        download_base_url="https://packages.example.test",
    )


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteCatalogStore:
    return SqliteCatalogStore(tmp_path / "catalog.db")


@pytest.fixture
def blob_storage(tmp_path: Path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "storage", chunk_size=64 * 1024)


@pytest.fixture
def make_request() -> Callable[..., PublishRequest]:
    """Factory fixture: build a PublishRequest with sensible defaults."""

    def _factory(**overrides: Any) -> PublishRequest:
        defaults: dict[str, Any] = {
            "name": "MyCoolApp",
            "description": "A cool app for ShellOS",
            "version": "1.0.0",
            "file_name": "demo.py",
            "data": b"print('hello shellos')\n" * 100,
        }
        defaults.update(overrides)
        return PublishRequest(**defaults)

    return _factory
