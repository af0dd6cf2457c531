"""Catalog Subscriber — live, locally cached view of published packages.

Once identity readiness fires, one push subscription is opened on the
package collection. No ordering clause is applied; callers that need an
order sort client-side (see ``CatalogSnapshot.newest_first``).

Every push replaces the whole snapshot. The snapshot is owned here and
exposed as an immutable ``CatalogSnapshot``; consumers never mutate it.
A subscription error is terminal for this instance and is not retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as RecordValidationError

from shellrepo.core.errors import SubscriptionError
from shellrepo.core.identity import IdentityBootstrapper
from shellrepo.models.catalog import CatalogSnapshot, SubscriptionState
from shellrepo.models.packages import PackageRecord
from shellrepo.ports import CatalogStore, Unsubscribe

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[CatalogSnapshot], None]


class CatalogSubscriber:
    """Maintains the local catalog snapshot via a push subscription.

    Parameters
    ----------
    store:
        The catalog store collaborator.
    bootstrapper:
        Identity Bootstrapper whose readiness gates the subscription.
    collection_path:
        Collection holding the package records.
    """

    def __init__(
        self,
        store: CatalogStore,
        bootstrapper: IdentityBootstrapper,
        collection_path: str,
    ) -> None:
        self._store = store
        self._bootstrapper = bootstrapper
        self._collection_path = collection_path
        self._state = SubscriptionState.IDLE
        self._snapshot = CatalogSnapshot()
        self._error: str | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._changed = asyncio.Event()
        self._listeners: list[SnapshotListener] = []

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def snapshot(self) -> CatalogSnapshot:
        """The latest snapshot. Replaced wholesale on every push."""
        return self._snapshot

    @property
    def records(self) -> tuple[PackageRecord, ...]:
        return self._snapshot.records

    @property
    def sequence(self) -> int:
        return self._snapshot.sequence

    @property
    def error(self) -> str | None:
        """Human-readable subscription error, once errored."""
        return self._error

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot. Returns a remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the subscription once identity readiness has fired."""
        if self._state != SubscriptionState.IDLE:
            return
        self._state = SubscriptionState.WAITING_FOR_IDENTITY
        await self._bootstrapper.wait_ready()
        if self._state != SubscriptionState.WAITING_FOR_IDENTITY:
            # Closed while waiting for identity.
            return

        self._state = SubscriptionState.LIVE
        try:
            self._unsubscribe = self._store.subscribe(
                self._collection_path, self._on_snapshot, self._on_error
            )
        except Exception as exc:
            self._on_error(exc)
            return
        if self._state != SubscriptionState.LIVE:
            # Errored during subscribe().
            self._unsubscribe()
            self._unsubscribe = None
            return
        logger.info("Catalog subscription opened on %s.", self._collection_path)

    async def next_snapshot(self, timeout: float | None = None) -> CatalogSnapshot:
        """Suspend until the next push and return its snapshot.

        Raises ``SubscriptionError`` if the subscription is (or becomes)
        errored or closed, and ``TimeoutError`` if *timeout* elapses.
        """
        self._raise_if_terminal()
        changed = self._changed
        await asyncio.wait_for(changed.wait(), timeout)
        self._raise_if_terminal()
        return self._snapshot

    def close(self) -> None:
        """Tear down the remote subscription. Safe to call repeatedly."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Catalog subscription on %s closed.", self._collection_path)
        if self._state not in (SubscriptionState.CLOSED, SubscriptionState.ERRORED):
            self._state = SubscriptionState.CLOSED
        self._wake()

    # ------------------------------------------------------------------
    # Store callbacks
    # ------------------------------------------------------------------

    def _on_snapshot(self, raw_records: list[dict[str, Any]]) -> None:
        if self._state != SubscriptionState.LIVE:
            return

        records: list[PackageRecord] = []
        for raw in raw_records:
            try:
                records.append(PackageRecord.model_validate(raw))
            except RecordValidationError as exc:
                logger.warning(
                    "Dropping incomplete catalog record %r: %s",
                    raw.get("id", "<no id>"),
                    exc.errors(include_url=False),
                )

        self._snapshot = CatalogSnapshot(
            records=tuple(records), sequence=self._snapshot.sequence + 1
        )
        logger.debug(
            "Catalog snapshot #%d: %d records.", self._snapshot.sequence, len(records)
        )
        for listener in list(self._listeners):
            listener(self._snapshot)
        self._wake()

    def _on_error(self, exc: Exception) -> None:
        if self._state != SubscriptionState.LIVE:
            return
        self._state = SubscriptionState.ERRORED
        self._error = f"Failed to load packages: {exc}"
        logger.error("Catalog subscription on %s failed: %s", self._collection_path, exc)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._wake()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _wake(self) -> None:
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    def _raise_if_terminal(self) -> None:
        if self._state == SubscriptionState.ERRORED:
            raise SubscriptionError(self._error or "Catalog subscription failed")
        if self._state == SubscriptionState.CLOSED:
            raise SubscriptionError("Catalog subscription is closed")
