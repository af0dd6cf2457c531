"""Repository coordinator: wires identity, catalog, uploads and publishing.

The coordinator owns one instance of each component for the lifetime of a
session. ``start()`` resolves identity first, then opens the catalog
subscription; ``shutdown()`` releases the subscription and the identity
listener. An in-flight upload is abandoned on shutdown without remote
cleanup.

Usage::

    async with RepositoryCoordinator(auth, store, storage) as repo:
        outcome = await repo.publish(PublishRequest(...))
        snapshot = await repo.catalog.next_snapshot()
"""

from __future__ import annotations

import logging

from shellrepo.config import RepoConfig
from shellrepo.core.catalog import CatalogSubscriber
from shellrepo.core.identity import IdentityBootstrapper
from shellrepo.core.production_guard import enforce_production_constraints
from shellrepo.core.publisher import Publisher
from shellrepo.core.uploader import ArtifactUploader
from shellrepo.models.identity import Identity
from shellrepo.models.publish import PublishOutcome, PublishRequest
from shellrepo.ports import AuthProvider, BlobStorage, CatalogStore

logger = logging.getLogger(__name__)


class RepositoryCoordinator:
    """Central coordinator for one repository session.

    Parameters
    ----------
    auth:
        Auth collaborator.
    store:
        Catalog store collaborator.
    storage:
        Durable storage collaborator.
    config:
        Repository configuration. Uses ``RepoConfig()`` if not provided.
    """

    def __init__(
        self,
        auth: AuthProvider,
        store: CatalogStore,
        storage: BlobStorage,
        *,
        config: RepoConfig | None = None,
    ) -> None:
        self.config = config or RepoConfig()

        # Fails hard if production constraints are violated
        enforce_production_constraints(self.config)

        self.identity = IdentityBootstrapper(
            auth, initial_token=self.config.initial_auth_token
        )
        self.catalog = CatalogSubscriber(
            store, self.identity, self.config.catalog_collection_path
        )
        self.uploader = ArtifactUploader(storage)
        self.publisher = Publisher(
            self.identity,
            self.uploader,
            store,
            collection_path=self.config.catalog_collection_path,
            artifact_path=self.config.artifact_path,
            allow_degraded=self.config.allow_degraded_publish,
        )
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Identity:
        """Resolve the session identity, then open the catalog subscription."""
        identity = await self.identity.start()
        await self.catalog.start()
        self._running = True
        logger.info(
            "Coordinator for app %s started as %s%s.",
            self.config.app_id,
            identity.user_id,
            " (degraded)" if identity.is_fallback else "",
        )
        return identity

    async def shutdown(self) -> None:
        """Release the catalog subscription and identity listener."""
        self.catalog.close()
        self.identity.close()
        if self.publisher.busy:
            logger.warning("Shutting down with an upload in flight; it is abandoned.")
        self._running = False

    async def __aenter__(self) -> RepositoryCoordinator:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, request: PublishRequest | None = None) -> PublishOutcome:
        """Publish a package; see ``Publisher.publish``."""
        return await self.publisher.publish(request)
