"""Identity Bootstrapper — resolves the session identity before any write.

Readiness fires exactly once per session. It carries the identity resolved
by the auth collaborator, or a locally generated fallback identity when
authentication fails. Failure is non-fatal: the session continues in a
degraded, unauthenticated mode.

No catalog store operation may be issued before readiness has fired;
``CatalogSubscriber`` and ``Publisher`` both gate on ``wait_ready()``.
"""

from __future__ import annotations

import asyncio
import logging

from shellrepo.core.errors import AuthError
from shellrepo.models.identity import Identity
from shellrepo.ports import AuthProvider, Unsubscribe

logger = logging.getLogger(__name__)


class IdentityBootstrapper:
    """Obtains a stable user identifier for the session.

    Parameters
    ----------
    auth:
        The auth collaborator.
    initial_token:
        Credential to sign in with. Anonymous sign-in is used when absent.
    """

    def __init__(self, auth: AuthProvider, *, initial_token: str | None = None) -> None:
        self._auth = auth
        self._initial_token = initial_token
        self._ready = asyncio.Event()
        self._identity: Identity | None = None
        self._auth_error: str | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def identity(self) -> Identity | None:
        """The session identity, or None before readiness."""
        return self._identity

    @property
    def degraded(self) -> bool:
        """True when the session runs under a fallback identity."""
        return self._identity is not None and self._identity.is_fallback

    @property
    def auth_error(self) -> str | None:
        """Human-readable reason authentication failed, if it did."""
        return self._auth_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Identity:
        """Attempt sign-in and return the session identity.

        Calling ``start`` again returns the already-resolved identity.
        """
        if self._started:
            return await self.wait_ready()
        self._started = True

        self._unsubscribe = self._auth.on_identity_change(self._on_identity_change)
        try:
            if self._initial_token:
                identity = await self._auth.sign_in_with_token(self._initial_token)
            else:
                identity = await self._auth.sign_in_anonymous()
        except AuthError as exc:
            self._auth_error = f"Auth error: {exc}"
            logger.warning(
                "Authentication failed (%s); continuing with a fallback identity.", exc
            )
            self._resolve(Identity.fallback())
        else:
            self._resolve(identity)

        return await self.wait_ready()

    async def wait_ready(self) -> Identity:
        """Suspend until readiness fires and return the session identity."""
        await self._ready.wait()
        assert self._identity is not None
        return self._identity

    def close(self) -> None:
        """Release the identity-change listener."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_identity_change(self, identity: Identity | None) -> None:
        if identity is None:
            if not self.is_ready:
                # Signed out before anything resolved.
                self._resolve(Identity.fallback())
            return
        self._resolve(identity)

    def _resolve(self, identity: Identity) -> None:
        if self.is_ready:
            if identity.user_id != self._identity.user_id:
                logger.debug(
                    "Ignoring identity transition to %s after readiness.",
                    identity.user_id,
                )
            return
        self._identity = identity
        self._ready.set()
        logger.info(
            "Session identity ready: %s (%s).", identity.user_id, identity.source.value
        )
