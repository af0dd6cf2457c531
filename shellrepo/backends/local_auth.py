"""Local auth provider: mints session identities without a remote service."""

from __future__ import annotations

import hashlib
import logging
import uuid

from shellrepo.core.errors import AuthError
from shellrepo.models.identity import Identity, IdentitySource
from shellrepo.ports import IdentityCallback, Unsubscribe

logger = logging.getLogger(__name__)


class LocalAuthProvider:
    """In-process auth collaborator.

    Anonymous sign-in mints a random identity. Token sign-in derives a
    stable identity from the token, so the same token maps to the same
    ``user_id`` across sessions.

    Parameters
    ----------
    accepted_tokens:
        When non-empty, only these tokens may sign in; any other token
        raises ``AuthError``.
    """

    def __init__(self, accepted_tokens: list[str] | None = None) -> None:
        self._accepted = set(accepted_tokens or [])
        self._listeners: list[IdentityCallback] = []
        self._current: Identity | None = None

    @property
    def current(self) -> Identity | None:
        return self._current

    async def sign_in_anonymous(self) -> Identity:
        return self._signed_in(
            Identity(user_id=uuid.uuid4().hex, source=IdentitySource.ANONYMOUS)
        )

    async def sign_in_with_token(self, token: str) -> Identity:
        if not token:
            raise AuthError("empty token")
        if self._accepted and token not in self._accepted:
            raise AuthError("token is not accepted by this repository")
        user_id = hashlib.sha256(token.encode("utf-8")).hexdigest()[:28]
        return self._signed_in(Identity(user_id=user_id, source=IdentitySource.TOKEN))

    def sign_out(self) -> None:
        self._current = None
        self._notify(None)

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _signed_in(self, identity: Identity) -> Identity:
        self._current = identity
        logger.debug("Signed in %s via %s.", identity.user_id, identity.source.value)
        self._notify(identity)
        return identity

    def _notify(self, identity: Identity | None) -> None:
        for listener in list(self._listeners):
            listener(identity)
