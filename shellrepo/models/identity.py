"""Session identity model: opaque, best-effort, never persisted."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IdentitySource(str, Enum):
    """How a session identity was obtained."""

    TOKEN = "token"
    ANONYMOUS = "anonymous"
    FALLBACK = "fallback"  # generated locally after an auth failure


class Identity(BaseModel):
    """The acting user for the lifetime of one session.

    Identity is not a security boundary: a fallback identity is a random
    string minted locally when the auth collaborator cannot be reached.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    source: IdentitySource = IdentitySource.ANONYMOUS
    resolved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_fallback(self) -> bool:
        return self.source == IdentitySource.FALLBACK

    @classmethod
    def fallback(cls) -> Identity:
        """Mint a locally generated identity."""
        return cls(user_id=uuid.uuid4().hex, source=IdentitySource.FALLBACK)
