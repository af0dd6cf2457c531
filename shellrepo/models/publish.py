"""Publish transaction models: state table, requests, form buffer, outcomes."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shellrepo.core.errors import (
    MetadataCommitError,
    TransactionInProgressError,
    UploadError,
    ValidationError,
)


class PublishState(str, Enum):
    """States of one publish attempt."""

    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    COMMITTING_METADATA = "committing_metadata"
    PUBLISHED = "published"
    REJECTED = "rejected"
    FAILED = "failed"


# Valid state transitions, enforced by PublishTransaction.
# Terminal states (PUBLISHED, REJECTED, FAILED) have no outgoing transitions;
# a retry is a new transaction.
VALID_TRANSITIONS: dict[PublishState, set[PublishState]] = {
    PublishState.IDLE: {PublishState.VALIDATING},
    PublishState.VALIDATING: {PublishState.UPLOADING, PublishState.REJECTED},
    PublishState.UPLOADING: {PublishState.COMMITTING_METADATA, PublishState.FAILED},
    PublishState.COMMITTING_METADATA: {PublishState.PUBLISHED, PublishState.FAILED},
    PublishState.PUBLISHED: set(),  # terminal
    PublishState.REJECTED: set(),  # terminal
    PublishState.FAILED: set(),  # terminal
}

TERMINAL_STATES: frozenset[PublishState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class PublishErrorKind(str, Enum):
    VALIDATION = "validation"
    BUSY = "busy"
    UPLOAD = "upload"
    METADATA_COMMIT = "metadata_commit"


class PublishRequest(BaseModel):
    """A user publish request carrying validated primitive inputs."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    version: str
    file_name: str  # original file name, used for its extension
    data: bytes | None = None


class PackageForm(BaseModel):
    """Mutable buffer of the submitted field values.

    Left intact on rejection and failure so the user can resubmit;
    cleared only after a successful publish.
    """

    model_config = ConfigDict(validate_assignment=True)

    name: str = ""
    description: str = ""
    version: str = ""
    file_name: str = ""
    file_data: bytes | None = None

    def fill(self, request: PublishRequest) -> None:
        self.name = request.name
        self.description = request.description
        self.version = request.version
        self.file_name = request.file_name
        self.file_data = request.data

    def clear(self) -> None:
        self.name = ""
        self.description = ""
        self.version = ""
        self.file_name = ""
        self.file_data = None

    def to_request(self) -> PublishRequest:
        return PublishRequest(
            name=self.name,
            description=self.description,
            version=self.version,
            file_name=self.file_name,
            data=self.file_data,
        )


class PublishTransition(BaseModel):
    """Records a single state transition of a publish attempt."""

    model_config = ConfigDict(frozen=True)

    from_state: PublishState
    to_state: PublishState
    reason: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class PublishOutcome(BaseModel):
    """Typed terminal result of one publish request."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    state: PublishState
    message: str
    error_kind: PublishErrorKind | None = None
    file_name: str = ""
    artifact_path: str = ""
    file_url: str = ""
    record_id: str = ""
    transitions: tuple[PublishTransition, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state == PublishState.PUBLISHED

    @property
    def orphaned_artifact(self) -> bool:
        """True when the artifact was stored but no record references it."""
        return self.error_kind == PublishErrorKind.METADATA_COMMIT

    def raise_for_error(self) -> None:
        """Raise the taxonomy exception matching this outcome, if any."""
        error_types = {
            PublishErrorKind.VALIDATION: ValidationError,
            PublishErrorKind.BUSY: TransactionInProgressError,
            PublishErrorKind.UPLOAD: UploadError,
            PublishErrorKind.METADATA_COMMIT: MetadataCommitError,
        }
        if self.error_kind is not None:
            raise error_types[self.error_kind](self.message)
