"""Upload session and terminal result models."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class UploadSession(BaseModel):
    """Transient progress record for one upload attempt.

    Replaced, never mutated, on each accepted progress event.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    total_bytes: int = Field(ge=0)
    bytes_transferred: int = Field(default=0, ge=0)
    status: UploadStatus = UploadStatus.PENDING

    @property
    def percent(self) -> float:
        if self.total_bytes == 0:
            return 100.0 if self.status == UploadStatus.SUCCEEDED else 0.0
        return self.bytes_transferred / self.total_bytes * 100

    @property
    def is_terminal(self) -> bool:
        return self.status in (UploadStatus.SUCCEEDED, UploadStatus.FAILED)


class UploadSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["succeeded"] = "succeeded"
    path: str
    download_url: str
    total_bytes: int


class UploadFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    path: str
    error: str
    bytes_transferred: int = 0


UploadResult = Annotated[
    Union[UploadSucceeded, UploadFailed], Field(discriminator="kind")
]
