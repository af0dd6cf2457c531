"""Package record models (append-only: created once, never updated).

Records travel between the coordinator and the catalog store in camelCase
(``displayName``, ``fileUrl``, ...). Both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, Field(min_length=1)]


class PackageDraft(BaseModel):
    """The complete field set written by one publish, minus store-assigned fields.

    Every field is required and non-empty so that a record can only be
    created fully populated in a single write.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: NonEmptyStr  # normalized, lowercase
    display_name: NonEmptyStr  # original casing
    description: NonEmptyStr
    version: NonEmptyStr
    file_name: NonEmptyStr
    file_url: NonEmptyStr
    uploader_id: NonEmptyStr

    def to_fields(self) -> dict[str, Any]:
        """Wire representation handed to ``CatalogStore.create_record``."""
        return self.model_dump(mode="json", by_alias=True)


class PackageRecord(PackageDraft):
    """A published package as seen through the catalog subscription."""

    id: NonEmptyStr
    upload_time: datetime  # store-assigned clock, not monotonic across records

    def index_entry(self) -> dict[str, str]:
        """Entry shape of the published ``index.json`` contract."""
        return {
            "name": self.name,
            "version": self.version,
            "fileUrl": self.file_url,
            "description": self.description,
        }
