"""Tests for shellrepo data models: immutability, wire aliases, completeness."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from shellrepo.core.errors import (
    MetadataCommitError,
    TransactionInProgressError,
    UploadError,
    ValidationError,
)
from shellrepo.models.catalog import CatalogSnapshot
from shellrepo.models.identity import Identity, IdentitySource
from shellrepo.models.packages import PackageDraft, PackageRecord
from shellrepo.models.publish import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    PackageForm,
    PublishErrorKind,
    PublishOutcome,
    PublishRequest,
    PublishState,
)
from shellrepo.models.uploads import UploadSession, UploadStatus


def _raw_record(**overrides):
    raw = {
        "id": "rec-1",
        "name": "foo",
        "displayName": "Foo",
        "description": "d",
        "version": "2.0",
        "fileName": "foo_v2.0.zip",
        "fileUrl": "https://cdn.example.test/foo_v2.0.zip",
        "uploaderId": "user-123",
        "uploadTime": "2026-10-18T12:00:00+00:00",
    }
    raw.update(overrides)
    return raw


class TestIdentity:
    def test_fallback_identity_is_random(self):
        a = Identity.fallback()
        b = Identity.fallback()
        assert a.is_fallback and b.is_fallback
        assert a.user_id != b.user_id

    def test_resolved_identity_is_not_fallback(self):
        identity = Identity(user_id="abc", source=IdentitySource.TOKEN)
        assert identity.is_fallback is False

    def test_frozen(self):
        identity = Identity(user_id="abc")
        with pytest.raises(PydanticValidationError):
            identity.user_id = "other"


class TestPackageRecord:
    def test_parses_camel_case_wire_format(self):
        record = PackageRecord.model_validate(_raw_record())
        assert record.display_name == "Foo"
        assert record.file_url.endswith("foo_v2.0.zip")
        assert record.upload_time.tzinfo is not None

    def test_accepts_field_names(self):
        record = PackageRecord(
            id="rec-1",
            name="foo",
            display_name="Foo",
            description="d",
            version="2.0",
            file_name="foo_v2.0.zip",
            file_url="https://x/foo_v2.0.zip",
            uploader_id="u",
            upload_time=datetime.now(timezone.utc),
        )
        assert record.name == "foo"

    @pytest.mark.parametrize("missing", ["fileUrl", "uploaderId", "displayName", "id"])
    def test_incomplete_record_is_invalid(self, missing: str):
        raw = _raw_record()
        del raw[missing]
        with pytest.raises(PydanticValidationError):
            PackageRecord.model_validate(raw)

    def test_blank_field_is_invalid(self):
        with pytest.raises(PydanticValidationError):
            PackageRecord.model_validate(_raw_record(description="   "))

    def test_index_entry_shape(self):
        record = PackageRecord.model_validate(_raw_record())
        assert record.index_entry() == {
            "name": "foo",
            "version": "2.0",
            "fileUrl": "https://cdn.example.test/foo_v2.0.zip",
            "description": "d",
        }

    def test_draft_fields_use_wire_names(self):
        draft = PackageDraft(
            name="foo",
            display_name="Foo",
            description="d",
            version="2.0",
            file_name="foo_v2.0.zip",
            file_url="https://x/foo_v2.0.zip",
            uploader_id="user-123",
        )
        fields = draft.to_fields()
        assert set(fields) == {
            "name", "displayName", "description", "version",
            "fileName", "fileUrl", "uploaderId",
        }


class TestUploadSession:
    def test_percent(self):
        session = UploadSession(path="p", total_bytes=200, bytes_transferred=50)
        assert session.percent == 25.0

    def test_empty_payload_percent(self):
        pending = UploadSession(path="p", total_bytes=0)
        done = pending.model_copy(update={"status": UploadStatus.SUCCEEDED})
        assert pending.percent == 0.0
        assert done.percent == 100.0

    def test_terminal_statuses(self):
        session = UploadSession(path="p", total_bytes=1)
        assert not session.is_terminal
        assert session.model_copy(update={"status": UploadStatus.FAILED}).is_terminal


class TestCatalogSnapshot:
    def test_find_by_normalized_name(self):
        snapshot = CatalogSnapshot(
            records=(
                PackageRecord.model_validate(_raw_record()),
                PackageRecord.model_validate(_raw_record(id="rec-2", version="3.0")),
            )
        )
        assert len(snapshot.find("FOO")) == 2
        assert [r.id for r in snapshot.find("foo", "3.0")] == ["rec-2"]

    def test_newest_first(self):
        now = datetime.now(timezone.utc)
        older = PackageRecord.model_validate(
            _raw_record(id="old", uploadTime=(now - timedelta(days=1)).isoformat())
        )
        newer = PackageRecord.model_validate(_raw_record(id="new", uploadTime=now.isoformat()))
        snapshot = CatalogSnapshot(records=(older, newer))
        assert [r.id for r in snapshot.newest_first()] == ["new", "old"]


class TestPublishModels:
    def test_terminal_states_have_no_transitions(self):
        assert TERMINAL_STATES == {
            PublishState.PUBLISHED, PublishState.REJECTED, PublishState.FAILED,
        }
        for state in TERMINAL_STATES:
            assert VALID_TRANSITIONS[state] == set()

    def test_form_fill_and_clear(self):
        form = PackageForm()
        form.fill(PublishRequest(
            name="Foo", description="d", version="1", file_name="f.py", data=b"x",
        ))
        assert form.to_request().name == "Foo"
        form.clear()
        assert form.name == "" and form.file_data is None

    @pytest.mark.parametrize(
        ("kind", "error_type"),
        [
            (PublishErrorKind.VALIDATION, ValidationError),
            (PublishErrorKind.BUSY, TransactionInProgressError),
            (PublishErrorKind.UPLOAD, UploadError),
            (PublishErrorKind.METADATA_COMMIT, MetadataCommitError),
        ],
    )
    def test_raise_for_error(self, kind, error_type):
        outcome = PublishOutcome(
            transaction_id="pub-1", state=PublishState.FAILED, message="boom", error_kind=kind,
        )
        with pytest.raises(error_type, match="boom"):
            outcome.raise_for_error()

    def test_raise_for_error_on_success_is_noop(self):
        outcome = PublishOutcome(
            transaction_id="pub-1", state=PublishState.PUBLISHED, message="ok",
        )
        outcome.raise_for_error()
        assert outcome.ok and not outcome.orphaned_artifact
