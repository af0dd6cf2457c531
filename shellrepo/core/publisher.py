"""Publish Transaction — identity, upload, then metadata commit.

States::

    idle -> validating -> uploading -> committing_metadata -> published
               |              |                 |
               v              v                 v
           rejected         failed            failed

Metadata is written strictly after the upload succeeds and never
concurrently with it. A failed commit leaves the artifact stored with no
record referencing it (an orphaned artifact); the outcome says so
explicitly so the operator can reconcile or re-publish.

Only one transaction runs per session. A request arriving while one is in
flight is rejected at the idle gate; it is not queued.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from shellrepo.core.errors import (
    CatalogStoreError,
    MetadataCommitError,
    UploadError,
    ValidationError,
)
from shellrepo.core.identity import IdentityBootstrapper
from shellrepo.core.uploader import (
    ArtifactUploader,
    normalize_package_name,
    package_file_name,
)
from shellrepo.models.identity import Identity
from shellrepo.models.packages import PackageDraft
from shellrepo.models.publish import (
    VALID_TRANSITIONS,
    PackageForm,
    PublishErrorKind,
    PublishOutcome,
    PublishRequest,
    PublishState,
    PublishTransition,
)
from shellrepo.models.uploads import UploadFailed, UploadSession
from shellrepo.ports import CatalogStore

logger = logging.getLogger(__name__)

StatusListener = Callable[["Publisher"], None]

MISSING_FIELDS_MESSAGE = "Please fill all fields and select a file."


class InvalidTransitionError(RuntimeError):
    """Raised when a requested publish state transition is not valid."""


# ---------------------------------------------------------------------------
# One attempt
# ---------------------------------------------------------------------------


class PublishTransaction:
    """State machine for a single publish attempt.

    Enforces ``VALID_TRANSITIONS`` and records every transition.
    """

    def __init__(self, transaction_id: str | None = None) -> None:
        self.transaction_id = transaction_id or f"pub-{uuid.uuid4().hex[:12]}"
        self._state = PublishState.IDLE
        self._history: list[PublishTransition] = []

    @property
    def state(self) -> PublishState:
        return self._state

    @property
    def history(self) -> tuple[PublishTransition, ...]:
        return tuple(self._history)

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self._state]

    def transition(self, target: PublishState, reason: str = "") -> PublishTransition:
        """Move to *target*, raising ``InvalidTransitionError`` if not allowed."""
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {self.transaction_id} from {self._state.value} "
                f"to {target.value}. Allowed: {sorted(s.value for s in allowed)}"
            )
        record = PublishTransition(from_state=self._state, to_state=target, reason=reason)
        self._history.append(record)
        self._state = target
        logger.debug(
            "%s: %s -> %s %s", self.transaction_id, record.from_state.value,
            target.value, reason,
        )
        return record


# ---------------------------------------------------------------------------
# Session-level publisher
# ---------------------------------------------------------------------------


class Publisher:
    """Runs publish transactions for one session and owns the form state.

    Parameters
    ----------
    bootstrapper:
        Identity Bootstrapper; publishing is rejected until it is ready.
    uploader:
        Artifact Uploader used for the binary payload.
    store:
        Catalog store the package record is committed to.
    collection_path:
        Collection holding package records.
    artifact_path:
        Maps an artifact file name to its storage destination.
    allow_degraded:
        Whether a session running under a fallback identity may publish.
    """

    def __init__(
        self,
        bootstrapper: IdentityBootstrapper,
        uploader: ArtifactUploader,
        store: CatalogStore,
        *,
        collection_path: str,
        artifact_path: Callable[[str], str],
        allow_degraded: bool = True,
    ) -> None:
        self._bootstrapper = bootstrapper
        self._uploader = uploader
        self._store = store
        self._collection_path = collection_path
        self._artifact_path = artifact_path
        self._allow_degraded = allow_degraded

        self.form = PackageForm()
        self._active: PublishTransaction | None = None
        self._last: PublishTransaction | None = None
        self._last_outcome: PublishOutcome | None = None
        self._progress = 0.0
        self._message = ""
        self._listeners: list[StatusListener] = []

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._active is not None

    @property
    def state(self) -> PublishState:
        """State of the in-flight transaction, else of the last one."""
        current = self._active or self._last
        return current.state if current else PublishState.IDLE

    @property
    def progress(self) -> float:
        """Upload progress of the in-flight transaction, 0 to 100."""
        return self._progress

    @property
    def message(self) -> str:
        """Latest human-readable status message."""
        return self._message

    @property
    def last_outcome(self) -> PublishOutcome | None:
        return self._last_outcome

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Call *listener* whenever progress or the status message changes."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    async def publish(self, request: PublishRequest | None = None) -> PublishOutcome:
        """Run one publish transaction and return its terminal outcome.

        When *request* is given its values are written into ``form`` first,
        so they stay available for resubmission if the attempt fails.
        """
        if self._active is not None:
            busy = PublishTransaction()
            busy.transition(PublishState.VALIDATING)
            busy.transition(PublishState.REJECTED, "transaction in progress")
            logger.info(
                "Rejected publish request: %s is still %s.",
                self._active.transaction_id,
                self._active.state.value,
            )
            return PublishOutcome(
                transaction_id=busy.transaction_id,
                state=busy.state,
                message="Another upload is already in progress.",
                error_kind=PublishErrorKind.BUSY,
                transitions=busy.history,
            )

        txn = PublishTransaction()
        self._active = txn
        try:
            outcome = await self._run(txn, request)
        finally:
            self._active = None
            self._last = txn
        self._last_outcome = outcome
        return outcome

    async def _run(
        self, txn: PublishTransaction, request: PublishRequest | None
    ) -> PublishOutcome:
        if request is not None:
            self.form.fill(request)
        txn.transition(PublishState.VALIDATING)

        try:
            request, identity = self._validate()
        except ValidationError as exc:
            txn.transition(PublishState.REJECTED, str(exc))
            return self._finish(txn, str(exc), PublishErrorKind.VALIDATION)

        name = request.name.strip()
        version = request.version.strip()
        file_name = package_file_name(name, version, request.file_name.strip())
        path = self._artifact_path(file_name)
        txn.transition(PublishState.UPLOADING, path)
        self._set_status("Starting upload...", 0.0)

        try:
            result = await self._uploader.upload(
                path, request.data, on_progress=self._on_progress
            )
        except Exception as exc:
            logger.exception("Upload of %s raised.", path)
            result = UploadFailed(path=path, error=str(exc) or type(exc).__name__)
        if isinstance(result, UploadFailed):
            error = UploadError(f"Upload failed: {result.error}")
            txn.transition(PublishState.FAILED, str(error))
            return self._finish(
                txn, str(error), PublishErrorKind.UPLOAD,
                file_name=file_name, artifact_path=path,
            )

        txn.transition(PublishState.COMMITTING_METADATA, result.download_url)
        self._set_status("Upload successful. Saving package info...", 100.0)
        draft = PackageDraft(
            name=name.lower(),
            display_name=name,
            description=request.description,
            version=version,
            file_name=file_name,
            file_url=result.download_url,
            uploader_id=identity.user_id,
        )
        try:
            record_id = await self._store.create_record(
                self._collection_path, draft.to_fields()
            )
        except CatalogStoreError as exc:
            error = MetadataCommitError(
                f"Failed to save package info: {exc}. The file was already "
                f"uploaded to {path} and may exist remotely without a catalog entry."
            )
            logger.error("Metadata commit for %s failed after upload: %s", path, exc)
            txn.transition(PublishState.FAILED, str(error))
            return self._finish(
                txn, str(error), PublishErrorKind.METADATA_COMMIT,
                file_name=file_name, artifact_path=path, file_url=result.download_url,
            )

        txn.transition(PublishState.PUBLISHED, record_id)
        self.form.clear()
        logger.info(
            "Published %s v%s as record %s.", draft.display_name, draft.version, record_id
        )
        return self._finish(
            txn,
            "Package saved successfully! Package managers can now fetch it.",
            file_name=file_name,
            artifact_path=path,
            file_url=result.download_url,
            record_id=record_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate(self) -> tuple[PublishRequest, Identity]:
        request = self.form.to_request()
        if (
            not request.name.strip()
            or not request.description.strip()
            or not request.version.strip()
            or not request.file_name.strip()
            or request.data is None
        ):
            raise ValidationError(MISSING_FIELDS_MESSAGE)
        if not normalize_package_name(request.name.strip()):
            raise ValidationError(
                f"Package name {request.name!r} has no characters usable in a file name."
            )
        if any(sep in request.version for sep in ("/", "\\")):
            raise ValidationError("Version must not contain path separators.")

        identity = self._bootstrapper.identity
        if not self._bootstrapper.is_ready or identity is None:
            raise ValidationError("Identity is not ready yet; try again shortly.")
        if identity.is_fallback and not self._allow_degraded:
            raise ValidationError(
                "Publishing requires an authenticated identity; "
                f"{self._bootstrapper.auth_error or 'authentication failed'}."
            )
        return request, identity

    def _on_progress(self, session: UploadSession) -> None:
        self._set_status(f"Upload is {session.percent:.0f}% done", session.percent)

    def _finish(
        self,
        txn: PublishTransaction,
        message: str,
        error_kind: PublishErrorKind | None = None,
        **details: str,
    ) -> PublishOutcome:
        self._set_status(message, 0.0)
        return PublishOutcome(
            transaction_id=txn.transaction_id,
            state=txn.state,
            message=message,
            error_kind=error_kind,
            transitions=txn.history,
            **details,
        )

    def _set_status(self, message: str, progress: float) -> None:
        self._message = message
        self._progress = progress
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Status listener %r failed.", listener)
