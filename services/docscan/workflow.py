"""Workflow controller: the capture -> extract -> edit -> verify state machine.

Owns the session's document, field map, verdicts and quality report. Every
remote result replaces the previous value wholesale; nothing is merged.
Errors are caught at the boundary of each operation, turned into a
user-visible message and the state is rolled back to the last stable one.
"""

import functools
import logging
import threading
from enum import Enum

from encoding import encode_document, preview_url
from extraction import ExtractionError, extract_fields
from model_client import MissingCredentialError, ModelClient
from models import Document, DocumentType, FieldMap, QualityReport, VerificationMap
from quality import QualityAnalysisError, assess_quality
from verification import VerificationError, verify_fields

logger = logging.getLogger(__name__)

NO_DOCUMENT_FOR_EXTRACTION = "Please select a file first."
NO_DOCUMENT_FOR_VERIFICATION = "An image is required for verification."
NO_FIELDS_TO_EDIT = "There are no extracted fields to edit yet."
NO_FIELDS_TO_VERIFY = "There are no fields to verify."


class WorkflowState(str, Enum):
    IDLE = "idle"
    ANALYZING_QUALITY = "analyzing_quality"
    LOADING_EXTRACTION = "loading_extraction"
    EDITING = "editing"
    VERIFYING = "verifying"
    VERIFIED = "verified"


_TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.IDLE: frozenset({WorkflowState.ANALYZING_QUALITY, WorkflowState.LOADING_EXTRACTION}),
    WorkflowState.ANALYZING_QUALITY: frozenset({WorkflowState.IDLE}),
    WorkflowState.LOADING_EXTRACTION: frozenset({WorkflowState.EDITING, WorkflowState.IDLE}),
    WorkflowState.EDITING: frozenset({WorkflowState.VERIFYING, WorkflowState.ANALYZING_QUALITY}),
    WorkflowState.VERIFYING: frozenset({WorkflowState.VERIFIED, WorkflowState.EDITING}),
    WorkflowState.VERIFIED: frozenset(
        {WorkflowState.EDITING, WorkflowState.VERIFYING, WorkflowState.ANALYZING_QUALITY}
    ),
}

EDITABLE_STATES = frozenset({WorkflowState.EDITING, WorkflowState.VERIFYING, WorkflowState.VERIFIED})

# States without a remote call in flight
STABLE_STATES = frozenset({WorkflowState.IDLE, WorkflowState.EDITING, WorkflowState.VERIFIED})

# Remote failures that are reported to the user rather than raised
_RECOVERABLE = (MissingCredentialError, ExtractionError, VerificationError, QualityAnalysisError)


class InvalidTransition(Exception):
    """A transition outside the state table was attempted."""


def _serialized(method):
    """One operation at a time per session; checks and transitions stay atomic."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class WorkflowController:
    """One document-processing session."""

    def __init__(self, client: ModelClient):
        self._client = client
        self._state = WorkflowState.IDLE
        self._document: Document | None = None
        self._preview_url: str | None = None
        self._document_type = DocumentType.GENERIC
        self._fields: FieldMap = {}
        self._verification: VerificationMap = {}
        self._quality_report: QualityReport | None = None
        self._error: str | None = None
        self._lock = threading.RLock()

    # -- read-only view --------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def preview_url(self) -> str | None:
        return self._preview_url

    @property
    def document_type(self) -> DocumentType:
        return self._document_type

    @property
    def fields(self) -> FieldMap:
        return dict(self._fields)

    @property
    def verification(self) -> VerificationMap:
        return dict(self._verification)

    @property
    def quality_report(self) -> QualityReport | None:
        return self._quality_report

    @property
    def error(self) -> str | None:
        return self._error

    # -- operations ------------------------------------------------------

    @_serialized
    def select_document(self, document: Document) -> None:
        """Start over with a new document and analyze its quality.

        Any in-progress extraction, edits or verdicts for the previous
        document are discarded, whatever state the session was in.
        """
        if self._state not in STABLE_STATES:
            self._error = f"Cannot select a new document while {self._state.value}."
            return

        logger.info(
            "Document selected: type=%s size=%d bytes",
            document.media_type, len(document.content),
        )
        self._document = document
        self._preview_url = preview_url(document)
        self._fields = {}
        self._verification = {}
        self._quality_report = None
        self._document_type = DocumentType.GENERIC
        self._error = None
        self._transition(WorkflowState.ANALYZING_QUALITY)

        try:
            report = assess_quality(self._client, encode_document(document))
        except _RECOVERABLE as e:
            self._fail(e, WorkflowState.IDLE)
            return

        self._quality_report = report
        self._transition(WorkflowState.IDLE)

    @_serialized
    def set_document_type(self, document_type: DocumentType) -> None:
        """Choose the hint used by the next extraction."""
        self._document_type = DocumentType(document_type)

    @_serialized
    def request_extraction(self) -> None:
        self._error = None
        if self._document is None:
            self._error = NO_DOCUMENT_FOR_EXTRACTION
            return
        if self._state is not WorkflowState.IDLE:
            self._error = f"Extraction is not available while {self._state.value}."
            return

        self._transition(WorkflowState.LOADING_EXTRACTION)
        try:
            fields = extract_fields(self._client, encode_document(self._document), self._document_type)
        except _RECOVERABLE as e:
            self._fail(e, WorkflowState.IDLE)
            return

        self._fields = fields
        self._verification = {}
        self._transition(WorkflowState.EDITING)

    @_serialized
    def edit_field(self, label: str, value: str) -> None:
        """Set one field. Editing a verified session invalidates every verdict."""
        self._error = None
        if self._state not in EDITABLE_STATES:
            self._error = NO_FIELDS_TO_EDIT
            return

        self._fields = {**self._fields, label: value}
        if self._state is WorkflowState.VERIFIED:
            self._verification = {}
            self._transition(WorkflowState.EDITING)

    @_serialized
    def request_verification(self) -> None:
        self._error = None
        if self._document is None:
            self._error = NO_DOCUMENT_FOR_VERIFICATION
            return
        if self._state not in (WorkflowState.EDITING, WorkflowState.VERIFIED):
            self._error = f"Verification is not available while {self._state.value}."
            return
        if not self._fields:
            self._error = NO_FIELDS_TO_VERIFY
            return

        self._transition(WorkflowState.VERIFYING)
        try:
            results = verify_fields(self._client, encode_document(self._document), dict(self._fields))
        except _RECOVERABLE as e:
            self._fail(e, WorkflowState.EDITING)
            return

        self._verification = results
        self._transition(WorkflowState.VERIFIED)

    # -- internals -------------------------------------------------------

    def _transition(self, target: WorkflowState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidTransition(f"{self._state.value} -> {target.value}")
        logger.debug("Workflow %s -> %s", self._state.value, target.value)
        self._state = target

    def _fail(self, error: Exception, rollback: WorkflowState) -> None:
        logger.error("Workflow step failed in %s: %s", self._state.value, error)
        self._error = str(error) or "An unknown error occurred."
        self._transition(rollback)
