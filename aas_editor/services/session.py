"""
Editor sessions.

A session owns one record being edited, its current markup document (with
the line index built from exactly that text) and the validation state.
Every tree mutation bumps the revision, which drops the cached markup and
any earlier "validated" status.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from aas_editor.schemas.environment import AASRecord
from aas_editor.schemas.validation import ValidationReport
from aas_editor.services.xml_encoder import MarkupEncoder
from aas_editor.utils.line_index import LineIndex

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    """Raised for an unknown session id."""


@dataclass
class EditorSession:
    id: str
    record: AASRecord
    revision: int = 0
    markup: str | None = None
    line_index: LineIndex | None = None
    validated_revision: int | None = None
    last_report: ValidationReport | None = None
    validating: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def validated(self) -> bool:
        return self.validated_revision is not None and self.validated_revision == self.revision

    def apply(self, record: AASRecord) -> None:
        """Replace the tree after an edit."""
        self.record = record
        self.revision += 1
        self.markup = None
        self.line_index = None
        self.validated_revision = None

    def apply_repair(self, record: AASRecord, markup: str) -> None:
        """Install a repaired markup document and the tree re-synced from it."""
        self.record = record
        self.revision += 1
        self.validated_revision = None
        self.set_markup(markup)

    def set_markup(self, markup: str) -> None:
        self.markup = markup
        self.line_index = LineIndex.build(markup)

    def ensure_markup(self, encoder: MarkupEncoder) -> str:
        """Current markup, encoding the tree when no document is cached."""
        if self.markup is None:
            self.set_markup(encoder.encode(self.record))
        return self.markup

    def mark_validated(self, revision: int, report: ValidationReport) -> None:
        self.last_report = report
        if report.valid and revision == self.revision:
            self.validated_revision = revision


class SessionStore:
    """In-memory registry of editor sessions."""

    def __init__(self):
        self._sessions: dict[str, EditorSession] = {}

    def create(self, record: AASRecord) -> EditorSession:
        session = EditorSession(id=uuid.uuid4().hex, record=record)
        self._sessions[session.id] = session
        logger.info("Created session %s for %s", session.id, record.idShort)
        return session

    def get(self, session_id: str) -> EditorSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Session '{session_id}' not found") from None

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        logger.info("Deleted session %s", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
