"""Declaration ledger: works, declarations and append-only revisions."""

import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ctad_api.errors import ConflictError, NotFoundError, ValidationError
from ctad_api.ledger.audio import AudioUpload, fingerprint_uploads
from ctad_api.models import AudioReference, Declaration, DeclarationRevision, Work
from ctad_api.settings import get_settings
from ctad_api.utils.metrics import audio_references_recorded, revisions_appended, works_created

logger = logging.getLogger(__name__)

REVISION_APPEND_ATTEMPTS = 3


def _require_text(value: Optional[str], field: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message, field=field)
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    """Blank optional text is stored as NULL ("unchanged" / "not given")."""
    if value is None:
        return None
    return value.strip() or None


class DeclarationLedger:
    """Creation and append-only amendment of authorship records."""

    def __init__(self, db: Session):
        """Initialize ledger."""
        self.db = db
        self.settings = get_settings()

    def create_work(
        self,
        title: Optional[str],
        intent: Optional[str],
        tools: Optional[str],
        ai_used: bool = False,
        contributors: Optional[str] = None,
        audio_files: Iterable[AudioUpload] = (),
    ) -> Work:
        """
        Create a Work, its Declaration and one AudioReference per non-empty file.

        All rows are committed in a single transaction; on any failure nothing
        is persisted.

        Raises:
            ValidationError: title, intent or tools missing or blank, or an
                audio file over the configured size limit.
            ConflictError: duplicate key on insert.
        """
        title = _require_text(title, "title", "Work title is required")
        intent = _require_text(intent, "intent", "Intent statement is required")
        tools = _require_text(tools, "tools", "Tools used is required")

        audio_files = list(audio_files)
        for upload in audio_files:
            self.check_audio_size(upload.file_name, upload.size)
        fingerprints = fingerprint_uploads(audio_files)

        work = Work(title=title)
        work.declaration = Declaration(
            intent=intent,
            tools=tools,
            ai_used=bool(ai_used),
            contributors=_optional_text(contributors),
            audio_refs=[
                AudioReference(file_name=fp.file_name, sha256=fp.sha256, position=position)
                for position, fp in enumerate(fingerprints)
            ],
        )
        self.db.add(work)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Duplicate work") from e
        except Exception:
            self.db.rollback()
            raise

        works_created.inc()
        audio_references_recorded.inc(len(fingerprints))
        logger.info(
            "Work created",
            extra={
                "work_id": work.id,
                "declaration_id": work.declaration.id,
                "audio_references": len(fingerprints),
            },
        )
        return self.get_work(work.id)

    def check_audio_size(self, file_name: str, size: Optional[int]):
        """Raise ValidationError when an upload exceeds ``max_audio_file_bytes``."""
        if size is not None and size > self.settings.max_audio_file_bytes:
            raise ValidationError(
                f"Audio file '{file_name}' exceeds the maximum size of "
                f"{self.settings.max_audio_file_bytes} bytes",
                field="audioFiles",
            )

    def create_revision(
        self,
        declaration_id: Optional[str],
        change_note: Optional[str],
        intent: Optional[str] = None,
        tools: Optional[str] = None,
        ai_used: Optional[bool] = None,
        contributors: Optional[str] = None,
    ) -> DeclarationRevision:
        """
        Append a revision to a declaration.

        ``None`` (or a blank string) for an override means "unchanged". The
        declaration and earlier revisions are never touched.

        Raises:
            ValidationError: declaration_id missing or change_note blank.
            NotFoundError: no declaration with that id.
        """
        if not declaration_id:
            raise ValidationError("Declaration ID is required", field="declarationId")
        change_note = _require_text(change_note, "changeNote", "Change note is required")

        declaration = self.db.query(Declaration).filter(Declaration.id == declaration_id).first()
        if not declaration:
            raise NotFoundError("Declaration not found")

        for attempt in range(1, REVISION_APPEND_ATTEMPTS + 1):
            revision = DeclarationRevision(
                declaration_id=declaration.id,
                sequence=self._next_sequence(declaration.id),
                change_note=change_note,
                intent=_optional_text(intent),
                tools=_optional_text(tools),
                ai_used=ai_used,
                contributors=_optional_text(contributors),
            )
            self.db.add(revision)
            try:
                self.db.commit()
                break
            except IntegrityError as e:
                # Another request took this sequence number.
                self.db.rollback()
                if attempt == REVISION_APPEND_ATTEMPTS:
                    raise ConflictError("Could not append revision, please retry") from e
                logger.warning(
                    "Revision sequence collision, retrying",
                    extra={"declaration_id": declaration_id, "attempt": attempt},
                )

        revisions_appended.inc()
        logger.info(
            "Revision appended",
            extra={
                "declaration_id": declaration.id,
                "revision_id": revision.id,
                "sequence": revision.sequence,
            },
        )
        return revision

    def _next_sequence(self, declaration_id: str) -> int:
        current = (
            self.db.query(func.max(DeclarationRevision.sequence))
            .filter(DeclarationRevision.declaration_id == declaration_id)
            .scalar()
        )
        return (current or 0) + 1

    def get_work(self, work_id: str) -> Optional[Work]:
        """Fetch a work with its declaration, revisions and audio references."""
        return (
            self.db.query(Work)
            .options(
                selectinload(Work.declaration).selectinload(Declaration.revisions),
                selectinload(Work.declaration).selectinload(Declaration.audio_refs),
            )
            .filter(Work.id == work_id)
            .first()
        )

    def list_works(self) -> list[Work]:
        """All works, newest first."""
        return (
            self.db.query(Work)
            .options(
                selectinload(Work.declaration).selectinload(Declaration.revisions),
                selectinload(Work.declaration).selectinload(Declaration.audio_refs),
            )
            .order_by(Work.created_at.desc())
            .all()
        )

    def get_declaration(self, declaration_id: str) -> Declaration:
        declaration = self.db.query(Declaration).filter(Declaration.id == declaration_id).first()
        if not declaration:
            raise NotFoundError("Declaration not found")
        return declaration


def effective_declaration(declaration: Declaration) -> dict:
    """Declaration claims with every revision's present overrides applied in order."""
    current = {
        "intent": declaration.intent,
        "tools": declaration.tools,
        "aiUsed": declaration.ai_used,
        "contributors": declaration.contributors,
    }
    for revision in declaration.revisions:
        if revision.intent is not None:
            current["intent"] = revision.intent
        if revision.tools is not None:
            current["tools"] = revision.tools
        if revision.ai_used is not None:
            current["aiUsed"] = revision.ai_used
        if revision.contributors is not None:
            current["contributors"] = revision.contributors
    current["revisionCount"] = len(declaration.revisions)
    return current
