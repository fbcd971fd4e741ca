"""Portable JSON rendering of a work's declaration history."""

from datetime import datetime
from typing import Optional

from ctad_api.ledger.service import effective_declaration
from ctad_api.models import AudioReference, Declaration, DeclarationRevision, Work
from ctad_api.settings import get_settings


def iso(value: Optional[datetime]) -> Optional[str]:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None) - value.utcoffset()
    return value.isoformat(timespec="milliseconds") + "Z"


def declaration_to_dict(declaration: Declaration) -> dict:
    return {
        "id": declaration.id,
        "createdAt": iso(declaration.created_at),
        "intent": declaration.intent,
        "tools": declaration.tools,
        "aiUsed": declaration.ai_used,
        "contributors": declaration.contributors,
    }


def audio_reference_to_dict(ref: AudioReference) -> dict:
    return {
        "id": ref.id,
        "createdAt": iso(ref.created_at),
        "fileName": ref.file_name,
        "sha256": ref.sha256,
        "description": ref.description,
    }


def revision_to_dict(revision: DeclarationRevision) -> dict:
    return {
        "id": revision.id,
        "createdAt": iso(revision.created_at),
        "changeNote": revision.change_note,
        "intent": revision.intent,
        "tools": revision.tools,
        "aiUsed": revision.ai_used,
        "contributors": revision.contributors,
    }


def work_detail(work: Work) -> dict:
    """Work with its full history plus the derived current claims."""
    declaration = work.declaration
    return {
        "work": {
            "id": work.id,
            "title": work.title,
            "createdAt": iso(work.created_at),
        },
        "declaration": declaration_to_dict(declaration) if declaration else None,
        "audioReferences": [audio_reference_to_dict(a) for a in declaration.audio_refs] if declaration else [],
        "revisions": [revision_to_dict(r) for r in declaration.revisions] if declaration else [],
        "current": effective_declaration(declaration) if declaration else None,
    }


def build_export_document(work: Work, exported_at: Optional[datetime] = None) -> dict:
    """Versioned export envelope for a work."""
    settings = get_settings()
    detail = work_detail(work)
    return {
        "protocol": settings.export_protocol,
        "version": settings.export_version,
        "exportedAt": iso(exported_at or datetime.utcnow()),
        "work": detail["work"],
        "declaration": detail["declaration"],
        "audioReferences": detail["audioReferences"],
        "revisions": detail["revisions"],
    }


def export_filename(work_id: str) -> str:
    return f"ctad-{work_id}.json"
