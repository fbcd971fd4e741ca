"""Form-driven work and revision routes, plus library and detail views."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from ctad_api.db.session import get_db
from ctad_api.errors import CTADError, error_payload
from ctad_api.ledger.audio import AudioUpload
from ctad_api.ledger.export import iso, work_detail
from ctad_api.ledger.service import DeclarationLedger

router = APIRouter(tags=["works"])


def _form_bool(value: Optional[str]) -> Optional[bool]:
    """Map the form strings true/false to booleans; anything else is None (unchanged)."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


@router.post("/works")
async def create_work(
    title: Optional[str] = Form(None),
    intent: Optional[str] = Form(None),
    tools: Optional[str] = Form(None),
    ai_used: Optional[str] = Form(None, alias="aiUsed"),
    contributors: Optional[str] = Form(None),
    audio_files: Optional[list[UploadFile]] = File(None, alias="audioFiles"),
    db: Session = Depends(get_db),
):
    """Create a work with its declaration and redirect to the work page."""
    ledger = DeclarationLedger(db)
    try:
        uploads = []
        for upload in audio_files or []:
            # Checked before the upload is read into memory.
            ledger.check_audio_size(upload.filename or "", upload.size)
            uploads.append(AudioUpload(file_name=upload.filename or "", data=await upload.read()))

        work = ledger.create_work(
            title=title,
            intent=intent,
            tools=tools,
            ai_used=ai_used == "true",
            contributors=contributors,
            audio_files=uploads,
        )
    except CTADError as e:
        return JSONResponse(status_code=e.status_code, content=error_payload(e))

    return RedirectResponse(url=f"/works/{work.id}", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/revisions")
async def create_revision(
    declaration_id: Optional[str] = Form(None, alias="declarationId"),
    change_note: Optional[str] = Form(None, alias="changeNote"),
    intent: Optional[str] = Form(None),
    tools: Optional[str] = Form(None),
    ai_used: Optional[str] = Form(None, alias="aiUsed"),
    contributors: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    """Append a revision. The caller refreshes the page of the returned workId."""
    ledger = DeclarationLedger(db)
    try:
        revision = ledger.create_revision(
            declaration_id=declaration_id,
            change_note=change_note,
            intent=intent,
            tools=tools,
            ai_used=_form_bool(ai_used),
            contributors=contributors,
        )
        declaration = ledger.get_declaration(revision.declaration_id)
    except CTADError as e:
        return JSONResponse(status_code=e.status_code, content=error_payload(e))

    return {"success": True, "workId": declaration.work_id, "revisionId": revision.id}


@router.get("/works")
async def list_works(db: Session = Depends(get_db)):
    """Library: every work, newest first."""
    works = DeclarationLedger(db).list_works()
    return [
        {
            "id": work.id,
            "title": work.title,
            "createdAt": iso(work.created_at),
            "aiUsed": work.declaration.ai_used if work.declaration else None,
            "revisionCount": len(work.declaration.revisions) if work.declaration else 0,
            "audioReferenceCount": len(work.declaration.audio_refs) if work.declaration else 0,
        }
        for work in works
    ]


@router.get("/works/{work_id}")
async def get_work(work_id: str, db: Session = Depends(get_db)):
    """Work with declaration, revisions (oldest first) and audio references."""
    work = DeclarationLedger(db).get_work(work_id)
    if not work:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Work {work_id} not found",
        )
    return work_detail(work)
