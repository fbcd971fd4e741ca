"""Export endpoint: a work's declaration history as a downloadable JSON document."""

import json

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ctad_api.db.session import get_db
from ctad_api.ledger.export import build_export_document, export_filename
from ctad_api.ledger.service import DeclarationLedger

router = APIRouter(prefix="/api", tags=["export"])


@router.get("/export/{work_id}")
async def export_work(work_id: str, db: Session = Depends(get_db)):
    """Return the versioned export document for a work."""
    work = DeclarationLedger(db).get_work(work_id)
    if not work:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Work not found"})

    document = build_export_document(work)
    return Response(
        content=json.dumps(document, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(work_id)}"'},
    )
