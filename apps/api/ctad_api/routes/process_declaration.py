"""Process declaration ingestion endpoint for the browser extension.

Every response, including errors and the CORS preflight, carries the CORS
headers: the extension posts from arbitrary origins.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ctad_api.db.session import get_db
from ctad_api.errors import CTADError, error_payload
from ctad_api.rewards.engine import RewardEngine
from ctad_api.rewards.ingest import ProcessCaptureService
from ctad_api.settings import get_settings

router = APIRouter(prefix="/api", tags=["process-declaration"])
logger = logging.getLogger(__name__)


def cors_headers() -> dict:
    return {
        "Access-Control-Allow-Origin": get_settings().ingest_cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


@router.options("/process-declaration")
async def preflight():
    """CORS preflight."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers())


@router.post("/process-declaration")
async def create_process_declaration(request: Request, db: Session = Depends(get_db)):
    """Store a process capture and, when rewardable, credit the contributor."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Invalid JSON in request body"},
            headers=cors_headers(),
        )

    try:
        result = ProcessCaptureService(db).submit(payload)
    except CTADError as e:
        if e.status_code >= 500:
            logger.error(f"Process declaration error: {e.message}")
        return JSONResponse(status_code=e.status_code, content=error_payload(e), headers=cors_headers())
    except Exception:
        logger.exception("Process declaration error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to create process declaration"},
            headers=cors_headers(),
        )

    body = {"success": True, "id": result.declaration_id}
    if result.reward is not None:
        body["reward"] = result.reward.to_response()
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body, headers=cors_headers())


@router.get("/process-declaration")
async def get_process_stats(
    contributor_id: Optional[str] = Query(None, alias="contributorId"),
    db: Session = Depends(get_db),
):
    """Contributor stats when ``contributorId`` is given, else consenting aggregates."""
    engine = RewardEngine(db)
    try:
        if contributor_id:
            stats = engine.get_contributor_stats(contributor_id)
            if stats is None:
                return JSONResponse(
                    status_code=status.HTTP_404_NOT_FOUND,
                    content={"success": False, "error": "Contributor not found"},
                    headers=cors_headers(),
                )
            return JSONResponse(
                content={"success": True, "stats": stats.model_dump(mode="json", by_alias=True)},
                headers=cors_headers(),
            )

        return JSONResponse(
            content={"success": True, "stats": engine.get_aggregate_stats()},
            headers=cors_headers(),
        )
    except Exception:
        logger.exception("Stats retrieval error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to retrieve statistics"},
            headers=cors_headers(),
        )
