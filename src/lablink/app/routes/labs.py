"""Lab ranking and auto-assignment API routes.

``POST /api/labs/auto-assign`` picks one lab for a freshly created order
and writes it onto the order.  Every failure comes back as a 400 with an
``error`` message so the order-creation workflow can show it as-is.

``GET /api/labs/ranked`` returns the dentist-facing short-list.
"""

import json
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lablink.app.config import get_settings
from lablink.domain.enums import Urgency
from lablink.domain.schemas import (
    AutoAssignRequest,
    AutoAssignResponse,
    LabRankingResponse,
    RankedLabResponse,
)
from lablink.infra.database import get_db, get_session_factory
from lablink.services.auto_assign import auto_assign_lab
from lablink.services.errors import LabLinkError
from lablink.services.lab_pricing import quote_price
from lablink.services.lab_ranking import rank_labs
from lablink.services.rate_limiter import MINUTE, client_identifier, enforce_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/labs", tags=["labs"])


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/auto-assign", response_model=AutoAssignResponse)
async def auto_assign(
    request: Request,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Score all active labs and assign the best one to the order.

    Malformed bodies get the same 400 ``{error}`` response as every other
    failure.  Calls are rate limited per doctor, or per client IP when no
    doctor is given.
    """
    body_bytes = await request.body()
    try:
        payload = json.loads(body_bytes)
    except ValueError:
        return _error("Invalid request: body is not valid JSON")
    if not isinstance(payload, dict):
        return _error("Invalid request: body must be a JSON object")

    try:
        body = AutoAssignRequest.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        return _error(f"Invalid request: {field} {first.get('msg', '')}".strip())

    settings = get_settings()

    try:
        await enforce_rate_limit(
            db,
            identifier=client_identifier(body.doctor_id, request.headers),
            endpoint="auto-assign-lab",
            max_requests=settings.auto_assign_max_per_minute,
            window=MINUTE,
        )
        result = await auto_assign_lab(
            session_factory,
            order_id=body.order_id,
            restoration_type=body.restoration_type,
            urgency=body.urgency.value,
            doctor_id=body.doctor_id,
        )
    except (LabLinkError, SQLAlchemyError) as exc:
        logger.error("Auto-assignment error for order %s: %s", body.order_id, exc)
        return _error(str(exc))

    return AutoAssignResponse(
        assigned_lab_id=result.assigned_lab_id,
        score=result.score,
        reason=result.reason,
    )


@router.get("/ranked", response_model=LabRankingResponse)
async def ranked_labs(
    restoration_type: str = Query(..., alias="restorationType", min_length=1),
    urgency: Urgency = Query(Urgency.NORMAL),
    user_id: str | None = Query(None, alias="userId"),
    limit: int | None = Query(None, ge=1, le=50),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Short-list of labs for an order, preferred labs first."""
    settings = get_settings()

    try:
        result = await rank_labs(
            session_factory,
            restoration_type=restoration_type,
            urgency=urgency.value,
            user_id=user_id,
            limit=limit or settings.ranking_default_limit,
        )
    except SQLAlchemyError as exc:
        logger.error("Lab ranking failed for %s: %s", restoration_type, exc)
        raise HTTPException(status_code=500, detail=f"Lab ranking failed: {exc}")

    return LabRankingResponse(
        ranked_labs=[
            RankedLabResponse(
                **asdict(lab),
                price_label=quote_price(
                    lab, urgency.value, settings.rush_surcharge_default_percent,
                ),
            )
            for lab in result.ranked_labs
        ],
        is_loading=result.is_loading,
        preferred_lab_ids=result.preferred_lab_ids,
    )
