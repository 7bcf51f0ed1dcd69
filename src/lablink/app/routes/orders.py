"""Order intake API routes.

Orders are rate limited per doctor (per minute and per hour), validated
field by field, and inserted with a generated order number.  The lab may
be chosen up front or left empty for auto-assignment.
"""

import logging
import secrets
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lablink.app.config import get_settings
from lablink.domain.models import Order
from lablink.domain.schemas import OrderCreateResponse, OrderSummary
from lablink.infra.database import get_db
from lablink.services.errors import RateLimitExceededError
from lablink.services.order_validation import validate_order_payload
from lablink.services.rate_limiter import HOUR, MINUTE, enforce_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["orders"])


def generate_order_number() -> str:
    """``ORD-YYYYMMDD-XXXXXX`` with a random hex suffix."""
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"ORD-{today}-{secrets.token_hex(3).upper()}"


def _strip(value) -> str:
    return value.strip() if isinstance(value, str) else ""


@router.post("", response_model=OrderCreateResponse)
async def create_order(
    payload: dict = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Create an order for the calling doctor."""
    settings = get_settings()
    doctor_id = payload.get("doctorId")
    if not doctor_id or not isinstance(doctor_id, str):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "message": "One or more fields contain invalid data",
                "validationErrors": [{"field": "doctorId", "message": "Doctor ID is required"}],
            },
        )

    try:
        await enforce_rate_limit(
            db, doctor_id, "create-order_minute",
            settings.order_create_max_per_minute, MINUTE,
        )
        await enforce_rate_limit(
            db, doctor_id, "create-order_hour",
            settings.order_create_max_per_hour, HOUR,
        )
    except RateLimitExceededError as exc:
        logger.info("Rate limit exceeded for user: %s", doctor_id)
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many requests",
                "message": str(exc),
                "resetAt": exc.reset_at.isoformat(),
            },
            headers={"Retry-After": str(exc.retry_after or 60)},
        )

    errors = validate_order_payload(payload)
    if errors:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "message": "One or more fields contain invalid data",
                "validationErrors": errors,
            },
        )

    order = Order(
        id=str(uuid.uuid4()),
        order_number=generate_order_number(),
        doctor_id=doctor_id,
        doctor_name=_strip(payload["doctorName"]),
        patient_name=_strip(payload["patientName"]),
        restoration_type=payload["restorationType"],
        teeth_shade=_strip(payload["teethShade"]),
        shade_system=payload["shadeSystem"],
        teeth_number=_strip(payload["teethNumber"]),
        biological_notes=_strip(payload.get("biologicalNotes")),
        urgency=payload["urgency"],
        assigned_lab_id=payload.get("assignedLabId") or None,
        photos_link=payload.get("photosLink") or "",
        html_export=payload.get("htmlExport") or "",
        status="Pending",
        created_at=datetime.now(timezone.utc).replace(tzinfo=None),
    )

    try:
        db.add(order)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Database error creating order: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Database error", "message": str(exc)},
        )

    logger.info("Order created successfully: %s", order.order_number)

    return OrderCreateResponse(
        order=OrderSummary(
            id=order.id,
            order_number=order.order_number,
            patient_name=order.patient_name,
            restoration_type=order.restoration_type,
            urgency=order.urgency,
            status=order.status,
            created_at=order.created_at,
            assigned_lab_id=order.assigned_lab_id,
        ),
    )
