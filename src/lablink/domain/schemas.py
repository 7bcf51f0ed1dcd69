"""Pydantic v2 schemas for API request/response validation.

Wire names are camelCase to match the web client; Python attributes stay
snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from lablink.domain.enums import Urgency


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


# ---------------------------------------------------------------------------
# Auto-assignment
# ---------------------------------------------------------------------------


class AutoAssignRequest(BaseModel):
    """Body of the auto-assign call made after an order is created."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId", min_length=1)
    restoration_type: str = Field(alias="restorationType", min_length=1)
    urgency: Urgency = Urgency.NORMAL
    doctor_id: str | None = Field(default=None, alias="doctorId")


class AutoAssignResponse(BaseModel):
    """Successful auto-assignment."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    assigned_lab_id: str = Field(alias="assignedLabId")
    score: float
    reason: str


# ---------------------------------------------------------------------------
# Lab ranking
# ---------------------------------------------------------------------------


class RankedLabResponse(BaseModel):
    """One short-listed lab as shown on the order form."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    trust_score: float
    min_price_egp: float | None = None
    max_price_egp: float | None = None
    is_new_lab: bool
    visibility_tier: str
    standard_sla_days: int | None = None
    urgent_sla_days: int | None = None
    current_load: int
    max_capacity: int
    performance_score: float | None = None
    description: str | None = None
    pricing: dict | None = None
    specialization: dict | None = None
    average_rating: float | None = Field(default=None, alias="averageRating")
    total_reviews: int = Field(default=0, alias="totalReviews")
    completed_orders: int = Field(default=0, alias="completedOrders")
    on_time_rate: float = Field(default=0.0, alias="onTimeRate")
    estimated_delivery_days: int | None = Field(default=None, alias="estimatedDeliveryDays")
    price_label: str | None = Field(default=None, alias="priceLabel")
    rank: int


class LabRankingResponse(BaseModel):
    """Short-list payload for the order form."""

    model_config = ConfigDict(populate_by_name=True)

    ranked_labs: list[RankedLabResponse] = Field(alias="rankedLabs")
    is_loading: bool = Field(default=False, alias="isLoading")
    preferred_lab_ids: list[str] = Field(alias="preferredLabIds")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderSummary(BaseModel):
    """Order fields echoed back after creation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    order_number: str = Field(alias="orderNumber")
    patient_name: str = Field(alias="patientName")
    restoration_type: str = Field(alias="restorationType")
    urgency: str
    status: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    assigned_lab_id: str | None = Field(default=None, alias="assignedLabId")


class OrderCreateResponse(BaseModel):
    """Successful order creation."""

    success: bool = True
    message: str = "Order created successfully"
    order: OrderSummary
