"""SQLAlchemy ORM models for LabLink.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- DateTime for timestamps (no TIMESTAMPTZ)
- Enumerated columns stored as plain strings
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lablink.infra.database import Base


# ---------------------------------------------------------------------------
# Lab Directory
# ---------------------------------------------------------------------------


class Lab(Base):
    """Dental laboratory profile. Labs are deactivated, never deleted."""

    __tablename__ = "labs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    trust_score = Column(Float, default=0.0)
    min_price_egp = Column(Float, nullable=True)
    max_price_egp = Column(Float, nullable=True)
    is_new_lab = Column(Boolean, default=False)
    visibility_tier = Column(String(20), default="emerging")  # emerging, established, trusted, elite
    standard_sla_days = Column(Integer, default=7)
    urgent_sla_days = Column(Integer, default=3)
    current_load = Column(Integer, default=0)
    max_capacity = Column(Integer, default=10)
    performance_score = Column(Float, nullable=True)  # 0-5
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    pricing = relationship("LabPricing", back_populates="lab")
    specializations = relationship("LabSpecialization", back_populates="lab")
    reviews = relationship("LabReview", back_populates="lab")
    performance_metrics = relationship("LabPerformanceMetrics", back_populates="lab", uselist=False)


class LabPricing(Base):
    """Per-lab, per-restoration-type price terms."""

    __tablename__ = "lab_pricing"
    __table_args__ = (UniqueConstraint("lab_id", "restoration_type"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lab_id = Column(String(36), ForeignKey("labs.id"), nullable=False, index=True)
    restoration_type = Column(String(50), nullable=False, index=True)
    fixed_price = Column(Float, nullable=True)
    min_price = Column(Float, nullable=True)
    max_price = Column(Float, nullable=True)
    includes_rush = Column(Boolean, default=False)
    rush_surcharge_percent = Column(Float, nullable=True)
    created_at = Column(DateTime, default=func.now())

    lab = relationship("Lab", back_populates="pricing")


class LabSpecialization(Base):
    """Expertise a lab has for one restoration type (zero or one row per pair)."""

    __tablename__ = "lab_specializations"
    __table_args__ = (UniqueConstraint("lab_id", "restoration_type"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lab_id = Column(String(36), ForeignKey("labs.id"), nullable=False, index=True)
    restoration_type = Column(String(50), nullable=False, index=True)
    expertise_level = Column(String(20), nullable=False, default="basic")  # basic, intermediate, expert
    turnaround_days = Column(Integer, nullable=True)

    lab = relationship("Lab", back_populates="specializations")


class LabReview(Base):
    """A single rating left for a lab. Aggregated at read time."""

    __tablename__ = "lab_reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lab_id = Column(String(36), ForeignKey("labs.id"), nullable=False, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())

    lab = relationship("Lab", back_populates="reviews")


class LabPerformanceMetrics(Base):
    """Aggregate delivery counters, maintained outside the ranking code."""

    __tablename__ = "lab_performance_metrics"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lab_id = Column(String(36), ForeignKey("labs.id"), nullable=False, unique=True)
    completed_orders = Column(Integer, default=0)
    on_time_deliveries = Column(Integer, default=0)
    total_orders = Column(Integer, default=0)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    lab = relationship("Lab", back_populates="performance_metrics")


class PreferredLab(Base):
    """A dentist's ordered lab preference (priority_order 1 = most preferred)."""

    __tablename__ = "preferred_labs"
    __table_args__ = (UniqueConstraint("dentist_id", "lab_id"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dentist_id = Column(String(36), nullable=False, index=True)
    lab_id = Column(String(36), ForeignKey("labs.id"), nullable=False)
    priority_order = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class Order(Base):
    """Restoration order placed by a dentist."""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = Column(String(32), unique=True, nullable=False)
    doctor_id = Column(String(36), nullable=True, index=True)
    doctor_name = Column(String(100), nullable=False)
    patient_name = Column(String(100), nullable=False)
    restoration_type = Column(String(50), nullable=False)
    teeth_shade = Column(String(50), nullable=False)
    shade_system = Column(String(30), nullable=True)
    teeth_number = Column(String(100), nullable=False)
    biological_notes = Column(Text, default="")
    urgency = Column(String(10), nullable=False, default="Normal")
    photos_link = Column(String(500), default="")
    html_export = Column(Text, default="")
    status = Column(String(30), nullable=False, default="Pending")
    assigned_lab_id = Column(String(36), ForeignKey("labs.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    assigned_lab = relationship("Lab")


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class RateLimit(Base):
    """Request counter for one (identifier, endpoint) window."""

    __tablename__ = "rate_limits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    identifier = Column(String(255), nullable=False, index=True)
    endpoint = Column(String(100), nullable=False, index=True)
    request_count = Column(Integer, nullable=False, default=0)
    window_start = Column(DateTime, nullable=False)
