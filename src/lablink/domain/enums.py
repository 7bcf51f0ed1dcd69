"""Domain enumerations for LabLink.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class RestorationType(str, Enum):
    """Category of dental prosthetic an order asks for."""

    ZIRCONIA = "Zirconia"
    ZIRCONIA_LAYER = "Zirconia Layer"
    ZIRCO_MAX = "Zirco-Max"
    PFM = "PFM"
    ACRYLIC = "Acrylic"
    E_MAX = "E-max"


class Urgency(str, Enum):
    """Order urgency; selects which SLA applies."""

    NORMAL = "Normal"
    URGENT = "Urgent"


class ShadeSystem(str, Enum):
    """Shade guide the dentist used when picking the teeth shade."""

    VITA_CLASSICAL = "VITA Classical"
    VITA_3D_MASTER = "VITA 3D-Master"


class VisibilityTier(str, Enum):
    """Coarse reputation bucket used as a ranking tie-breaker."""

    EMERGING = "emerging"
    ESTABLISHED = "established"
    TRUSTED = "trusted"
    ELITE = "elite"


class ExpertiseLevel(str, Enum):
    """How well a lab handles a given restoration type."""

    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class OrderStatus(str, Enum):
    """Production stage of an order."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    READY_FOR_QC = "Ready for QC"
    READY_FOR_DELIVERY = "Ready for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
