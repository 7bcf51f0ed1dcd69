"""Display pricing for ranked labs.

Prices are shown in Egyptian pounds, rounded to whole pounds.
"""

from typing import Optional

from lablink.services.lab_scoring import RankedLab

DEFAULT_RUSH_SURCHARGE_PERCENT = 20.0


def format_egp(amount: float) -> str:
    """Format an amount as ``EGP 1,250``."""
    return f"EGP {amount:,.0f}"


def apply_rush_surcharge(
    price: float,
    pricing: dict,
    urgency: str,
    default_percent: float = DEFAULT_RUSH_SURCHARGE_PERCENT,
) -> float:
    """Add the rush surcharge to urgent orders unless rush is already included."""
    if urgency != "Urgent" or pricing.get("includes_rush"):
        return price
    percent = pricing.get("rush_surcharge_percent") or default_percent
    return price * (1 + percent / 100)


def quote_price(
    lab: RankedLab,
    urgency: str,
    default_rush_percent: float = DEFAULT_RUSH_SURCHARGE_PERCENT,
) -> Optional[str]:
    """Price label for a short-listed lab.

    Rules
    -----
    * Fixed price for the restoration type  -> that price (+ rush if urgent)
    * Min/max price for the restoration type -> "EGP min - EGP max"
    * Lab-wide price band                    -> "EGP min - EGP max"
    * Nothing known                          -> None
    """
    pricing = lab.pricing
    if pricing:
        if pricing.get("fixed_price"):
            price = apply_rush_surcharge(pricing["fixed_price"], pricing, urgency, default_rush_percent)
            return format_egp(price)
        if pricing.get("min_price") and pricing.get("max_price"):
            return f"{format_egp(pricing['min_price'])} - {format_egp(pricing['max_price'])}"

    if lab.min_price_egp and lab.max_price_egp:
        return f"{format_egp(lab.min_price_egp)} - {format_egp(lab.max_price_egp)}"

    return None
