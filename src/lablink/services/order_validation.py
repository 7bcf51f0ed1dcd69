"""Field validation for incoming orders.

Pure-function module: NO database access.  Returns every problem at once
so the order form can highlight all bad fields in one round trip.
"""

import re

from lablink.domain.enums import RestorationType, ShadeSystem, Urgency

VALID_RESTORATION_TYPES = [t.value for t in RestorationType]
VALID_SHADE_SYSTEMS = [s.value for s in ShadeSystem]
VALID_URGENCY_LEVELS = [u.value for u in Urgency]

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def _check_name(data: dict, key: str, label: str, errors: list[dict]) -> None:
    value = data.get(key)
    if not value or not isinstance(value, str):
        errors.append(_error(key, f"{label} is required"))
    elif len(value.strip()) < 2:
        errors.append(_error(key, f"{label} must be at least 2 characters"))
    elif len(value) > 100:
        errors.append(_error(key, f"{label} must be less than 100 characters"))


def _check_choice(data: dict, key: str, label: str, choices: list[str], errors: list[dict]) -> None:
    value = data.get(key)
    if not value or not isinstance(value, str):
        errors.append(_error(key, f"{label} is required"))
    elif value not in choices:
        errors.append(_error(key, f"Invalid {label.lower()}. Must be one of: {', '.join(choices)}"))


def validate_order_payload(data: dict) -> list[dict]:
    """Validate a camelCase order payload.

    Returns
    -------
    list[dict]
        ``{"field", "message"}`` entries; empty when the payload is valid.
    """
    errors: list[dict] = []

    _check_name(data, "doctorName", "Doctor name", errors)
    _check_name(data, "patientName", "Patient name", errors)
    _check_choice(data, "restorationType", "Restoration type", VALID_RESTORATION_TYPES, errors)

    shade = data.get("teethShade")
    if not shade or not isinstance(shade, str):
        errors.append(_error("teethShade", "Teeth shade is required"))
    elif not shade.strip():
        errors.append(_error("teethShade", "Teeth shade cannot be empty"))
    elif len(shade) > 50:
        errors.append(_error("teethShade", "Teeth shade must be less than 50 characters"))

    _check_choice(data, "shadeSystem", "Shade system", VALID_SHADE_SYSTEMS, errors)

    teeth = data.get("teethNumber")
    if not teeth or not isinstance(teeth, str):
        errors.append(_error("teethNumber", "Teeth number is required"))
    elif not teeth.strip():
        errors.append(_error("teethNumber", "At least one tooth must be selected"))
    elif len(teeth) > 100:
        errors.append(_error("teethNumber", "Teeth number must be less than 100 characters"))

    _check_choice(data, "urgency", "Urgency level", VALID_URGENCY_LEVELS, errors)

    notes = data.get("biologicalNotes")
    if notes and not isinstance(notes, str):
        errors.append(_error("biologicalNotes", "Biological notes must be a string"))
    elif notes and len(notes) > 1000:
        errors.append(_error("biologicalNotes", "Biological notes must be less than 1000 characters"))

    for key, label in (("htmlExport", "HTML export"), ("photosLink", "Photos link")):
        if data.get(key) and not isinstance(data[key], str):
            errors.append(_error(key, f"{label} must be a string"))

    lab_id = data.get("assignedLabId")
    if lab_id is not None:
        if not isinstance(lab_id, str):
            errors.append(_error("assignedLabId", "Lab ID must be a string"))
        elif lab_id and not _UUID_RE.match(lab_id):
            errors.append(_error("assignedLabId", "Lab ID must be a valid UUID"))

    return errors
