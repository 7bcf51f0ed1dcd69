"""Tests for order payload validation."""

import pytest

from lablink.services.order_validation import validate_order_payload


def _payload(**overrides):
    data = {
        "doctorName": "Dr. Amal Hassan",
        "patientName": "Omar Ali",
        "restorationType": "Zirconia",
        "teethShade": "A2",
        "shadeSystem": "VITA Classical",
        "teethNumber": "11, 12",
        "urgency": "Normal",
        "biologicalNotes": "",
    }
    data.update(overrides)
    return data


def _fields(errors):
    return [e["field"] for e in errors]


class TestValidateOrderPayload:

    def test_valid_payload(self):
        assert validate_order_payload(_payload()) == []

    def test_valid_with_assigned_lab(self):
        payload = _payload(assignedLabId="3f2b8c1e-9a4d-4e2f-8b7a-1c2d3e4f5a6b")
        assert validate_order_payload(payload) == []

    def test_empty_payload_reports_every_required_field(self):
        assert _fields(validate_order_payload({})) == [
            "doctorName",
            "patientName",
            "restorationType",
            "teethShade",
            "shadeSystem",
            "teethNumber",
            "urgency",
        ]

    @pytest.mark.parametrize("value,message", [
        (" A ", "Doctor name must be at least 2 characters"),
        ("x" * 101, "Doctor name must be less than 100 characters"),
    ])
    def test_doctor_name_length(self, value, message):
        errors = validate_order_payload(_payload(doctorName=value))
        assert errors == [{"field": "doctorName", "message": message}]

    def test_unknown_restoration_type(self):
        errors = validate_order_payload(_payload(restorationType="Gold"))
        assert errors[0]["field"] == "restorationType"
        assert errors[0]["message"].startswith("Invalid restoration type. Must be one of: Zirconia")

    def test_unknown_urgency(self):
        errors = validate_order_payload(_payload(urgency="ASAP"))
        assert errors == [{
            "field": "urgency",
            "message": "Invalid urgency level. Must be one of: Normal, Urgent",
        }]

    def test_blank_teeth_fields(self):
        errors = validate_order_payload(_payload(teethShade="   ", teethNumber="  "))
        assert errors == [
            {"field": "teethShade", "message": "Teeth shade cannot be empty"},
            {"field": "teethNumber", "message": "At least one tooth must be selected"},
        ]

    def test_long_notes(self):
        errors = validate_order_payload(_payload(biologicalNotes="n" * 1001))
        assert _fields(errors) == ["biologicalNotes"]

    def test_non_string_optional_fields(self):
        errors = validate_order_payload(_payload(htmlExport=12, photosLink=["a"]))
        assert _fields(errors) == ["htmlExport", "photosLink"]

    @pytest.mark.parametrize("lab_id,message", [
        ("not-a-uuid", "Lab ID must be a valid UUID"),
        (42, "Lab ID must be a string"),
    ])
    def test_bad_assigned_lab(self, lab_id, message):
        errors = validate_order_payload(_payload(assignedLabId=lab_id))
        assert errors == [{"field": "assignedLabId", "message": message}]

    def test_empty_assigned_lab_means_auto_assign(self):
        assert validate_order_payload(_payload(assignedLabId="")) == []
