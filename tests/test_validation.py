"""Tests for live admission validation."""

import pytest

from hospital_analytics.exceptions import AdmissionValidationError
from hospital_analytics.schemas.records import DEPARTMENTS, NormalizedAdmission
from hospital_analytics.services.validation import collect_admission_errors, validate_admission


def _fields(failures):
    return [f.field for f in failures]


def test_valid_admission(valid_payload):
    assert collect_admission_errors(valid_payload) == []
    admission = validate_admission(valid_payload)
    assert admission == NormalizedAdmission(
        patient_name="Jane Doe",
        department="Cardiology",
        severity=2,
        doctor_name="Dr. Sofia Kim",
        case_type="IP",
    )


def test_names_are_trimmed(valid_payload):
    valid_payload["patient_name"] = "  Jane Doe \t"
    valid_payload["doctor_name"] = " Dr. X "
    admission = validate_admission(valid_payload)
    assert admission.patient_name == "Jane Doe"
    assert admission.doctor_name == "Dr. X"


def test_blank_names_rejected(valid_payload):
    valid_payload["patient_name"] = "   "
    valid_payload["doctor_name"] = ""
    assert _fields(collect_admission_errors(valid_payload)) == ["patient_name", "doctor_name"]


def test_name_length_bound(valid_payload):
    valid_payload["patient_name"] = "x" * 100
    assert collect_admission_errors(valid_payload) == []
    valid_payload["patient_name"] = "x" * 101
    assert _fields(collect_admission_errors(valid_payload)) == ["patient_name"]


@pytest.mark.parametrize("department", DEPARTMENTS)
def test_every_listed_department_accepted(valid_payload, department):
    valid_payload["department"] = department
    assert collect_admission_errors(valid_payload) == []


def test_unknown_department_rejected(valid_payload):
    valid_payload["department"] = "cardiology"
    assert _fields(collect_admission_errors(valid_payload)) == ["department"]


@pytest.mark.parametrize("case_type", ["ip", "ER", "", 1])
def test_invalid_case_type(valid_payload, case_type):
    valid_payload["case_type"] = case_type
    assert set(_fields(collect_admission_errors(valid_payload))) == {"case_type"}


@pytest.mark.parametrize("severity", [0, 4, -1, True, "high", 2.5, None, "²", "٣", "-1", ""])
def test_invalid_severity(valid_payload, severity):
    valid_payload["severity"] = severity
    assert _fields(collect_admission_errors(valid_payload)) == ["severity"]


@pytest.mark.parametrize("severity", ["3", " 1 ", 2.0])
def test_severity_coerced_to_int(valid_payload, severity):
    admission = validate_admission({**valid_payload, "severity": severity})
    assert isinstance(admission.severity, int)
    assert admission.severity in (1, 2, 3)


def test_every_violation_reported():
    payload = {
        "patient_name": "",
        "department": "Dermatology",
        "severity": 9,
        "doctor_name": "y" * 101,
        "case_type": "XX",
    }
    assert _fields(collect_admission_errors(payload)) == [
        "patient_name",
        "department",
        "severity",
        "doctor_name",
        "case_type",
    ]


def test_missing_fields_reported_individually():
    failures = collect_admission_errors({"patient_name": "Jane"})
    assert _fields(failures) == ["department", "severity", "doctor_name", "case_type"]


def test_non_mapping_payload():
    assert _fields(collect_admission_errors(["not", "a", "dict"])) == ["payload"]


def test_unknown_keys_ignored(valid_payload):
    admission = validate_admission({**valid_payload, "id": "forged", "created_at": "2020-01-01"})
    assert not hasattr(admission, "id")
    assert admission.to_payload() == {**valid_payload}


def test_validate_raises_with_all_failures(valid_payload):
    valid_payload["severity"] = 7
    valid_payload["department"] = "Nowhere"
    with pytest.raises(AdmissionValidationError) as excinfo:
        validate_admission(valid_payload)

    assert _fields(excinfo.value.failures) == ["department", "severity"]
    assert [d["field"] for d in excinfo.value.detail] == ["department", "severity"]
