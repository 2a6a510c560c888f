"""
Validation of live admission submissions.

Demonstrates:
- Schema-driven data validation (JSON Schema as the submission contract)
- Collecting all errors rather than failing on the first one
- Rejecting bad input locally, before any write reaches the store
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import jsonschema

from hospital_analytics.exceptions import AdmissionValidationError
from hospital_analytics.schemas.admission import ADMISSION_SCHEMA
from hospital_analytics.schemas.records import NormalizedAdmission, ValidationFailure

_FIELD_ORDER = {name: i for i, name in enumerate(ADMISSION_SCHEMA["required"])}
_TRIMMED_FIELDS = ("patient_name", "doctor_name")

_admission_validator = jsonschema.Draft7Validator(ADMISSION_SCHEMA)


def _prepare(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Keep the known fields, trim names and coerce a digit-string severity."""
    candidate = {k: payload[k] for k in ADMISSION_SCHEMA["properties"] if k in payload}
    for name in _TRIMMED_FIELDS:
        if isinstance(candidate.get(name), str):
            candidate[name] = candidate[name].strip()
    severity = candidate.get("severity")
    if isinstance(severity, str):
        digits = severity.strip()
        # ASCII only: str.isdigit() also accepts superscripts that int() rejects
        if digits.isascii() and digits.isdecimal():
            candidate["severity"] = int(digits)
    return candidate


def collect_admission_errors(payload: Any) -> list[ValidationFailure]:
    """Every constraint the payload violates, in field order (empty list = valid)."""
    if not isinstance(payload, Mapping):
        return [ValidationFailure(field="payload", message="Submission must be an object")]

    candidate = _prepare(payload)
    failures = []
    for error in _admission_validator.iter_errors(candidate):
        if error.validator == "required":
            continue
        field = ".".join(str(part) for part in error.path) or "payload"
        failures.append(ValidationFailure(field=field, message=error.message))

    # one failure per missing field rather than jsonschema's combined wording
    for name in ADMISSION_SCHEMA["required"]:
        if name not in candidate:
            failures.append(ValidationFailure(field=name, message=f"{name} is required"))

    failures.sort(key=lambda f: _FIELD_ORDER.get(f.field, len(_FIELD_ORDER)))
    return failures


def validate_admission(payload: Any) -> NormalizedAdmission:
    """
    Validate and normalize a live admission submission.
    Raises AdmissionValidationError listing every violated field.
    """
    failures = collect_admission_errors(payload)
    if failures:
        raise AdmissionValidationError(failures)

    candidate = _prepare(payload)
    return NormalizedAdmission(
        patient_name=candidate["patient_name"],
        department=candidate["department"],
        severity=int(candidate["severity"]),
        doctor_name=candidate["doctor_name"],
        case_type=candidate["case_type"],
    )
