"""
JSON schema for live admission submissions.

The schema is the contract a submission must satisfy before it is written to
the live admission store. Names are validated after trimming; the validator
strips them before handing the payload to the schema.
"""

from hospital_analytics.schemas.records import CASE_TYPES, DEPARTMENTS, SEVERITY_LEVELS

NAME_MAX_LENGTH = 100

ADMISSION_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Live admission submission",
    "type": "object",
    "required": ["patient_name", "department", "severity", "doctor_name", "case_type"],
    "properties": {
        "patient_name": {
            "type": "string",
            "minLength": 1,
            "maxLength": NAME_MAX_LENGTH,
            "description": "Patient full name (PHI – encrypted at rest).",
        },
        "department": {
            "type": "string",
            "enum": list(DEPARTMENTS),
        },
        "severity": {
            "type": "integer",
            "minimum": min(SEVERITY_LEVELS),
            "maximum": max(SEVERITY_LEVELS),
            "description": "1 = low, 2 = moderate, 3 = high.",
        },
        "doctor_name": {
            "type": "string",
            "minLength": 1,
            "maxLength": NAME_MAX_LENGTH,
        },
        "case_type": {
            "type": "string",
            "enum": list(CASE_TYPES),
            "description": "IP = inpatient, OP = outpatient, DC = day case.",
        },
    },
}
