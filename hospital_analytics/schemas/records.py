"""
Typed records flowing through the analytics core.

Two origins feed the dashboard:
- HistoricalRecord: one closed case decoded from the historical flat file
- LiveAdmission:    one admission observed on the live admission store

Both are projected into MergedRecord, the only shape the aggregator reads.
All records are frozen; corrections to a live admission are delete + insert.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

DEPARTMENTS: tuple[str, ...] = (
    "Emergency",
    "Cardiology",
    "Orthopaedics",
    "Internal Medicine",
    "General Surgery",
    "Nephrology",
    "Gastroenterology",
    "Pulmonology",
    "Family Medicine",
    "Obstetrics & Gynecology",
)

CASE_TYPE_LABELS: dict[str, str] = {
    "IP": "Inpatient",
    "OP": "Outpatient",
    "DC": "Day Case",
}
CASE_TYPES: tuple[str, ...] = tuple(CASE_TYPE_LABELS)

# Case types that occupy a bed and count towards length-of-stay metrics.
ADMITTED_CASE_TYPES: frozenset[str] = frozenset({"IP", "DC"})

SEVERITY_LEVELS: tuple[int, ...] = (1, 2, 3)


class Origin(str, Enum):
    HISTORICAL = "historical"
    LIVE = "live"


@dataclass(frozen=True)
class HistoricalRecord:
    """One closed clinical case from the historical dataset (column order)."""

    month: str
    case_no: str
    dob: float
    nationality: str
    gender: str
    doctor_license: str
    doctor_name: str
    doctor_type: str
    doctor_status: str
    cmi: float
    specialty: str
    insurance_payer: str
    insurance_plan: str
    payer_mix: str
    case_type: str
    los: float
    severity: int
    surgical_mix: str
    discharge_time: str
    discharge_before_noon: str
    revenue: float

    @property
    def department(self) -> str:
        return self.specialty


@dataclass(frozen=True)
class LiveAdmission:
    """One admission stored in the live admission store."""

    id: str
    patient_name: str
    department: str
    severity: int
    doctor_name: str
    case_type: str
    created_at: datetime


@dataclass(frozen=True)
class NormalizedAdmission:
    """A validated submission, ready to be written to the store."""

    patient_name: str
    department: str
    severity: int
    doctor_name: str
    case_type: str

    def to_payload(self) -> dict:
        return {
            "patient_name": self.patient_name,
            "department": self.department,
            "severity": self.severity,
            "doctor_name": self.doctor_name,
            "case_type": self.case_type,
        }


@dataclass(frozen=True)
class ValidationFailure:
    field: str
    message: str


@dataclass(frozen=True)
class MergedRecord:
    """Origin-independent projection consumed by the aggregator."""

    origin: Origin
    case_id: str
    month: str
    department: str
    case_type: str
    severity: int
    doctor_name: str
    doctor_license: str
    doctor_type: str
    doctor_status: str
    cmi: float
    los: float
    revenue: float
    payer_mix: str
    discharge_before_noon: str = ""


SourceRecord = Union[HistoricalRecord, LiveAdmission]
