"""
Dataset merger: historical cases + live admissions -> one merged dataset.

Live admissions carry far fewer fields than historical cases. The fields the
aggregator needs are synthesized here, and only here, so that every
downstream view treats both origins the same way.
"""

from __future__ import annotations

from collections.abc import Iterable

from hospital_analytics.schemas.records import (
    HistoricalRecord,
    LiveAdmission,
    MergedRecord,
    Origin,
    SourceRecord,
)

# Field values synthesized for live admissions
LIVE_MONTH_DAY_SUFFIX = "-01"
LIVE_CMI = 1.0
LIVE_LOS_BY_CASE_TYPE = {"IP": 3.0, "DC": 1.0, "OP": 0.0}
LIVE_REVENUE = 0.0
LIVE_PAYER_MIX = "Insurance"
LIVE_DOCTOR_LICENSE = "LIVE"
LIVE_DOCTOR_TYPE = "Live"
LIVE_DOCTOR_STATUS = "Unverified"


def live_month_key(admission: LiveAdmission) -> str:
    """Year-month of the admission timestamp as a month key, e.g. 2024-03-01."""
    return admission.created_at.isoformat()[:7] + LIVE_MONTH_DAY_SUFFIX


def _from_historical(record: HistoricalRecord) -> MergedRecord:
    return MergedRecord(
        origin=Origin.HISTORICAL,
        case_id=record.case_no,
        month=record.month,
        department=record.specialty,
        case_type=record.case_type,
        severity=record.severity,
        doctor_name=record.doctor_name,
        doctor_license=record.doctor_license,
        doctor_type=record.doctor_type,
        doctor_status=record.doctor_status,
        cmi=record.cmi,
        los=record.los,
        revenue=record.revenue,
        payer_mix=record.payer_mix,
        discharge_before_noon=record.discharge_before_noon,
    )


def _from_live(admission: LiveAdmission) -> MergedRecord:
    return MergedRecord(
        origin=Origin.LIVE,
        case_id=admission.id,
        month=live_month_key(admission),
        department=admission.department,
        case_type=admission.case_type,
        severity=admission.severity,
        doctor_name=admission.doctor_name,
        doctor_license=LIVE_DOCTOR_LICENSE,
        doctor_type=LIVE_DOCTOR_TYPE,
        doctor_status=LIVE_DOCTOR_STATUS,
        cmi=LIVE_CMI,
        los=LIVE_LOS_BY_CASE_TYPE.get(admission.case_type, 0.0),
        revenue=LIVE_REVENUE,
        payer_mix=LIVE_PAYER_MIX,
    )


def to_merged(record: SourceRecord) -> MergedRecord:
    """Project a record of either origin into the merged schema."""
    if isinstance(record, HistoricalRecord):
        return _from_historical(record)
    if isinstance(record, LiveAdmission):
        return _from_live(record)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def merge(
    historical: Iterable[HistoricalRecord],
    live: Iterable[LiveAdmission],
) -> list[MergedRecord]:
    """Historical records first, then live admissions, each in source order."""
    merged = [to_merged(r) for r in historical]
    merged.extend(to_merged(a) for a in live)
    return merged
