"""
Decoder for the historical hospital dataset.

The dataset is a comma-separated flat file with one header line and at least
21 columns per row (extra columns are ignored). Decoding is best effort:
- rows with too few columns are skipped (truncated trailing lines are expected)
- numbers that fail to parse become 0
- decoding never raises
"""

from __future__ import annotations

import logging
import math

from hospital_analytics.schemas.records import HistoricalRecord

logger = logging.getLogger(__name__)

DELIMITER = ","
REQUIRED_COLUMNS = 21


def _to_float(raw: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _non_negative(raw: str) -> float:
    return max(0.0, _to_float(raw))


def decode_row(cols: list[str]) -> HistoricalRecord:
    """Map one split row (at least REQUIRED_COLUMNS fields) to a record."""
    return HistoricalRecord(
        month=cols[0],
        case_no=cols[1],
        dob=_to_float(cols[2]),
        nationality=cols[3],
        gender=cols[4],
        doctor_license=cols[5],
        doctor_name=cols[6],
        doctor_type=cols[7],
        doctor_status=cols[8],
        cmi=_non_negative(cols[9]),
        specialty=cols[10],
        insurance_payer=cols[11],
        insurance_plan=cols[12],
        payer_mix=cols[13],
        case_type=cols[14],
        los=_non_negative(cols[15]),
        severity=int(_to_float(cols[16])),
        surgical_mix=cols[17],
        discharge_time=cols[18],
        discharge_before_noon=cols[19],
        revenue=_non_negative(cols[20]),
    )


def decode(text: str) -> list[HistoricalRecord]:
    """Parse the historical flat file into records, in file order."""
    if not text:
        return []

    lines = text.strip().split("\n")
    records: list[HistoricalRecord] = []
    skipped = 0

    for line in lines[1:]:
        cols = line.rstrip("\r").split(DELIMITER)
        if len(cols) < REQUIRED_COLUMNS:
            skipped += 1
            continue
        records.append(decode_row(cols))

    if skipped:
        logger.debug("Skipped %d malformed rows", skipped)
    return records
