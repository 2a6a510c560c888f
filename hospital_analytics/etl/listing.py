"""Search, sort and pagination of live admissions for the patient list."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from hospital_analytics.schemas.records import LiveAdmission

PAGE_SIZE = 10
SORT_KEYS = ("patient_name", "department", "severity", "created_at")


@dataclass
class AdmissionPage:
    items: list[LiveAdmission] = field(default_factory=list)
    total: int = 0
    page: int = 0
    total_pages: int = 1


def query_admissions(
    admissions: Sequence[LiveAdmission],
    *,
    search: str = "",
    case_type: str | None = None,
    sort_key: str = "created_at",
    descending: bool = True,
    page: int = 0,
    page_size: int = PAGE_SIZE,
) -> AdmissionPage:
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_key}")
    if page_size < 1:
        raise ValueError("page_size must be positive")

    rows = list(admissions)
    if search:
        needle = search.lower()
        rows = [a for a in rows if needle in a.patient_name.lower()]
    if case_type:
        rows = [a for a in rows if a.case_type == case_type]

    if sort_key in ("patient_name", "department"):
        rows.sort(key=lambda a: getattr(a, sort_key).lower(), reverse=descending)
    else:
        rows.sort(key=lambda a: getattr(a, sort_key), reverse=descending)

    total_pages = max(1, math.ceil(len(rows) / page_size))
    page = min(max(page, 0), total_pages - 1)
    start = page * page_size
    return AdmissionPage(
        items=rows[start:start + page_size],
        total=len(rows),
        page=page,
        total_pages=total_pages,
    )
