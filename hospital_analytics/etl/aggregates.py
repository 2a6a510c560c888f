"""
Aggregate views over merged (or historical) records.

Every function here is pure and total: it never mutates its input and returns
a well-defined value for an empty collection. Records only need the merged
attribute names (department, case_type, severity, doctor_name, cmi, los,
revenue, month, payer_mix), which HistoricalRecord shares.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from hospital_analytics.schemas.records import ADMITTED_CASE_TYPES

DEPARTMENT_LABEL_MAX = 15
DEPARTMENT_LABEL_KEEP = 13
ELLIPSIS = "…"
EXTENDED_STAY_DAYS = 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def month_label(month: str) -> str:
    """2024-03-01 -> 03/24"""
    return f"{month[5:7]}/{month[2:4]}"


def department_label(name: str) -> str:
    if len(name) > DEPARTMENT_LABEL_MAX:
        return name[:DEPARTMENT_LABEL_KEEP] + ELLIPSIS
    return name


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkloadEntry:
    department: str
    full_name: str
    patients: int
    doctors: int


@dataclass(frozen=True)
class MonthlyRevenue:
    month: str
    revenue: int


@dataclass
class TrendCell:
    cases: int = 0
    revenue: float = 0.0
    total_los: float = 0.0
    ip_cases: int = 0

    @property
    def alos(self) -> float:
        return self.total_los / self.ip_cases if self.ip_cases else 0.0


@dataclass(frozen=True)
class PayerShare:
    name: str
    value: int


@dataclass(frozen=True)
class SeverityBucket:
    severity: str
    count: int


@dataclass(frozen=True)
class TrendPoint:
    month: str
    cases: int
    revenue: int
    alos: float


@dataclass
class DepartmentSummary:
    department: str
    alos: float
    cmi: float
    total_cases: int
    total_revenue: float
    doctors: list[str] = field(default_factory=list)
    trends: list[TrendPoint] = field(default_factory=list)


@dataclass(frozen=True)
class ResolutionIssue:
    type: str  # critical | warning | info
    title: str
    description: str


# ---------------------------------------------------------------------------
# Core reducers
# ---------------------------------------------------------------------------

def calculate_alos(records: Iterable[Any]) -> float:
    """Average length of stay over inpatient and day-case records."""
    stays = [r.los for r in records if r.case_type in ADMITTED_CASE_TYPES]
    if not stays:
        return 0.0
    return sum(stays) / len(stays)


def calculate_cmi(records: Iterable[Any]) -> float:
    """Case-mix index: mean complexity score over all records."""
    scores = [r.cmi for r in records]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def workload_by_department(records: Iterable[Any]) -> list[WorkloadEntry]:
    """Patients and distinct doctors per department, busiest first."""
    patients: dict[str, int] = {}
    doctors: dict[str, set[str]] = {}
    for r in records:
        patients[r.department] = patients.get(r.department, 0) + 1
        doctors.setdefault(r.department, set()).add(r.doctor_name)

    entries = [
        WorkloadEntry(
            department=department_label(name),
            full_name=name,
            patients=count,
            doctors=len(doctors[name]),
        )
        for name, count in patients.items()
    ]
    entries.sort(key=lambda e: e.patients, reverse=True)
    return entries


def revenue_by_month(records: Iterable[Any]) -> list[MonthlyRevenue]:
    totals: dict[str, float] = {}
    for r in records:
        totals[r.month] = totals.get(r.month, 0.0) + r.revenue

    result = [
        MonthlyRevenue(month=month_label(month), revenue=_round_half_up(total))
        for month, total in totals.items()
    ]
    result.sort(key=lambda m: m.month)
    return result


def department_trends(records: Iterable[Any]) -> dict[str, dict[str, TrendCell]]:
    """Department -> month key -> case, revenue and length-of-stay totals."""
    matrix: dict[str, dict[str, TrendCell]] = {}
    for r in records:
        cell = matrix.setdefault(r.department, {}).setdefault(r.month, TrendCell())
        cell.cases += 1
        cell.revenue += r.revenue
        if r.case_type in ADMITTED_CASE_TYPES:
            cell.total_los += r.los
            cell.ip_cases += 1
    return matrix


def payer_distribution(records: Iterable[Any]) -> list[PayerShare]:
    counts: dict[str, int] = {}
    for r in records:
        counts[r.payer_mix] = counts.get(r.payer_mix, 0) + 1
    return [PayerShare(name=name, value=count) for name, count in counts.items()]


def severity_distribution(records: Iterable[Any]) -> list[SeverityBucket]:
    counts: dict[int, int] = {}
    for r in records:
        counts[r.severity] = counts.get(r.severity, 0) + 1
    buckets = [SeverityBucket(severity=f"Level {level}", count=n) for level, n in counts.items()]
    buckets.sort(key=lambda b: b.severity)
    return buckets


# ---------------------------------------------------------------------------
# Composite views
# ---------------------------------------------------------------------------

def list_departments(records: Iterable[Any]) -> list[str]:
    return sorted({r.department for r in records})


def department_summary(records: Sequence[Any], department: str) -> DepartmentSummary | None:
    """Headline metrics and monthly trend for one department (None if it has no cases)."""
    rows = [r for r in records if r.department == department]
    if not rows:
        return None

    months = department_trends(rows).get(department, {})
    trends = [
        TrendPoint(
            month=month_label(month),
            cases=cell.cases,
            revenue=_round_half_up(cell.revenue),
            alos=round(cell.alos, 2),
        )
        for month, cell in months.items()
    ]
    trends.sort(key=lambda t: t.month)

    return DepartmentSummary(
        department=department,
        alos=calculate_alos(rows),
        cmi=calculate_cmi(rows),
        total_cases=len(rows),
        total_revenue=sum(r.revenue for r in rows),
        doctors=list(dict.fromkeys(r.doctor_name for r in rows)),
        trends=trends,
    )


def overview(records: Sequence[Any]) -> dict[str, Any]:
    """Everything the executive overview shows, computed in one pass per view."""
    return {
        "alos": calculate_alos(records),
        "cmi": calculate_cmi(records),
        "total_cases": len(records),
        "total_revenue": sum(r.revenue for r in records),
        "workload": workload_by_department(records),
        "revenue_by_month": revenue_by_month(records),
        "payer_distribution": payer_distribution(records),
        "severity_distribution": severity_distribution(records),
    }


def resolution_issues(records: Sequence[Any]) -> list[ResolutionIssue]:
    """Operational findings that need follow-up, most urgent first."""
    if not records:
        return []

    issues: list[ResolutionIssue] = []

    inactive = list(dict.fromkeys(r.doctor_name for r in records if r.doctor_status == "Inactive"))
    if inactive:
        issues.append(ResolutionIssue(
            type="critical",
            title=f"{len(inactive)} Inactive Doctor(s) with Assigned Cases",
            description=(
                f"Doctors: {', '.join(inactive)}. "
                "Cases assigned to inactive physicians require reassignment."
            ),
        ))

    high_severity = sum(1 for r in records if r.severity >= 3)
    if high_severity:
        issues.append(ResolutionIssue(
            type="warning",
            title=f"{high_severity} High Severity Cases (Level 3)",
            description="These cases require elevated monitoring and resource allocation.",
        ))

    late = sum(1 for r in records if r.discharge_before_noon == "No")
    issues.append(ResolutionIssue(
        type="info",
        title=f"{late} Late Discharges (After 12 PM)",
        description="Optimizing discharge timing can improve bed turnover rates.",
    ))

    long_stay = sum(1 for r in records if r.los > EXTENDED_STAY_DAYS)
    if long_stay:
        issues.append(ResolutionIssue(
            type="warning",
            title=f"{long_stay} Extended Stay Cases (>{EXTENDED_STAY_DAYS} Days)",
            description="Review for potential discharge planning improvements.",
        ))

    issues.append(ResolutionIssue(
        type="info",
        title="CMI Benchmarking Complete",
        description=f"Average CMI across all cases is {calculate_cmi(records):.3f}. Within acceptable range.",
    ))
    return issues
