"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Admissions
# ---------------------------------------------------------------------------

class AdmissionResponse(BaseModel):
    id: str
    patient_name: str
    department: str
    severity: int
    doctor_name: str
    case_type: str
    created_at: datetime


class AdmissionPageResponse(BaseModel):
    items: list[AdmissionResponse]
    total: int
    page: int
    total_pages: int
    scope: str
    cache_status: str


class ResyncResponse(BaseModel):
    cache_status: str
    live_admissions: int


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class WorkloadItem(BaseModel):
    department: str
    full_name: str
    patients: int
    doctors: int


class MonthlyRevenueItem(BaseModel):
    month: str
    revenue: int


class PayerItem(BaseModel):
    name: str
    value: int


class SeverityItem(BaseModel):
    severity: str
    count: int


class OverviewResponse(BaseModel):
    scope: str
    cache_status: str
    alos: float
    cmi: float
    total_cases: int
    total_revenue: float
    workload: list[WorkloadItem]
    revenue_by_month: list[MonthlyRevenueItem]
    payer_distribution: list[PayerItem]
    severity_distribution: list[SeverityItem]


class TrendPointItem(BaseModel):
    month: str
    cases: int
    revenue: int
    alos: float


class DepartmentSummaryResponse(BaseModel):
    department: str
    alos: float
    cmi: float
    total_cases: int
    total_revenue: float
    doctors: list[str]
    trends: list[TrendPointItem]


class ResolutionItem(BaseModel):
    type: str
    title: str
    description: str


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
    historical_loaded: bool
    historical_source: str | None = None
    live_cache: str
