"""
FastAPI routes – the dashboard API surface.

Demonstrates:
- Dependency injection (dashboard service and caller scope via Depends)
- Scope passed explicitly from gateway headers, failing closed when absent
- Translating core errors into HTTP status codes
- Returning structured responses with Pydantic models
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from hospital_analytics.config import settings
from hospital_analytics.etl.scope import AccessScope
from hospital_analytics.exceptions import (
    AdmissionValidationError,
    AdmissionWriteError,
    DatasetNotReadyError,
)
from hospital_analytics.schemas.api import (
    AdmissionPageResponse,
    AdmissionResponse,
    DepartmentSummaryResponse,
    HealthResponse,
    OverviewResponse,
    ResolutionItem,
    ResyncResponse,
)
from hospital_analytics.services.dashboard import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_dashboard(request: Request) -> DashboardService:
    return request.app.state.dashboard


def get_access_scope(
    x_scope_unrestricted: str | None = Header(default=None),
    x_scope_department: str | None = Header(default=None),
) -> AccessScope:
    """Scope resolved upstream by the auth gateway; missing headers see nothing."""
    unrestricted = (x_scope_unrestricted or "").strip().lower() in ("1", "true", "yes")
    department = (x_scope_department or "").strip() or None
    return AccessScope(unrestricted=unrestricted, department=department)


def _not_ready(exc: DatasetNotReadyError) -> HTTPException:
    return HTTPException(status_code=503, detail=exc.message)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(dashboard: DashboardService = Depends(get_dashboard)):
    """Basic health endpoint – DB connectivity and data loading state."""
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        database="connected" if dashboard.store.ping() else "disconnected",
        historical_loaded=dashboard.historical_loaded,
        historical_source=dashboard.historical_source,
        live_cache=dashboard.cache.snapshot().status.value,
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@router.get("/metrics/overview", response_model=OverviewResponse)
async def get_overview(
    dashboard: DashboardService = Depends(get_dashboard),
    scope: AccessScope = Depends(get_access_scope),
):
    """Executive overview over historical and live cases visible to the caller."""
    try:
        metrics = await dashboard.overview(scope)
    except DatasetNotReadyError as exc:
        raise _not_ready(exc)

    return OverviewResponse(
        scope=scope.label,
        cache_status=dashboard.cache.snapshot().status.value,
        alos=metrics["alos"],
        cmi=metrics["cmi"],
        total_cases=metrics["total_cases"],
        total_revenue=metrics["total_revenue"],
        workload=[asdict(w) for w in metrics["workload"]],
        revenue_by_month=[asdict(m) for m in metrics["revenue_by_month"]],
        payer_distribution=[asdict(p) for p in metrics["payer_distribution"]],
        severity_distribution=[asdict(s) for s in metrics["severity_distribution"]],
    )


@router.get("/departments", response_model=list[str])
async def list_departments(
    dashboard: DashboardService = Depends(get_dashboard),
    scope: AccessScope = Depends(get_access_scope),
):
    try:
        return await dashboard.departments(scope)
    except DatasetNotReadyError as exc:
        raise _not_ready(exc)


@router.get("/departments/{department}", response_model=DepartmentSummaryResponse)
async def get_department(
    department: str,
    dashboard: DashboardService = Depends(get_dashboard),
    scope: AccessScope = Depends(get_access_scope),
):
    """Headline metrics and monthly trend for one department."""
    try:
        summary = await dashboard.department_summary(scope, department)
    except DatasetNotReadyError as exc:
        raise _not_ready(exc)
    if summary is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return DepartmentSummaryResponse(**asdict(summary))


@router.get("/resolution", response_model=list[ResolutionItem])
async def get_resolution(
    dashboard: DashboardService = Depends(get_dashboard),
    scope: AccessScope = Depends(get_access_scope),
):
    try:
        issues = await dashboard.resolution(scope)
    except DatasetNotReadyError as exc:
        raise _not_ready(exc)
    return [ResolutionItem(**asdict(issue)) for issue in issues]


# ---------------------------------------------------------------------------
# Live admissions
# ---------------------------------------------------------------------------

@router.get("/admissions", response_model=AdmissionPageResponse)
async def list_admissions(
    search: str = "",
    case_type: str | None = None,
    sort: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(0, ge=0),
    dashboard: DashboardService = Depends(get_dashboard),
    scope: AccessScope = Depends(get_access_scope),
):
    """Live admissions visible to the caller, newest first by default."""
    try:
        result = await dashboard.admissions(
            scope,
            search=search,
            case_type=case_type,
            sort_key=sort,
            descending=order == "desc",
            page=page,
        )
    except DatasetNotReadyError as exc:
        raise _not_ready(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return AdmissionPageResponse(
        items=[AdmissionResponse(**asdict(a)) for a in result.items],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
        scope=scope.label,
        cache_status=dashboard.cache.snapshot().status.value,
    )


@router.post("/admissions", response_model=AdmissionResponse, status_code=201)
def create_admission(
    payload: dict[str, Any] = Body(...),
    dashboard: DashboardService = Depends(get_dashboard),
):
    """
    Validate and record a new admission. Every invalid field is reported at
    once; nothing is written unless the whole submission is valid.
    """
    try:
        admission = dashboard.submit_admission(payload)
    except AdmissionValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.detail)
    except AdmissionWriteError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    return AdmissionResponse(**asdict(admission))


@router.delete("/admissions/{admission_id}", status_code=204)
def delete_admission(
    admission_id: str,
    dashboard: DashboardService = Depends(get_dashboard),
):
    try:
        deleted = dashboard.delete_admission(admission_id)
    except AdmissionWriteError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    if not deleted:
        raise HTTPException(status_code=404, detail="Admission not found")


@router.post("/admissions/resync", response_model=ResyncResponse)
async def resync_admissions(dashboard: DashboardService = Depends(get_dashboard)):
    """Refetch the live collection, e.g. after the change feed was interrupted."""
    try:
        await dashboard.resync()
    except SQLAlchemyError as exc:
        logger.error("Resync failed: %s", exc)
        raise HTTPException(status_code=502, detail="Admission store unavailable")
    snapshot = dashboard.cache.snapshot()
    return ResyncResponse(cache_status=snapshot.status.value, live_admissions=len(snapshot.admissions))
