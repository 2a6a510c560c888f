"""
Concrete pipelines for the hospital analytics dashboard.

Historical ingestion:  extract -> decode -> summarize
Analytics:             scope -> merge -> aggregate

Steps receive the pipeline context dict and return their outputs; the DAG
engine threads the outputs downstream.
"""

from __future__ import annotations

import logging
from typing import Any

from hospital_analytics.etl import aggregates
from hospital_analytics.etl.dag import DAG
from hospital_analytics.etl.decoder import decode
from hospital_analytics.etl.merger import merge
from hospital_analytics.etl.scope import AccessScope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Historical ingestion steps
# ---------------------------------------------------------------------------


def extract(context: dict[str, Any]) -> dict[str, Any]:
    """
    Extract step – accept the raw text of the historical dataset.
    The caller is responsible for fetching it (file, object store, ...).
    """
    raw_text = context.get("raw_text") or ""
    stripped = raw_text.strip()
    line_count = stripped.count("\n") + 1 if stripped else 0
    logger.info("Extracted %d lines of historical data", line_count)
    return {"raw_text": raw_text, "line_count": line_count}


def decode_step(context: dict[str, Any]) -> dict[str, Any]:
    """Decode step – malformed rows are dropped, never fatal."""
    records = decode(context.get("raw_text", ""))
    data_lines = max(context.get("line_count", 0) - 1, 0)
    return {
        "historical_records": records,
        "record_count": len(records),
        "dropped_count": max(data_lines - len(records), 0),
    }


def summarize(context: dict[str, Any]) -> dict[str, Any]:
    records = context.get("historical_records", [])
    departments = aggregates.list_departments(records)
    months = sorted({r.month for r in records})
    logger.info(
        "Historical dataset: %d records, %d dropped, %d departments, %d months",
        len(records),
        context.get("dropped_count", 0),
        len(departments),
        len(months),
    )
    return {"department_count": len(departments), "month_count": len(months)}


# ---------------------------------------------------------------------------
# Analytics steps
# ---------------------------------------------------------------------------


def scope_step(context: dict[str, Any]) -> dict[str, Any]:
    """Narrow both sources to the caller's scope before merging."""
    scope: AccessScope = context.get("access_scope") or AccessScope()
    historical = scope.apply(context.get("historical_records", []))
    live = scope.apply(context.get("live_admissions", []))
    return {"scoped_historical": historical, "scoped_live": live}


def merge_step(context: dict[str, Any]) -> dict[str, Any]:
    merged = merge(context.get("scoped_historical", []), context.get("scoped_live", []))
    return {"merged_records": merged, "merged_count": len(merged)}


def aggregate_step(context: dict[str, Any]) -> dict[str, Any]:
    return {"overview": aggregates.overview(context.get("merged_records", []))}


# ---------------------------------------------------------------------------
# Pipeline factories
# ---------------------------------------------------------------------------

def build_historical_ingestion_pipeline() -> DAG:
    """Construct the historical dataset ingestion DAG."""
    dag = DAG("historical_ingestion")
    dag.add_task("extract", extract, provides=("raw_text", "line_count"))
    dag.add_task(
        "decode", decode_step, depends_on=["extract"], provides=("historical_records", "record_count")
    )
    dag.add_task("summarize", summarize, depends_on=["decode"])
    return dag


def build_analytics_pipeline(include_overview: bool = True) -> DAG:
    """Construct the scope -> merge (-> aggregate) DAG."""
    dag = DAG("analytics")
    dag.add_task("scope", scope_step, provides=("scoped_historical", "scoped_live"))
    dag.add_task("merge", merge_step, depends_on=["scope"], provides=("merged_records",))
    if include_overview:
        dag.add_task("aggregate", aggregate_step, depends_on=["merge"], provides=("overview",))
    return dag
