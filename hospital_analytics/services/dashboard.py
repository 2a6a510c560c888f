"""
Dashboard service: owns both data sources and serves scoped views.

- Historical dataset: loaded once through the ingestion pipeline.
- Live admissions: the actor cache, fed by the admission store's change feed.

Until both sources have resolved, views raise DatasetNotReadyError; an empty
collection is a valid, loaded state and is never confused with "loading".
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from hospital_analytics.etl import aggregates
from hospital_analytics.etl.listing import AdmissionPage, query_admissions
from hospital_analytics.etl.pipeline import build_analytics_pipeline, build_historical_ingestion_pipeline
from hospital_analytics.etl.scope import AccessScope
from hospital_analytics.exceptions import AnalyticsError, DatasetNotReadyError
from hospital_analytics.models.admission import PipelineRun
from hospital_analytics.schemas.records import HistoricalRecord, LiveAdmission, MergedRecord
from hospital_analytics.services.admission_store import AdmissionStore
from hospital_analytics.services.live_cache import CacheSnapshot, LiveAdmissionCache
from hospital_analytics.services.validation import validate_admission

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(
        self,
        store: AdmissionStore,
        session_factory: sessionmaker | None = None,
        cache: LiveAdmissionCache | None = None,
    ):
        self.store = store
        self.cache = cache or LiveAdmissionCache()
        self._session_factory = session_factory
        self._historical: tuple[HistoricalRecord, ...] | None = None
        self.historical_source: str | None = None

    # -- loading --------------------------------------------------------------

    @property
    def historical_loaded(self) -> bool:
        return self._historical is not None

    @property
    def is_ready(self) -> bool:
        return self.historical_loaded and self.cache.snapshot().is_loaded

    def load_historical_text(self, raw_text: str, source: str = "<memory>") -> dict[str, Any]:
        """Run the ingestion pipeline over the dataset text and publish the records."""
        pipeline = build_historical_ingestion_pipeline()
        started_at = datetime.now(timezone.utc)
        result = pipeline.run(initial_context={"raw_text": raw_text})

        records = pipeline.output("historical_records", [])
        self._historical = tuple(records)
        self.historical_source = source
        self._record_run(pipeline, result, source, started_at)
        return result

    async def load_historical(self, path: str | Path) -> dict[str, Any]:
        """Read the dataset file off the event loop, then ingest it."""
        path = Path(path)
        try:
            raw_text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as exc:
            logger.error("Historical dataset unavailable at %s: %s", path, exc)
            raw_text = ""
        return self.load_historical_text(raw_text, source=str(path))

    def _record_run(self, pipeline, result: dict[str, Any], source: str, started_at: datetime) -> None:
        if self._session_factory is None:
            return
        failed = {
            name: info for name, info in result["tasks"].items() if info.get("status") != "success"
        }
        try:
            with self._session_factory() as db:
                db.add(
                    PipelineRun(
                        pipeline_name=pipeline.name,
                        status=result["status"],
                        source=source,
                        started_at=started_at,
                        completed_at=datetime.now(timezone.utc),
                        input_record_count=pipeline.output("line_count", 0),
                        output_record_count=pipeline.output("record_count", 0),
                        errors=failed,
                        dag_definition=pipeline.to_dict(),
                    )
                )
                db.commit()
        except SQLAlchemyError as exc:
            logger.warning("Could not record pipeline run: %s", exc)

    async def start_live(self) -> None:
        """Subscribe to the feed, then fetch the full collection once."""
        await self.cache.start()
        self.cache.attach(self.store.feed)
        await self._fetch_live()

    async def resync(self) -> None:
        """
        Refetch the full collection after a feed gap. Changes published while
        the fetch runs are replayed on top of it, so none are lost; the cache
        stays stale only if the feed was interrupted again meanwhile.
        """
        await self._fetch_live()

    async def _fetch_live(self) -> None:
        self.cache.begin_fetch()
        try:
            admissions = await asyncio.to_thread(self.store.list_admissions)
        except SQLAlchemyError as exc:
            self.cache.fetch_failed(str(exc))
            raise
        self.cache.load(admissions)
        await self.cache.read()

    async def close(self) -> None:
        await self.cache.close()

    # -- views ----------------------------------------------------------------

    async def _live(self) -> CacheSnapshot:
        snapshot = await self.cache.read()
        if self._historical is None or not snapshot.is_loaded:
            raise DatasetNotReadyError("Dashboard data is still loading")
        return snapshot

    def _run_analytics(
        self,
        scope: AccessScope,
        live: tuple[LiveAdmission, ...],
        include_overview: bool,
    ):
        pipeline = build_analytics_pipeline(include_overview=include_overview)
        result = pipeline.run(
            initial_context={
                "access_scope": scope,
                "historical_records": self._historical,
                "live_admissions": live,
            }
        )
        if result["status"] != "completed":
            raise AnalyticsError("Analytics pipeline failed", detail=result["tasks"])
        return pipeline

    async def merged_records(self, scope: AccessScope) -> list[MergedRecord]:
        snapshot = await self._live()
        pipeline = self._run_analytics(scope, snapshot.admissions, include_overview=False)
        return pipeline.output("merged_records", [])

    async def overview(self, scope: AccessScope) -> dict[str, Any]:
        snapshot = await self._live()
        pipeline = self._run_analytics(scope, snapshot.admissions, include_overview=True)
        return pipeline.output("overview")

    async def departments(self, scope: AccessScope) -> list[str]:
        return aggregates.list_departments(await self.merged_records(scope))

    async def department_summary(self, scope: AccessScope, department: str) -> aggregates.DepartmentSummary | None:
        return aggregates.department_summary(await self.merged_records(scope), department)

    async def resolution(self, scope: AccessScope) -> list[aggregates.ResolutionIssue]:
        return aggregates.resolution_issues(await self.merged_records(scope))

    async def admissions(self, scope: AccessScope, **query: Any) -> AdmissionPage:
        snapshot = await self.cache.read()
        if not snapshot.is_loaded:
            raise DatasetNotReadyError("Live admissions are still loading")
        return query_admissions(scope.apply(snapshot.admissions), **query)

    # -- writes ---------------------------------------------------------------

    def submit_admission(self, payload: Any, actor: str = "admissions_portal") -> LiveAdmission:
        """Validate, then write. The cache picks the admission up from the feed echo."""
        admission = validate_admission(payload)
        return self.store.insert(admission, actor=actor)

    def delete_admission(self, admission_id: str, actor: str = "admissions_portal") -> bool:
        return self.store.delete(admission_id, actor=actor)
