"""Tests for the dashboard service: loading state, scoped views and writes."""

import asyncio

import pytest

from hospital_analytics.etl.scope import AccessScope
from hospital_analytics.exceptions import AdmissionValidationError, DatasetNotReadyError
from hospital_analytics.models.admission import LiveAdmissionRow, PipelineRun
from hospital_analytics.services.admission_store import AdmissionStore
from hospital_analytics.services.dashboard import DashboardService
from hospital_analytics.services.live_cache import CacheStatus
from hospital_analytics.services.validation import validate_admission

ALL = AccessScope(unrestricted=True)
CARDIOLOGY = AccessScope(department="Cardiology")


@pytest.fixture
def dashboard(session_factory, encryption):
    return DashboardService(
        store=AdmissionStore(session_factory, encryption=encryption),
        session_factory=session_factory,
    )


@pytest.fixture
def historical_text(make_row, make_csv):
    return make_csv(
        make_row(specialty="Cardiology", doctor="Dr. A", revenue="1000"),
        make_row(specialty="Emergency", doctor="Dr. B", revenue="250", case_type="OP"),
    )


def run(dashboard, body):
    async def _main():
        try:
            return await body()
        finally:
            await dashboard.close()

    return asyncio.run(_main())


def test_views_wait_for_both_sources(dashboard, historical_text):
    async def body():
        assert not dashboard.is_ready
        with pytest.raises(DatasetNotReadyError):
            await dashboard.overview(ALL)

        await dashboard.start_live()
        with pytest.raises(DatasetNotReadyError):
            await dashboard.overview(ALL)

        dashboard.load_historical_text(historical_text)
        assert (await dashboard.overview(ALL))["total_cases"] == 2
        assert dashboard.is_ready

    run(dashboard, body)


def test_submitted_admission_reaches_merged_views(dashboard, historical_text, valid_payload):
    async def body():
        dashboard.load_historical_text(historical_text)
        await dashboard.start_live()

        dashboard.submit_admission({**valid_payload, "doctor_name": "Dr. X"})

        overview = await dashboard.overview(ALL)
        assert overview["total_cases"] == 3
        cardiology = next(w for w in overview["workload"] if w.full_name == "Cardiology")
        assert (cardiology.patients, cardiology.doctors) == (2, 2)

        scoped = await dashboard.overview(CARDIOLOGY)
        assert scoped["total_cases"] == 2
        assert (await dashboard.admissions(CARDIOLOGY)).total == 1
        assert (await dashboard.admissions(AccessScope(department="Emergency"))).total == 0

    run(dashboard, body)


def test_existing_admissions_fetched_on_start(dashboard, valid_payload):
    dashboard.submit_admission(valid_payload)

    async def body():
        dashboard.load_historical_text("")
        await dashboard.start_live()
        page = await dashboard.admissions(ALL)
        assert page.total == 1
        assert page.items[0].patient_name == "Jane Doe"

    run(dashboard, body)


def test_invalid_submission_writes_nothing(dashboard, session_factory, valid_payload):
    with pytest.raises(AdmissionValidationError):
        dashboard.submit_admission({**valid_payload, "severity": 5})

    with session_factory() as db:
        assert db.query(LiveAdmissionRow).count() == 0


def test_deleted_admission_leaves_views(dashboard, valid_payload):
    async def body():
        dashboard.load_historical_text("")
        await dashboard.start_live()
        admission = dashboard.submit_admission(valid_payload)
        assert (await dashboard.overview(ALL))["total_cases"] == 1

        assert dashboard.delete_admission(admission.id) is True
        assert (await dashboard.overview(ALL))["total_cases"] == 0

    run(dashboard, body)


def test_department_views(dashboard, historical_text):
    async def body():
        dashboard.load_historical_text(historical_text)
        await dashboard.start_live()

        assert await dashboard.departments(ALL) == ["Cardiology", "Emergency"]
        assert await dashboard.departments(CARDIOLOGY) == ["Cardiology"]
        summary = await dashboard.department_summary(ALL, "Emergency")
        assert summary.total_revenue == 250
        assert await dashboard.department_summary(CARDIOLOGY, "Emergency") is None
        assert len(await dashboard.resolution(ALL)) >= 2

    run(dashboard, body)


def test_missing_dataset_file_resolves_empty(dashboard, tmp_path):
    async def body():
        await dashboard.load_historical(tmp_path / "missing.csv")
        await dashboard.start_live()
        assert dashboard.historical_loaded
        assert (await dashboard.overview(ALL))["total_cases"] == 0

    run(dashboard, body)


def test_historical_load_recorded(dashboard, session_factory, historical_text, tmp_path):
    path = tmp_path / "hospital_data.csv"
    path.write_text(historical_text, encoding="utf-8")

    async def body():
        result = await dashboard.load_historical(path)
        assert result["status"] == "completed"

    run(dashboard, body)

    assert dashboard.historical_source == str(path)
    with session_factory() as db:
        run_row = db.query(PipelineRun).one()
        assert run_row.pipeline_name == "historical_ingestion"
        assert run_row.status == "completed"
        assert run_row.output_record_count == 2
        assert run_row.dag_definition["tasks"]["decode"]["depends_on"] == ["extract"]


def test_resync_after_feed_gap(dashboard, session_factory, encryption, valid_payload):
    # a writer whose notifications never reach the dashboard's feed
    other_writer = AdmissionStore(session_factory, encryption=encryption)

    async def body():
        dashboard.load_historical_text("")
        await dashboard.start_live()

        dashboard.store.feed.disconnect("connection reset")
        other_writer.insert(validate_admission(valid_payload), actor="test")

        snapshot = await dashboard.cache.read()
        assert snapshot.status == CacheStatus.STALE
        assert (await dashboard.admissions(ALL)).total == 0

        await dashboard.resync()
        assert dashboard.cache.snapshot().status == CacheStatus.CURRENT
        assert (await dashboard.admissions(ALL)).total == 1

    run(dashboard, body)


def test_resync_keeps_writes_committed_during_the_fetch(dashboard, valid_payload):
    fetch = dashboard.store.list_admissions

    def fetch_then_concurrent_write():
        rows = fetch()
        dashboard.store.insert(validate_admission(valid_payload), actor="test")
        return rows

    async def body():
        dashboard.load_historical_text("")
        await dashboard.start_live()

        dashboard.store.feed.disconnect("connection reset")
        dashboard.store.list_admissions = fetch_then_concurrent_write
        await dashboard.resync()

        snapshot = await dashboard.cache.read()
        assert len(fetch()) == 1
        assert len(snapshot.admissions) == 1
        assert snapshot.status == CacheStatus.CURRENT

    run(dashboard, body)
