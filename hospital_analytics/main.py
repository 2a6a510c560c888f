"""
FastAPI application entrypoint.

Run locally:  uvicorn hospital_analytics.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from hospital_analytics.api.routes import router
from hospital_analytics.config import settings
from hospital_analytics.models.database import Base, make_engine, make_session_factory
from hospital_analytics.services.admission_store import AdmissionStore
from hospital_analytics.services.dashboard import DashboardService
from hospital_analytics.services.encryption import EncryptionService

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")


def create_app(
    engine: Engine | None = None,
    historical_path: str | Path | None = None,
    encryption: EncryptionService | None = None,
) -> FastAPI:
    engine = engine or make_engine()
    session_factory = make_session_factory(engine)
    historical_path = historical_path or settings.HISTORICAL_DATA_PATH

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        dashboard = DashboardService(
            store=AdmissionStore(session_factory, encryption=encryption),
            session_factory=session_factory,
        )
        app.state.dashboard = dashboard
        await dashboard.start_live()
        await dashboard.load_historical(historical_path)
        try:
            yield
        finally:
            await dashboard.close()

    app = FastAPI(
        title="Hospital Analytics API",
        description=(
            "Operational analytics over a historical case dataset merged with "
            "a live admission stream: ALOS, CMI, workload, revenue, "
            "departmental trends, payer and severity mix."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api/v1")
    return app


app = create_app()
