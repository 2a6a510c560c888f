"""
Tables backing the live admission store.

Demonstrates:
- PHI column separation (patient name encrypted, operational fields clear)
- Audit trail for every write
- Pipeline run history for historical dataset loads
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from hospital_analytics.models.database import Base

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Live admission – one row per admitted patient (contains PHI)
# ---------------------------------------------------------------------------
class LiveAdmissionRow(Base):
    __tablename__ = "live_admissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    encrypted_patient_name = Column(Text, nullable=False, comment="Fernet-encrypted patient name")

    department = Column(String(64), nullable=False)
    severity = Column(Integer, nullable=False)
    doctor_name = Column(String(100), nullable=False)
    case_type = Column(String(2), nullable=False, comment="IP | OP | DC")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_live_admissions_created_at", "created_at"),
        Index("ix_live_admissions_department", "department"),
    )


# ---------------------------------------------------------------------------
# Audit Log – immutable compliance trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="create | delete")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=False)
    detail = Column(JSONDocument, comment="Context for the action")
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)


# ---------------------------------------------------------------------------
# Pipeline Run – history of historical dataset loads
# ---------------------------------------------------------------------------
class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pipeline_name = Column(String(128), nullable=False)
    status = Column(String(16), default="pending", comment="completed | failed")
    source = Column(Text, comment="Where the dataset was read from")
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    input_record_count = Column(Integer)
    output_record_count = Column(Integer)
    errors = Column(JSONDocument, default=dict)
    dag_definition = Column(JSONDocument, comment="Snapshot of the DAG that was executed")
