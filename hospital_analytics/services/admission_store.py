"""
Live admission store backed by SQLAlchemy.

Provides the three operations the dashboard relies on:
- a full read, newest first
- insert of a validated submission (returns the stored admission)
- delete by id
and publishes every committed insert/delete on its ChangeFeed. Callers never
update their own view after a write; the feed echo does that.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from hospital_analytics.exceptions import AdmissionWriteError
from hospital_analytics.models.admission import LiveAdmissionRow
from hospital_analytics.schemas.records import LiveAdmission, NormalizedAdmission
from hospital_analytics.services.audit import log_action
from hospital_analytics.services.encryption import EncryptionService
from hospital_analytics.services.feed import ChangeFeed

logger = logging.getLogger(__name__)


class AdmissionStore:
    def __init__(
        self,
        session_factory: sessionmaker,
        feed: ChangeFeed | None = None,
        encryption: EncryptionService | None = None,
    ):
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()
        self._encryption = encryption or EncryptionService()

    def _to_admission(self, row: LiveAdmissionRow) -> LiveAdmission:
        created_at = row.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return LiveAdmission(
            id=row.id,
            patient_name=self._encryption.decrypt(row.encrypted_patient_name),
            department=row.department,
            severity=row.severity,
            doctor_name=row.doctor_name,
            case_type=row.case_type,
            created_at=created_at,
        )

    def ping(self) -> bool:
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def list_admissions(self) -> list[LiveAdmission]:
        """Every stored admission, newest first."""
        with self._session_factory() as db:
            rows = (
                db.query(LiveAdmissionRow)
                .order_by(LiveAdmissionRow.created_at.desc())
                .all()
            )
            return [self._to_admission(row) for row in rows]

    def insert(self, admission: NormalizedAdmission, actor: str = "admissions_portal") -> LiveAdmission:
        """
        Store a validated admission and publish it on the feed.
        Raises AdmissionWriteError if the database rejects the write.
        """
        row = LiveAdmissionRow(
            encrypted_patient_name=self._encryption.encrypt(admission.patient_name),
            department=admission.department,
            severity=admission.severity,
            doctor_name=admission.doctor_name,
            case_type=admission.case_type,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._session_factory() as db:
                db.add(row)
                db.flush()
                log_action(
                    db,
                    actor=actor,
                    action="create",
                    resource_type="LiveAdmission",
                    resource_id=row.id,
                    detail={"department": admission.department, "case_type": admission.case_type},
                )
                db.commit()
                stored = self._to_admission(row)
        except SQLAlchemyError as exc:
            logger.error("Admission insert rejected: %s", exc)
            raise AdmissionWriteError("Failed to record admission", detail=str(exc)) from exc

        logger.info("Admission %s recorded in %s", stored.id, stored.department)
        self.feed.publish_insert(stored)
        return stored

    def delete(self, admission_id: str, actor: str = "admissions_portal") -> bool:
        """Delete an admission; False if it does not exist."""
        try:
            with self._session_factory() as db:
                row = db.get(LiveAdmissionRow, admission_id)
                if row is None:
                    return False
                db.delete(row)
                log_action(
                    db,
                    actor=actor,
                    action="delete",
                    resource_type="LiveAdmission",
                    resource_id=admission_id,
                )
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("Admission delete rejected: %s", exc)
            raise AdmissionWriteError("Failed to delete admission", detail=str(exc)) from exc

        logger.info("Admission %s deleted", admission_id)
        self.feed.publish_delete(admission_id)
        return True
