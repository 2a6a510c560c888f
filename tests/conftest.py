"""
Shared fixtures for all tests.

Builders are exposed as fixtures returning factory functions so each test
can describe only the fields it cares about.
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from cryptography.fernet import Fernet

from hospital_analytics.models.database import Base, make_engine, make_session_factory
from hospital_analytics.schemas.records import LiveAdmission
from hospital_analytics.services.encryption import EncryptionService

HEADER = (
    "Month,CaseNo,DOB,Nationality,Gender,DoctorLicense,DoctorName,DoctorType,"
    "DoctorStatus,CMI,Specialty,InsurancePayer,InsurancePlan,PayerMix,CaseType,"
    "LOS,Severity,SurgicalMix,DischargeTime,DischargeBefore12PM,Revenue"
)


# ---------------------------------------------------------------------------
# Historical dataset
# ---------------------------------------------------------------------------

@pytest.fixture
def make_row():
    case_numbers = count(1)

    def _make_row(
        month="2024-01-01",
        case_no=None,
        doctor="Dr. Sofia Kim",
        status="Active",
        cmi="1.2",
        specialty="Cardiology",
        payer_mix="Insurance",
        case_type="IP",
        los="4",
        severity="2",
        discharge_before_noon="Yes",
        revenue="500",
    ):
        return ",".join([
            month,
            case_no or f"C{next(case_numbers):04d}",
            "1985",
            "Emirati",
            "F",
            "LIC-1001",
            doctor,
            "Consultant",
            status,
            str(cmi),
            specialty,
            "Daman",
            "Gold",
            payer_mix,
            case_type,
            str(los),
            str(severity),
            "Medical",
            "10:30",
            discharge_before_noon,
            str(revenue),
        ])

    return _make_row


@pytest.fixture
def make_csv():
    def _make_csv(*rows):
        return "\n".join([HEADER, *rows]) + "\n"

    return _make_csv


# ---------------------------------------------------------------------------
# Live admissions
# ---------------------------------------------------------------------------

@pytest.fixture
def make_admission():
    ids = count(1)
    base_time = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)

    def _make_admission(
        id=None,
        patient_name="Jane Doe",
        department="Cardiology",
        severity=2,
        doctor_name="Dr. X",
        case_type="IP",
        created_at=None,
    ):
        n = next(ids)
        return LiveAdmission(
            id=id or f"adm-{n}",
            patient_name=patient_name,
            department=department,
            severity=severity,
            doctor_name=doctor_name,
            case_type=case_type,
            created_at=created_at or base_time + timedelta(minutes=n),
        )

    return _make_admission


@pytest.fixture
def valid_payload():
    return {
        "patient_name": "Jane Doe",
        "department": "Cardiology",
        "severity": 2,
        "doctor_name": "Dr. Sofia Kim",
        "case_type": "IP",
    }


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def encryption():
    return EncryptionService(Fernet.generate_key())
