"""Tests for merging historical cases with live admissions."""

from datetime import datetime, timezone

import pytest

from hospital_analytics.etl.aggregates import workload_by_department
from hospital_analytics.etl.decoder import decode
from hospital_analytics.etl.merger import merge, to_merged
from hospital_analytics.schemas.records import Origin


def test_merge_length_and_order(make_row, make_csv, make_admission):
    historical = decode(make_csv(make_row(case_no="H1"), make_row(case_no="H2")))
    live = [make_admission(id="L1"), make_admission(id="L2"), make_admission(id="L3")]

    merged = merge(historical, live)

    assert len(merged) == len(historical) + len(live)
    assert [m.case_id for m in merged] == ["H1", "H2", "L1", "L2", "L3"]
    assert [m.origin for m in merged] == [Origin.HISTORICAL] * 2 + [Origin.LIVE] * 3


def test_merge_is_deterministic(make_row, make_csv, make_admission):
    historical = decode(make_csv(make_row(), make_row()))
    live = [make_admission(), make_admission()]
    assert merge(historical, live) == merge(historical, live)


def test_merge_empty_inputs():
    assert merge([], []) == []


def test_historical_projection_keeps_fields(make_row, make_csv):
    record = decode(make_csv(make_row(
        month="2023-11-01", specialty="Nephrology", los="6", revenue="900", payer_mix="Self-pay",
    )))[0]
    merged = to_merged(record)

    assert merged.origin == Origin.HISTORICAL
    assert merged.department == "Nephrology"
    assert merged.month == "2023-11-01"
    assert merged.los == 6.0
    assert merged.revenue == 900.0
    assert merged.payer_mix == "Self-pay"
    assert merged.doctor_status == "Active"
    assert merged.cmi == 1.2


@pytest.mark.parametrize("case_type, los", [("IP", 3.0), ("DC", 1.0), ("OP", 0.0)])
def test_live_length_of_stay_by_case_type(make_admission, case_type, los):
    assert to_merged(make_admission(case_type=case_type)).los == los


def test_live_conversion_rules(make_admission):
    admission = make_admission(
        id="abc",
        department="Pulmonology",
        severity=3,
        doctor_name="Dr. Hana Suzuki",
        created_at=datetime(2024, 7, 30, 23, 59, tzinfo=timezone.utc),
    )
    merged = to_merged(admission)

    assert merged.origin == Origin.LIVE
    assert merged.case_id == "abc"
    assert merged.month == "2024-07-01"
    assert merged.department == "Pulmonology"
    assert merged.severity == 3
    assert merged.doctor_name == "Dr. Hana Suzuki"
    assert merged.cmi == 1.0
    assert merged.revenue == 0.0
    assert merged.payer_mix == "Insurance"
    assert (merged.doctor_license, merged.doctor_type, merged.doctor_status) == (
        "LIVE",
        "Live",
        "Unverified",
    )


def test_unknown_record_type_rejected():
    with pytest.raises(TypeError):
        to_merged({"department": "Cardiology"})


def test_one_historical_and_one_live_cardiology_case(make_row, make_csv, make_admission):
    historical = decode(make_csv(make_row(specialty="Cardiology", doctor="Dr. A")))
    live = [make_admission(patient_name="Jane Doe", department="Cardiology", severity=2,
                           doctor_name="Dr. X", case_type="IP")]

    merged = merge(historical, live)
    workload = workload_by_department(merged)

    assert len(merged) == 2
    assert len(workload) == 1
    assert workload[0].full_name == "Cardiology"
    assert workload[0].patients == 2
    assert workload[0].doctors == 2
