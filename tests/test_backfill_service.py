import threading
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.core.errors import StoreFailure
from app.db.models.efficiency_metric import EfficiencyMetric
from app.services.backfill_service import (
    backfill_range,
    iter_days,
    repair_missing_attainment,
)
from app.services.metric_store import MetricStore
from tests.conftest import make_log, make_metric

START = date(2025, 3, 1)


class FailingUpsertStore(MetricStore):
    """Raises on the write for one specific day."""

    def __init__(self, db, bad_day):
        super().__init__(db)
        self.bad_day = bad_day

    def upsert(self, unit_id, day, values):
        if day == self.bad_day:
            raise StoreFailure("upsert failed: constraint violated")
        return super().upsert(unit_id, day, values)


class FailingAttainmentStore(MetricStore):
    def __init__(self, db, bad_id):
        super().__init__(db)
        self.bad_id = bad_id

    def set_attainment(self, metric, attainment):
        if metric.id == self.bad_id:
            raise StoreFailure("set_attainment failed")
        return super().set_attainment(metric, attainment)


def stored_count(db):
    return db.execute(select(func.count()).select_from(EfficiencyMetric)).scalar_one()


def test_iter_days_inclusive():
    days = list(iter_days(START, START + timedelta(days=2)))
    assert days == [START, START + timedelta(days=1), START + timedelta(days=2)]


def test_backfill_survives_one_failing_day(db):
    for i in range(10):
        make_log(db, day=START + timedelta(days=i), parts=10, annotation="target:10")
    bad_day = START + timedelta(days=4)

    result = backfill_range(
        db, "U1", START, START + timedelta(days=9),
        store=FailingUpsertStore(db, bad_day),
    )

    assert result.total == 10
    assert result.processed == 9
    assert result.failed == 1
    assert result.skipped == 0
    assert result.failed_dates == [bad_day]
    assert stored_count(db) == 9


def test_backfill_counts_empty_days_as_skipped(db):
    make_log(db, day=START)
    make_log(db, day=START + timedelta(days=2))

    result = backfill_range(db, "U1", START, START + timedelta(days=2))

    assert (result.processed, result.skipped, result.failed) == (2, 1, 0)


def test_backfill_reports_progress(db):
    make_log(db, day=START)
    calls = []

    backfill_range(db, "U1", START, START + timedelta(days=2), progress=lambda d, t: calls.append((d, t)))

    assert calls == [(1, 3), (2, 3), (3, 3)]


def test_backfill_stops_when_cancelled(db):
    for i in range(5):
        make_log(db, day=START + timedelta(days=i))
    cancel = threading.Event()

    def progress(done, total):
        if done == 2:
            cancel.set()

    result = backfill_range(
        db, "U1", START, START + timedelta(days=4), progress=progress, cancel=cancel,
    )

    assert result.cancelled is True
    assert result.processed == 2
    assert stored_count(db) == 2


def test_backfill_rejects_inverted_range(db):
    with pytest.raises(ValueError):
        backfill_range(db, "U1", START + timedelta(days=1), START)


def test_backfill_rejects_oversized_range(db, monkeypatch):
    monkeypatch.setattr(settings, "BACKFILL_MAX_DAYS", 5)
    with pytest.raises(ValueError):
        backfill_range(db, "U1", START, START + timedelta(days=5))


def test_repair_falls_back_to_actual_when_no_target(db):
    metric = make_metric(db, actual_count="30", target_count=None, parts=30)

    result = repair_missing_attainment(db, "U1")

    db.refresh(metric)
    assert result.updated == 1
    assert metric.attainment_percentage == 100.0


def test_repair_caps_attainment(db):
    metric = make_metric(db, actual_count="250", target_count="50", parts=250)

    repair_missing_attainment(db, "U1")

    db.refresh(metric)
    assert metric.attainment_percentage == 200.0


def test_repair_uses_parts_when_actual_count_missing(db):
    metric = make_metric(db, actual_count=None, target_count="80", parts=40)

    repair_missing_attainment(db, "U1")

    db.refresh(metric)
    assert metric.attainment_percentage == 50.0


def test_repair_skips_unusable_rows(db):
    zero_target = make_metric(db, day=START, actual_count="5", target_count="0")
    garbage = make_metric(db, day=START + timedelta(days=1), actual_count="n/a", target_count=None)
    nothing = make_metric(db, day=START + timedelta(days=2), parts=0, actual_count=None, target_count=None)

    result = repair_missing_attainment(db, "U1")

    assert result.total == 3
    assert result.skipped == 3
    assert result.updated == 0
    for metric in (zero_target, garbage, nothing):
        db.refresh(metric)
        assert metric.attainment_percentage is None


def test_repair_only_touches_missing_rows_in_range(db):
    done = make_metric(db, day=START, attainment=80.0, actual_count="8", target_count="10")
    inside = make_metric(db, day=START + timedelta(days=1), actual_count="9", target_count="10")
    outside = make_metric(db, day=START + timedelta(days=20), actual_count="9", target_count="10")

    result = repair_missing_attainment(db, "U1", (START, START + timedelta(days=5)))

    assert result.total == 1
    for metric in (done, inside, outside):
        db.refresh(metric)
    assert done.attainment_percentage == 80.0
    assert inside.attainment_percentage == 90.0
    assert outside.attainment_percentage is None


def test_repair_continues_after_a_failing_row(db):
    bad = make_metric(db, day=START, actual_count="5", target_count="10")
    good = make_metric(db, day=START + timedelta(days=1), actual_count="10", target_count="10")

    result = repair_missing_attainment(db, "U1", store=FailingAttainmentStore(db, bad.id))

    assert (result.updated, result.failed) == (1, 1)
    db.refresh(good)
    assert good.attainment_percentage == 100.0
