from datetime import date

from sqlalchemy import func, select

from app.db.models.efficiency_metric import EfficiencyMetric
from app.services.metric_store import MetricStore

DAY = date(2025, 3, 14)


def values(parts=10, efficiency=100.0, attainment=100.0):
    return {
        "total_runtime": 600,
        "total_downtime": 0,
        "parts_produced": parts,
        "efficiency": efficiency,
        "attainment_percentage": attainment,
        "target_count": "10",
        "actual_count": str(parts),
        "downtime_minutes": 0,
    }


def row_count(db):
    return db.execute(select(func.count()).select_from(EfficiencyMetric)).scalar_one()


class TestLockedUpsert:
    """Dialects without ON CONFLICT go through the locked select-then-write path."""

    def test_insert_then_update_in_place(self, db, monkeypatch):
        monkeypatch.setattr(MetricStore, "ON_CONFLICT_DIALECTS", ())
        calls = []
        original = MetricStore._upsert_locked

        def tracking(self, *args):
            calls.append(args[:2])
            return original(self, *args)

        monkeypatch.setattr(MetricStore, "_upsert_locked", tracking)
        store = MetricStore(db)

        first = store.upsert("U1", DAY, values())
        first_id = first.id
        second = store.upsert("U1", DAY, values(parts=5, efficiency=50.0, attainment=50.0))

        assert calls == [("U1", DAY), ("U1", DAY)]
        assert second.id == first_id
        assert second.parts_produced == 5
        assert second.attainment_percentage == 50.0
        assert second.actual_count == "5"
        assert row_count(db) == 1

    def test_keeps_units_and_days_apart(self, db, monkeypatch):
        monkeypatch.setattr(MetricStore, "ON_CONFLICT_DIALECTS", ())
        store = MetricStore(db)

        store.upsert("U1", DAY, values())
        store.upsert("U2", DAY, values())
        store.upsert("U1", date(2025, 3, 15), values())

        assert row_count(db) == 3


def test_native_upsert_keeps_one_row(db):
    store = MetricStore(db)

    store.upsert("U1", DAY, values())
    updated = store.upsert("U1", DAY, values(parts=3, attainment=30.0))

    assert updated.parts_produced == 3
    assert row_count(db) == 1
