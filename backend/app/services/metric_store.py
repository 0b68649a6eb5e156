# app/services/metric_store.py

"""
Persistence boundary for the metrics engine.

MetricStore owns the atomicity of the (unit_id, date) upsert; callers only hand
it computed column values. Every SQLAlchemy error is rolled back and re-raised
as StoreFailure so one session can keep serving the next item of a batch.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StoreFailure
from app.db.models.efficiency_metric import EfficiencyMetric
from app.db.models.production_log import ProductionLog

DateRange = Tuple[date, date]

_UPSERT_COLUMNS = (
    "total_runtime",
    "total_downtime",
    "parts_produced",
    "efficiency",
    "attainment_percentage",
    "target_count",
    "actual_count",
    "downtime_minutes",
)


class MetricStore:
    # dialects with a native INSERT ... ON CONFLICT; others use a locked select-then-write
    ON_CONFLICT_DIALECTS = ("postgresql", "sqlite")

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fail(self, action: str, exc: Exception) -> StoreFailure:
        self.db.rollback()
        return StoreFailure(f"{action} failed: {exc}")

    def find_one(self, unit_id: str, day: date) -> Optional[EfficiencyMetric]:
        stmt = (
            select(EfficiencyMetric)
            .where(EfficiencyMetric.unit_id == unit_id, EfficiencyMetric.date == day)
            .limit(1)
        )
        try:
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise self._fail("find_one", e) from e

    def upsert(self, unit_id: str, day: date, values: Dict[str, Any]) -> EfficiencyMetric:
        row = {k: values[k] for k in _UPSERT_COLUMNS}
        try:
            dialect = self.db.get_bind().dialect.name
            if dialect in self.ON_CONFLICT_DIALECTS:
                self._upsert_on_conflict(dialect, unit_id, day, row)
            else:
                self._upsert_locked(unit_id, day, row)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("upsert", e) from e

        # commit expired the identity map, so this reads what the database now holds
        return self.find_one(unit_id, day)

    def _upsert_on_conflict(self, dialect: str, unit_id: str, day: date, row: Dict[str, Any]) -> None:
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = insert(EfficiencyMetric).values(unit_id=unit_id, date=day, **row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[EfficiencyMetric.unit_id, EfficiencyMetric.date],
            set_={**row, "updated_at": func.now()},
        )
        self.db.execute(stmt)

    def _upsert_locked(self, unit_id: str, day: date, row: Dict[str, Any]) -> None:
        stmt = (
            select(EfficiencyMetric)
            .where(EfficiencyMetric.unit_id == unit_id, EfficiencyMetric.date == day)
            .with_for_update()
        )
        existing = self.db.scalars(stmt).first()
        if existing:
            for field, value in row.items():
                setattr(existing, field, value)
            existing.updated_at = func.now()
            self.db.add(existing)
        else:
            self.db.add(EfficiencyMetric(unit_id=unit_id, date=day, **row))

    def find_many(self, unit_id: str, date_range: DateRange) -> List[EfficiencyMetric]:
        start, end = date_range
        stmt = (
            select(EfficiencyMetric)
            .where(
                EfficiencyMetric.unit_id == unit_id,
                EfficiencyMetric.date >= start,
                EfficiencyMetric.date <= end,
            )
            .order_by(EfficiencyMetric.date)
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            raise self._fail("find_many", e) from e

    def find_missing_attainment(
        self,
        unit_id: str,
        date_range: Optional[DateRange] = None,
    ) -> List[EfficiencyMetric]:
        stmt = select(EfficiencyMetric).where(
            EfficiencyMetric.unit_id == unit_id,
            EfficiencyMetric.attainment_percentage.is_(None),
        )
        if date_range is not None:
            start, end = date_range
            stmt = stmt.where(EfficiencyMetric.date >= start, EfficiencyMetric.date <= end)
        stmt = stmt.order_by(EfficiencyMetric.date)
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            raise self._fail("find_missing_attainment", e) from e

    def list_units_missing_attainment(self) -> List[str]:
        stmt = (
            select(EfficiencyMetric.unit_id)
            .where(EfficiencyMetric.attainment_percentage.is_(None))
            .distinct()
            .order_by(EfficiencyMetric.unit_id)
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            raise self._fail("list_units_missing_attainment", e) from e

    def set_attainment(self, metric: EfficiencyMetric, attainment: float) -> EfficiencyMetric:
        metric.attainment_percentage = attainment
        metric.updated_at = func.now()
        try:
            self.db.add(metric)
            self.db.commit()
            self.db.refresh(metric)
        except SQLAlchemyError as e:
            raise self._fail("set_attainment", e) from e
        return metric


class CycleRecordSource:
    """Read side of production_logs. Only closed cycles (end_time set) are ever returned."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_closed_cycles(
        self,
        unit_id: str,
        day_start: datetime,
        next_day_start: datetime,
    ) -> List[ProductionLog]:
        stmt = (
            select(ProductionLog)
            .where(
                ProductionLog.unit_id == unit_id,
                ProductionLog.start_time >= day_start,
                ProductionLog.start_time < next_day_start,
                ProductionLog.end_time.is_not(None),
            )
            .order_by(ProductionLog.start_time, ProductionLog.id)
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailure(f"find_closed_cycles failed: {e}") from e
