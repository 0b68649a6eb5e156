# app/services/aggregation_service.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.orm import Session

from app.core.errors import NoDataError
from app.db.models.efficiency_metric import EfficiencyMetric
from app.services.metric_store import MetricStore

logger = structlog.get_logger(__name__)

# period -> days before `today` included in the window
PERIOD_LOOKBACK_DAYS = {
    "day": 0,
    "week": 6,
    "month": 29,
}


@dataclass
class PeriodSummary:
    unit_id: str
    period: str
    start_date: date
    end_date: date
    total_parts: int
    total_runtime: int
    total_downtime: int
    avg_efficiency: float
    avg_attainment: Optional[float]
    days: List[EfficiencyMetric] = field(default_factory=list)


def resolve_window(period: str, today: Optional[date] = None) -> Tuple[date, date]:
    if period not in PERIOD_LOOKBACK_DAYS:
        raise ValueError(f"unknown period {period!r}, expected one of {sorted(PERIOD_LOOKBACK_DAYS)}")
    today = today or date.today()
    return today - timedelta(days=PERIOD_LOOKBACK_DAYS[period]), today


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def summarize(rows: Sequence[Any]) -> Tuple[int, int, int, float, Optional[float]]:
    """
    (total_parts, total_runtime, total_downtime, avg_efficiency, avg_attainment) over `rows`.

    An unreadable efficiency counts as 0 in the mean (the row is NOT excluded),
    while attainment is averaged only over rows that have a usable value.
    """
    total_parts = sum(int(r.parts_produced or 0) for r in rows)
    total_runtime = sum(int(r.total_runtime or 0) for r in rows)
    total_downtime = sum(int(r.total_downtime or 0) for r in rows)

    efficiency_sum = 0.0
    for r in rows:
        value = _to_float(r.efficiency)
        if value is None:
            logger.warning("efficiency_unparseable", metric_id=getattr(r, "id", None), value=r.efficiency)
            value = 0.0
        efficiency_sum += value
    avg_efficiency = efficiency_sum / len(rows) if rows else 0.0

    attainments = [
        v for v in (_to_float(r.attainment_percentage) for r in rows) if v is not None
    ]
    avg_attainment = sum(attainments) / len(attainments) if attainments else None

    return total_parts, total_runtime, total_downtime, avg_efficiency, avg_attainment


def aggregate(
    db: Session,
    unit_id: str,
    period: str,
    today: Optional[date] = None,
    store: Optional[MetricStore] = None,
) -> PeriodSummary:
    start_date, end_date = resolve_window(period, today)
    store = store or MetricStore(db)

    rows = store.find_many(unit_id, (start_date, end_date))
    if not rows:
        raise NoDataError(unit_id, end_date, "no metrics recorded for this period")

    total_parts, total_runtime, total_downtime, avg_efficiency, avg_attainment = summarize(rows)

    return PeriodSummary(
        unit_id=unit_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
        total_parts=total_parts,
        total_runtime=total_runtime,
        total_downtime=total_downtime,
        avg_efficiency=avg_efficiency,
        avg_attainment=avg_attainment,
        days=rows,
    )
