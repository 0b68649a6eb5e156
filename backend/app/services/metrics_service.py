# app/services/metrics_service.py

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from app.core.errors import NoDataError
from app.db.models.efficiency_metric import EfficiencyMetric
from app.services import calculator, extractor
from app.services.metric_store import CycleRecordSource, MetricStore

logger = structlog.get_logger(__name__)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open [day 00:00, next day 00:00) window of `day`, plant-local."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def recompute(
    db: Session,
    unit_id: str,
    day: date,
    store: Optional[MetricStore] = None,
    source: Optional[CycleRecordSource] = None,
) -> EfficiencyMetric:
    """
    Rebuild the (unit_id, day) metric from closed production logs and upsert it.

    - raises NoDataError when the day has no closed cycle
    - same closed cycles in, same values out; the row is updated in place
    """
    store = store or MetricStore(db)
    source = source or CycleRecordSource(db)

    day_start, next_day_start = day_bounds(day)
    records = [
        r for r in source.find_closed_cycles(unit_id, day_start, next_day_start)
        if r.end_time is not None
    ]
    if not records:
        raise NoDataError(unit_id, day)

    values = calculator.aggregate(extractor.extract(r) for r in records)
    metric = store.upsert(unit_id, day, values.to_row())

    logger.info(
        "metric_recomputed",
        unit_id=unit_id,
        date=day.isoformat(),
        records=len(records),
        efficiency=calculator.format_percent(values.efficiency),
        attainment=calculator.format_percent(values.attainment),
    )
    return metric


def list_metrics(
    db: Session,
    unit_id: str,
    start_date: date,
    end_date: date,
) -> List[EfficiencyMetric]:
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    return MetricStore(db).find_many(unit_id, (start_date, end_date))
