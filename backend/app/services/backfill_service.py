# app/services/backfill_service.py

"""
Batch recomputation over date ranges and repair of missing attainment values.

Both loops are sequential and isolate failures per item: a bad day (or a bad
stored row) is counted and logged, the loop moves on.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterator, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NoDataError
from app.services import calculator, metrics_service
from app.services.extractor import parse_int
from app.services.metric_store import CycleRecordSource, MetricStore

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class BackfillResult:
    unit_id: str
    start_date: date
    end_date: date
    total: int
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False
    failed_dates: List[date] = field(default_factory=list)


@dataclass
class RepairResult:
    unit_id: str
    total: int
    updated: int = 0
    skipped: int = 0
    failed: int = 0


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    day = start_date
    while day <= end_date:
        yield day
        day += timedelta(days=1)


def backfill_range(
    db: Session,
    unit_id: str,
    start_date: date,
    end_date: date,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[threading.Event] = None,
    store: Optional[MetricStore] = None,
    source: Optional[CycleRecordSource] = None,
) -> BackfillResult:
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    total = (end_date - start_date).days + 1
    if total > settings.BACKFILL_MAX_DAYS:
        raise ValueError(f"range of {total} days exceeds BACKFILL_MAX_DAYS={settings.BACKFILL_MAX_DAYS}")

    store = store or MetricStore(db)
    source = source or CycleRecordSource(db)
    result = BackfillResult(unit_id=unit_id, start_date=start_date, end_date=end_date, total=total)

    for done, day in enumerate(iter_days(start_date, end_date), start=1):
        if cancel is not None and cancel.is_set():
            result.cancelled = True
            logger.info("backfill_cancelled", unit_id=unit_id, date=day.isoformat())
            break

        try:
            metrics_service.recompute(db, unit_id, day, store=store, source=source)
            result.processed += 1
        except NoDataError:
            result.skipped += 1
            logger.info("backfill_day_no_data", unit_id=unit_id, date=day.isoformat())
        except Exception:
            result.failed += 1
            result.failed_dates.append(day)
            db.rollback()
            logger.exception("backfill_day_failed", unit_id=unit_id, date=day.isoformat())

        if progress is not None:
            progress(done, total)

    logger.info(
        "backfill_finished",
        unit_id=unit_id,
        total=total,
        processed=result.processed,
        skipped=result.skipped,
        failed=result.failed,
        cancelled=result.cancelled,
    )
    return result


def _repair_counts(metric) -> Tuple[Optional[int], Optional[int]]:
    # stored counts first; no target ever recorded means 100% attainment
    if metric.actual_count:
        actual = parse_int(metric.actual_count)
    else:
        actual = metric.parts_produced

    if metric.target_count:
        target = parse_int(metric.target_count)
    else:
        target = actual
    return actual, target


def repair_missing_attainment(
    db: Session,
    unit_id: str,
    date_range: Optional[Tuple[date, date]] = None,
    store: Optional[MetricStore] = None,
) -> RepairResult:
    store = store or MetricStore(db)
    metrics = store.find_missing_attainment(unit_id, date_range)
    result = RepairResult(unit_id=unit_id, total=len(metrics))

    for metric in metrics:
        metric_id = metric.id
        try:
            actual, target = _repair_counts(metric)
            if actual is None or target is None or target <= 0 or actual < 0:
                result.skipped += 1
                logger.warning(
                    "repair_invalid_counts",
                    metric_id=metric_id,
                    actual=actual,
                    target=target,
                )
                continue

            attainment = calculator.compute_attainment(actual, target)
            if attainment is None:
                result.skipped += 1
                continue

            store.set_attainment(metric, calculator.round_percent(attainment))
            result.updated += 1
        except Exception:
            result.failed += 1
            logger.exception("repair_metric_failed", metric_id=metric_id)

    logger.info(
        "repair_finished",
        unit_id=unit_id,
        total=result.total,
        updated=result.updated,
        skipped=result.skipped,
        failed=result.failed,
    )
    return result
