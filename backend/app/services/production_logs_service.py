# app/services/production_logs_service.py

from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import select, desc

from app.db.models.production_log import ProductionLog
from app.schemas.production_log import ProductionLogComplete, ProductionLogCreate


def create_production_log(db: Session, data: ProductionLogCreate) -> ProductionLog:
    log = ProductionLog(
        unit_id=data.unit_id,
        start_time=data.start_time,
        end_time=data.end_time,
        parts_produced=data.parts_produced,
        actual_cycle_time=data.actual_cycle_time,
        target_count=data.target_count,
        downtime_seconds=data.downtime_seconds,
        annotation=data.annotation,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def get_production_log_by_id(db: Session, log_id: int) -> Optional[ProductionLog]:
    return db.get(ProductionLog, log_id)


def list_production_logs(
    db: Session,
    unit_id: Optional[str] = None,
    limit: int = 50,
) -> List[ProductionLog]:
    stmt = select(ProductionLog)
    if unit_id:
        stmt = stmt.where(ProductionLog.unit_id == unit_id)
    stmt = stmt.order_by(desc(ProductionLog.start_time), desc(ProductionLog.id)).limit(limit)
    return list(db.scalars(stmt))


def complete_production_log(
    db: Session,
    log: ProductionLog,
    data: ProductionLogComplete,
) -> ProductionLog:
    """
    Close an open cycle.
    actual_cycle_time defaults to whole seconds between start and end (never negative).
    """
    if data.end_time < log.start_time:
        raise ValueError("end_time must not be before start_time")

    log.end_time = data.end_time
    if data.parts_produced is not None:
        log.parts_produced = data.parts_produced
    if data.actual_cycle_time is not None:
        log.actual_cycle_time = data.actual_cycle_time
    elif log.actual_cycle_time is None:
        log.actual_cycle_time = max(int((data.end_time - log.start_time).total_seconds()), 0)

    db.add(log)
    db.commit()
    db.refresh(log)
    return log
