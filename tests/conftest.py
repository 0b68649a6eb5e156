"""
Shared fixtures for the metrics engine test suite.

DATABASE_URL must be set before anything under `app` is imported, because
settings and the module-level engine are built at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import models  # noqa: F401
from app.db.models.efficiency_metric import EfficiencyMetric
from app.db.models.production_log import ProductionLog
from app.db.session import Base


@pytest.fixture
def db():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def make_log(
    db,
    unit_id: str = "U1",
    day: date = date(2025, 3, 14),
    at: time = time(8, 0),
    parts: int = 10,
    runtime: Optional[int] = 600,
    annotation: Optional[str] = None,
    target: Optional[int] = None,
    downtime: Optional[int] = None,
    closed: bool = True,
) -> ProductionLog:
    """Insert one production log; `closed=False` leaves end_time empty."""
    start = datetime.combine(day, at)
    log = ProductionLog(
        unit_id=unit_id,
        start_time=start,
        end_time=start + timedelta(seconds=runtime or 0) if closed else None,
        parts_produced=parts,
        actual_cycle_time=runtime,
        target_count=target,
        downtime_seconds=downtime,
        annotation=annotation,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def make_metric(
    db,
    unit_id: str = "U1",
    day: date = date(2025, 3, 14),
    parts: int = 10,
    efficiency: float = 100.0,
    attainment: Optional[float] = None,
    actual_count: Optional[str] = None,
    target_count: Optional[str] = None,
    runtime: int = 600,
    downtime: int = 0,
) -> EfficiencyMetric:
    metric = EfficiencyMetric(
        unit_id=unit_id,
        date=day,
        total_runtime=runtime,
        total_downtime=downtime,
        parts_produced=parts,
        efficiency=efficiency,
        attainment_percentage=attainment,
        actual_count=actual_count,
        target_count=target_count,
        downtime_minutes=round(downtime / 60),
    )
    db.add(metric)
    db.commit()
    db.refresh(metric)
    return metric
