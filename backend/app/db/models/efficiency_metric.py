# app/db/models/efficiency_metric.py

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from app.db.session import Base


class EfficiencyMetric(Base):
    """
    Daily aggregate per unit. Exactly one row per (unit_id, date).
    - total_runtime / total_downtime: seconds
    - target_count / actual_count: string copies of the counts, kept for display
    """
    __tablename__ = "efficiency_metrics"
    __table_args__ = (
        UniqueConstraint("unit_id", "date", name="uq_efficiency_metrics_unit_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String(64), index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)

    total_runtime = Column(Integer, nullable=False)
    total_downtime = Column(Integer, nullable=False)
    parts_produced = Column(Integer, nullable=False)

    efficiency = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    attainment_percentage = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    target_count = Column(String(16), nullable=True)
    actual_count = Column(String(16), nullable=True)
    downtime_minutes = Column(Integer, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
