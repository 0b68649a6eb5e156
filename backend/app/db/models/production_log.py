# app/db/models/production_log.py

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from app.db.session import Base


class ProductionLog(Base):
    """
    One logged production cycle for a unit (machine or cell).
    - start_time / end_time: plant-local wall clock, end_time NULL while the cycle is open
    - annotation: free text, may carry "target:12|downtime:5|part:ABC|partId:<uuid>"
    """
    __tablename__ = "production_logs"

    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String(64), index=True, nullable=False)

    start_time = Column(DateTime, index=True, nullable=False)
    end_time = Column(DateTime, nullable=True)

    parts_produced = Column(Integer, nullable=False, default=0)
    actual_cycle_time = Column(Integer, nullable=True)  # seconds

    target_count = Column(Integer, nullable=True)
    downtime_seconds = Column(Integer, nullable=True)

    annotation = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
