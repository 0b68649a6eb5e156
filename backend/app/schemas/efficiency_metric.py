# app/schemas/efficiency_metric.py

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class EfficiencyMetricOut(BaseModel):
    """
    One efficiency_metrics row.
    """
    id: int
    unit_id: str
    date: date
    total_runtime: int = Field(..., description="seconds")
    total_downtime: int = Field(..., description="seconds")
    parts_produced: int
    efficiency: float
    attainment_percentage: Optional[float] = None
    target_count: Optional[str] = None
    actual_count: Optional[str] = None
    downtime_minutes: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RecomputeRequest(BaseModel):
    unit_id: str
    date: date


class DateRangeRequest(BaseModel):
    unit_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self):
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be given together")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BackfillRequest(BaseModel):
    unit_id: str
    start_date: date
    end_date: date


class BackfillResultOut(BaseModel):
    unit_id: str
    start_date: date
    end_date: date
    total: int
    processed: int
    skipped: int
    failed: int
    cancelled: bool
    failed_dates: List[date] = []

    class Config:
        from_attributes = True


class RepairResultOut(BaseModel):
    unit_id: str
    total: int
    updated: int
    skipped: int
    failed: int

    class Config:
        from_attributes = True


class PeriodSummaryOut(BaseModel):
    unit_id: str
    period: Literal["day", "week", "month"]
    start_date: date
    end_date: date
    total_parts: int
    total_runtime: int
    total_downtime: int
    avg_efficiency: float
    avg_attainment: Optional[float] = Field(None, description="None when no day had a usable attainment")
    days: List[EfficiencyMetricOut] = []

    class Config:
        from_attributes = True
