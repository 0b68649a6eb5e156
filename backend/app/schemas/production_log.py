# app/schemas/production_log.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _plant_local(value: Optional[datetime]) -> Optional[datetime]:
    # production_logs stores naive plant-local wall clock
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class ProductionLogBase(BaseModel):
    unit_id: str = Field(..., description="Machine or cell the cycle ran on")
    start_time: datetime = Field(..., description="Cycle start, plant-local time")
    parts_produced: int = Field(0, ge=0, description="Parts produced in the cycle")
    target_count: Optional[int] = Field(None, description="Explicit target for the cycle, if known")
    annotation: Optional[str] = Field(None, description='Free text, e.g. "target:12|downtime:5"')

    @field_validator("start_time")
    @classmethod
    def start_time_plant_local(cls, value):
        return _plant_local(value)


class ProductionLogCreate(ProductionLogBase):
    end_time: Optional[datetime] = Field(None, description="Cycle end; empty while the cycle is open")
    actual_cycle_time: Optional[int] = Field(None, ge=0, description="Runtime in seconds")
    downtime_seconds: Optional[int] = Field(None, ge=0, description="Explicit downtime in seconds")

    @field_validator("end_time")
    @classmethod
    def end_time_plant_local(cls, value):
        return _plant_local(value)


class ProductionLogComplete(BaseModel):
    end_time: datetime
    parts_produced: Optional[int] = Field(None, ge=0)
    actual_cycle_time: Optional[int] = Field(None, ge=0, description="Defaults to end_time - start_time")

    @field_validator("end_time")
    @classmethod
    def end_time_plant_local(cls, value):
        return _plant_local(value)


class ProductionLogOut(ProductionLogBase):
    id: int
    end_time: Optional[datetime] = None
    actual_cycle_time: Optional[int] = None
    downtime_seconds: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
