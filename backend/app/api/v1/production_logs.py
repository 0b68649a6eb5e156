# app/api/v1/production_logs.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.production_log import (
    ProductionLogComplete,
    ProductionLogCreate,
    ProductionLogOut,
)
from app.services import production_logs_service

router = APIRouter(prefix="/production-logs", tags=["production-logs"])


@router.post("/", response_model=ProductionLogOut)
def create_production_log_endpoint(
    data: ProductionLogCreate,
    db: Session = Depends(get_db),
):
    return production_logs_service.create_production_log(db, data)


@router.get("/", response_model=List[ProductionLogOut])
def list_production_logs_endpoint(
    unit_id: Optional[str] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    return production_logs_service.list_production_logs(db, unit_id=unit_id, limit=limit)


@router.post("/{log_id}/complete", response_model=ProductionLogOut)
def complete_production_log_endpoint(
    log_id: int,
    data: ProductionLogComplete,
    db: Session = Depends(get_db),
):
    log = production_logs_service.get_production_log_by_id(db, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Production log not found")
    try:
        return production_logs_service.complete_production_log(db, log, data)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
