# app/api/v1/metrics.py

from datetime import date
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.errors import NoDataError, StoreFailure
from app.schemas.efficiency_metric import (
    BackfillRequest,
    BackfillResultOut,
    DateRangeRequest,
    EfficiencyMetricOut,
    PeriodSummaryOut,
    RecomputeRequest,
    RepairResultOut,
)
from app.services import aggregation_service, backfill_service, metrics_service
from app.ws.bus import ws_bus

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/", response_model=List[EfficiencyMetricOut])
def list_metrics_endpoint(
    unit_id: str,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
):
    try:
        return metrics_service.list_metrics(db, unit_id, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/recompute", response_model=EfficiencyMetricOut)
def recompute_endpoint(
    req: RecomputeRequest,
    db: Session = Depends(get_db),
):
    try:
        metric = metrics_service.recompute(db, req.unit_id, req.date)
    except NoDataError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

    ws_bus.emit({
        "type": "metric_recomputed",
        "unit_id": req.unit_id,
        "date": req.date.isoformat(),
    })
    return metric


@router.post("/backfill", response_model=BackfillResultOut)
def backfill_endpoint(
    req: BackfillRequest,
    db: Session = Depends(get_db),
):
    """Recompute every day of [start_date, end_date]; progress is pushed on /ws/metrics."""
    try:
        result = backfill_service.backfill_range(
            db,
            req.unit_id,
            req.start_date,
            req.end_date,
            progress=lambda done, total: ws_bus.backfill_progress(req.unit_id, done, total),
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return BackfillResultOut.model_validate(result)


@router.post("/repair-attainment", response_model=RepairResultOut)
def repair_attainment_endpoint(
    req: DateRangeRequest,
    db: Session = Depends(get_db),
):
    date_range = None
    if req.start_date and req.end_date:
        date_range = (req.start_date, req.end_date)
    try:
        result = backfill_service.repair_missing_attainment(db, req.unit_id, date_range)
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RepairResultOut.model_validate(result)


@router.get("/summary", response_model=PeriodSummaryOut)
def summary_endpoint(
    unit_id: str,
    period: Literal["day", "week", "month"] = "week",
    db: Session = Depends(get_db),
):
    try:
        summary = aggregation_service.aggregate(db, unit_id, period)
    except NoDataError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return PeriodSummaryOut.model_validate(summary)
