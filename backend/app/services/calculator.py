# app/services/calculator.py

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

import structlog

from app.core.config import settings
from app.services.extractor import ExtractedTuple

logger = structlog.get_logger(__name__)

_CENT = Decimal("0.01")


def round_percent(value: float) -> float:
    """2-decimal half-up rounding used for every stored/displayed percentage."""
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_percent(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return f"{round_percent(value):.2f}"


def compute_attainment(actual: float, target: float, cap: Optional[float] = None) -> Optional[float]:
    """
    actual / target * 100, clamped to `cap`.
    Returns None when there is no usable denominator or the ratio is not finite.
    """
    if cap is None:
        cap = settings.ATTAINMENT_CAP
    if target <= 0:
        return None

    value = actual / target * 100
    if math.isnan(value) or math.isinf(value):
        logger.warning("attainment_not_finite", actual=actual, target=target)
        return None
    if value > cap:
        return cap
    return value


@dataclass(frozen=True)
class MetricValues:
    total_runtime: int
    total_downtime: int
    parts_produced: int
    target_parts: int
    efficiency: float
    attainment: Optional[float]

    @property
    def downtime_minutes(self) -> int:
        return int(Decimal(self.total_downtime / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_row(self) -> Dict[str, Any]:
        """Column values for efficiency_metrics (percentages rounded to 2 decimals)."""
        return dict(
            total_runtime=self.total_runtime,
            total_downtime=self.total_downtime,
            parts_produced=self.parts_produced,
            efficiency=round_percent(self.efficiency),
            attainment_percentage=(
                round_percent(self.attainment) if self.attainment is not None else None
            ),
            target_count=str(self.target_parts),
            actual_count=str(self.parts_produced),
            downtime_minutes=self.downtime_minutes,
        )


def aggregate(tuples: Iterable[ExtractedTuple]) -> MetricValues:
    total_runtime = 0
    total_downtime = 0
    parts = 0
    target_parts = 0
    for t in tuples:
        total_runtime += t.runtime_seconds
        total_downtime += t.downtime_seconds
        parts += t.parts
        target_parts += t.target

    if total_runtime > 0 and (total_runtime + total_downtime) > 0:
        efficiency = total_runtime / (total_runtime + total_downtime) * 100
    else:
        # no runtime recorded is no evidence of loss
        efficiency = 100.0

    attainment = compute_attainment(parts, target_parts)

    return MetricValues(
        total_runtime=total_runtime,
        total_downtime=total_downtime,
        parts_produced=parts,
        target_parts=target_parts,
        efficiency=efficiency,
        attainment=attainment,
    )
