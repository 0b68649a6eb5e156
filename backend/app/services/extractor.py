# app/services/extractor.py

"""
Record extractor: ProductionLog -> ExtractedTuple.

The annotation field is a best-effort side channel ("target:12|downtime:5").
Nothing in here raises; a bad token degrades to the documented default and the
rest of the record is still used.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# counts beyond a 32-bit column are corrupt input, not production data
MAX_COUNT = 2**31 - 1

# annotation key -> AnnotationTokens attribute
_TOKEN_KEYS = {
    "target": "target",
    "downtime": "downtime",
    "part": "part",
    "partid": "part_id",
}


@dataclass(frozen=True)
class AnnotationTokens:
    """Raw token values found in an annotation. None means the token is absent."""
    target: Optional[str] = None
    downtime: Optional[str] = None
    part: Optional[str] = None
    part_id: Optional[str] = None


@dataclass(frozen=True)
class ExtractedTuple:
    parts: int
    runtime_seconds: int
    downtime_seconds: int
    target: int


def parse_int(value: Any) -> Optional[int]:
    """Tolerant integer parse: leading digits win ("12pcs" -> 12), anything else -> None.

    Values whose magnitude exceeds MAX_COUNT are treated as unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        parsed = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return None
        parsed = int(match.group(1))
    if abs(parsed) > MAX_COUNT:
        return None
    return parsed


def parse_annotation(text: Optional[str]) -> AnnotationTokens:
    if not text:
        return AnnotationTokens()

    found: Dict[str, str] = {}
    for chunk in str(text).split("|"):
        key, sep, value = chunk.partition(":")
        if not sep:
            continue
        attr = _TOKEN_KEYS.get(key.strip().lower())
        # first occurrence of a key wins
        if attr and attr not in found:
            found[attr] = value.strip()
    return AnnotationTokens(**found)


def _non_negative(value: Any) -> int:
    parsed = parse_int(value)
    if parsed is None or parsed < 0:
        return 0
    return parsed


def _resolve_target(record: Any, tokens: AnnotationTokens, parts: int) -> int:
    explicit = parse_int(getattr(record, "target_count", None))
    if explicit is not None and explicit > 0:
        return explicit

    if tokens.target is not None:
        from_token = parse_int(tokens.target)
        if from_token is None:
            logger.warning(
                "annotation_token_unparseable",
                token="target",
                value=tokens.target,
                record_id=getattr(record, "id", None),
            )
        elif from_token > 0:
            return from_token

    # no target signal at all: assume the unit hit its target
    return parts


def _resolve_downtime(record: Any, tokens: AnnotationTokens) -> int:
    explicit = parse_int(getattr(record, "downtime_seconds", None))
    if explicit is not None and explicit >= 0:
        return explicit

    if tokens.downtime is None:
        return 0

    minutes = parse_int(tokens.downtime)
    if minutes is None or minutes < 0 or minutes * 60 > MAX_COUNT:
        logger.warning(
            "annotation_token_unparseable",
            token="downtime",
            value=tokens.downtime,
            record_id=getattr(record, "id", None),
        )
        return 0
    return minutes * 60


def extract(record: Any) -> ExtractedTuple:
    """Normalize one production log (ORM row or any object with the same attributes)."""
    tokens = parse_annotation(getattr(record, "annotation", None))

    parts = _non_negative(getattr(record, "parts_produced", 0))
    runtime = _non_negative(getattr(record, "actual_cycle_time", None))

    return ExtractedTuple(
        parts=parts,
        runtime_seconds=runtime,
        downtime_seconds=_resolve_downtime(record, tokens),
        target=_resolve_target(record, tokens, parts),
    )
