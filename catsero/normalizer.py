"""
Normalizer (raw rows -> CatRecord list)
=======================================

Takes the raw field mappings produced by the loader and converts each one
into a `CatRecord`, or into a `Rejection` explaining why it was dropped.

Key ideas:
- Only managed (colony) cats are in scope; other cohort types are rejected first.
- A missing required field rejects the row. Nothing is filled with a default.
- Titer strings are cleaned before parsing: a "<40" reading becomes 20 (half
  the detection floor), "640.0" keeps its integer part, other non-digits
  are stripped, and known lab
  transcription errors are corrected by exact lookup afterwards.
- The input mappings are never modified.
"""

from __future__ import annotations
from dataclasses import dataclass
from collections import Counter
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import math
import re

import pandas as pd
from loguru import logger

from .classifier import exposure_flags, to_age_class, to_life_stage
from .config import PipelineConfig
from .exceptions import RecordRejected
from .models import CatRecord, Rejection, RejectionReason

REQUIRED_FIELDS: Tuple[str, ...] = (
    "colony_id", "longitude", "latitude", "date", "age", "life_stage",
    "toxo_titer", "fiv", "felv",
)

# Half of the 1:40 detection floor, the usual convention for "<40" readings.
BELOW_DETECTION_TITER = 20

_LESS_THAN_40 = re.compile(r"<\s*40(?!\d)")
# "640.0" as written by float columns; the fraction must be all zeros.
_DECIMAL = re.compile(r"^\s*(\d+)\.(\d*)\s*$")


@dataclass(frozen=True)
class NormalizationResult:
    records: Tuple[CatRecord, ...]
    rejections: Tuple[Rejection, ...]

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def rejections_by_reason(self) -> Counter:
        return Counter(r.reason for r in self.rejections)


def _is_missing(x: Any) -> bool:
    if x is None:
        return True
    if isinstance(x, str):
        return not x.strip()
    try:
        return bool(pd.isna(x))
    except (TypeError, ValueError):
        return False


def clean_titer(raw: Any, corrections: Optional[Mapping[int, int]] = None) -> int:
    """Convert a raw titer cell to a corrected non-negative integer.

    Raises:
        RecordRejected: If nothing numeric is left after cleanup.
    """
    if isinstance(raw, bool):
        raise RecordRejected(RejectionReason.MALFORMED_TITER, "toxo_titer", f"boolean titer {raw!r}")
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw) or raw < 0 or float(raw) != int(raw):
            raise RecordRejected(RejectionReason.MALFORMED_TITER, "toxo_titer", f"numeric titer {raw!r}")
        value = int(raw)
    else:
        text = str(raw)
        decimal = _DECIMAL.match(text)
        if _LESS_THAN_40.search(text):
            value = BELOW_DETECTION_TITER
        elif decimal:
            if decimal.group(2).strip("0"):
                raise RecordRejected(RejectionReason.MALFORMED_TITER, "toxo_titer",
                                     f"non-integral titer {raw!r}")
            value = int(decimal.group(1))
        else:
            digits = re.sub(r"\D", "", text)
            if not digits:
                raise RecordRejected(RejectionReason.MALFORMED_TITER, "toxo_titer",
                                     f"no digits in titer {raw!r}")
            value = int(digits)
    return (corrections or {}).get(value, value)


def to_day_of_year(raw: Any, fmt: str = "%m/%d/%Y") -> int:
    """Return 1..366 for a collection date given as text or a date object."""
    if isinstance(raw, (datetime, date)):
        d = raw
    else:
        try:
            d = datetime.strptime(str(raw).strip(), fmt)
        except ValueError as e:
            raise RecordRejected(RejectionReason.MALFORMED_DATE, "date", str(e)) from None
    return d.timetuple().tm_yday


def to_flag(raw: Any, field: str) -> bool:
    """0/1 laboratory flag -> bool."""
    if isinstance(raw, bool):
        return raw
    try:
        v = float(str(raw).strip())
    except ValueError:
        v = math.nan
    if v == 1:
        return True
    if v == 0:
        return False
    raise RecordRejected(RejectionReason.MALFORMED_FLAG, field, f"expected 0/1, got {raw!r}")


def to_coordinate(raw: Any, field: str) -> float:
    limit = 90.0 if field == "latitude" else 180.0
    try:
        v = float(str(raw).strip())
    except ValueError:
        v = math.nan
    if not math.isfinite(v) or abs(v) > limit:
        raise RecordRejected(RejectionReason.MALFORMED_COORDINATE, field, f"bad coordinate {raw!r}")
    return v


def normalize_record(index: int, raw: Mapping[str, Any],
                     config: Optional[PipelineConfig] = None) -> CatRecord:
    """Build one CatRecord from a raw row keyed by canonical field names.

    Raises:
        RecordRejected: If the row is out of scope, incomplete or malformed.
    """
    config = config or PipelineConfig()

    cohort = raw.get("cohort_type")
    if _is_missing(cohort):
        raise RecordRejected(RejectionReason.MISSING_REQUIRED_FIELD, "cohort_type")
    if str(cohort).strip().lower() != config.managed_cohort_type.strip().lower():
        raise RecordRejected(RejectionReason.WRONG_COHORT_TYPE, "cohort_type",
                             f"cohort type {cohort!r}")

    for name in REQUIRED_FIELDS:
        if _is_missing(raw.get(name)):
            raise RecordRejected(RejectionReason.MISSING_REQUIRED_FIELD, name)

    titer = clean_titer(raw["toxo_titer"], config.titer_corrections)
    t40, t160, t320 = exposure_flags(titer)
    return CatRecord(
        record_id=index,
        colony_id=str(raw["colony_id"]).strip(),
        latitude=to_coordinate(raw["latitude"], "latitude"),
        longitude=to_coordinate(raw["longitude"], "longitude"),
        age_class=to_age_class(raw["age"], config.age_aliases),
        life_stage=to_life_stage(raw["life_stage"], config.life_stage_aliases),
        collection_day_of_year=to_day_of_year(raw["date"], config.date_format),
        toxo_titer=titer,
        toxo_exposed_40=t40,
        toxo_exposed_160=t160,
        toxo_exposed_320=t320,
        fiv_exposed=to_flag(raw["fiv"], "fiv"),
        felv_exposed=to_flag(raw["felv"], "felv"),
    )


def normalize(raw_records: Sequence[Mapping[str, Any]],
              config: Optional[PipelineConfig] = None) -> NormalizationResult:
    """Normalize every raw row; collect rejections instead of raising."""
    config = config or PipelineConfig()
    records: List[CatRecord] = []
    rejections: List[Rejection] = []

    for i, raw in enumerate(raw_records):
        try:
            records.append(normalize_record(i, raw, config))
        except RecordRejected as e:
            logger.debug(f"Row {i} rejected: {e.reason.value} field={e.field} {e.detail}")
            rejections.append(Rejection(index=i, reason=e.reason, field=e.field, detail=e.detail))

    result = NormalizationResult(records=tuple(records), rejections=tuple(rejections))
    if rejections:
        summary: Dict[str, int] = {r.value: n for r, n in result.rejections_by_reason().items()}
        logger.info(f"Normalized {len(records)} of {len(raw_records)} rows; rejected {len(rejections)} {summary}")
    else:
        logger.info(f"Normalized {len(records)} of {len(raw_records)} rows")
    if raw_records and not records:
        logger.warning("Every row was rejected; check column mapping and cohort type")
    return result
