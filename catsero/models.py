"""
Data model (CatRecord, ColonyCohort)
====================================

Each qualifying survey row becomes one `CatRecord`. Records are immutable
(`frozen=True`) so that:
- later stages cannot accidentally modify what the Normalizer produced, and
- aggregation always rebuilds cohorts from scratch instead of patching them.

Ordered categories (age bracket, life stage) are Enums with a declared rank,
so sorting and comparison follow biology rather than string order.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional, Tuple

FACTORS = ("fiv", "felv", "toxo")

# Toxo titer cutoffs: any exposure, clinical cutoff, high-titer subset.
THRESHOLDS: Tuple[int, ...] = (40, 160, 320)


@total_ordering
class _Ordinal(Enum):
    """Enum whose members compare by declaration order."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.rank < other.rank


class AgeClass(_Ordinal):
    UNDER_6MO = "<6mo"
    FROM_6_TO_12MO = "6-12mo"
    OVER_12MO = ">12mo"


class LifeStage(_Ordinal):
    JUVENILE = "juvenile"
    ADULT = "adult"


class RejectionReason(Enum):
    WRONG_COHORT_TYPE = "wrong_cohort_type"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    MALFORMED_TITER = "malformed_titer"
    MALFORMED_DATE = "malformed_date"
    MALFORMED_CATEGORY = "malformed_category"
    MALFORMED_FLAG = "malformed_flag"
    MALFORMED_COORDINATE = "malformed_coordinate"


@dataclass(frozen=True)
class Rejection:
    """One input row that did not become a CatRecord."""
    index: int
    reason: RejectionReason
    field: Optional[str] = None
    detail: str = ""


@dataclass(frozen=True)
class CatRecord:
    """One surveyed cat with complete, cleaned data.

    `toxo_titer` is the corrected reciprocal dilution. The three toxo flags
    are None exactly when the titer is None.
    """
    record_id: int
    colony_id: str
    latitude: Optional[float]
    longitude: Optional[float]
    age_class: AgeClass
    life_stage: LifeStage
    collection_day_of_year: int
    toxo_titer: Optional[int]
    toxo_exposed_40: Optional[bool]
    toxo_exposed_160: Optional[bool]
    toxo_exposed_320: Optional[bool]
    fiv_exposed: bool
    felv_exposed: bool

    def exposure(self, threshold: int) -> Optional[bool]:
        """Return the toxo flag for one of the fixed thresholds."""
        if isinstance(threshold, bool) or threshold not in THRESHOLDS:
            raise ValueError(f"no toxo flag for threshold {threshold!r}; expected one of {THRESHOLDS}")
        return getattr(self, f"toxo_exposed_{int(threshold)}")

    def interaction_state(self, *factors: str, threshold: int = 160) -> Tuple[Optional[bool], ...]:
        """Joint exposure tuple for the named factors, e.g. ("fiv", "felv")."""
        out = []
        for f in factors:
            if f == "fiv":
                out.append(self.fiv_exposed)
            elif f == "felv":
                out.append(self.felv_exposed)
            elif f == "toxo":
                out.append(self.exposure(threshold))
            else:
                raise ValueError(f"factor must be one of {FACTORS}, got {f!r}")
        return tuple(out)


@dataclass(frozen=True)
class ColonyCohort:
    """Summary of all CatRecords sharing a colony id."""
    colony_id: str
    size: int
    # members with a non-null toxo flag (prevalence denominator)
    toxo_tested: int
    toxo_prevalence_pct: Optional[float]
    fiv_prevalence_pct: Optional[float]
    felv_prevalence_pct: Optional[float]
    centroid_latitude: Optional[float]
    centroid_longitude: Optional[float]
