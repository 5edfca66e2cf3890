"""
Aggregator (CatRecord list -> ColonyCohort per colony)
======================================================

Groups records by colony id (a map from value -> list of records, the same
shape as a lookup index) and summarises each group.

Rules:
- A cohort exists only for colonies with at least one record.
- Prevalence uses only members whose flag is known; a None flag is left out
  of both numerator and denominator.
- The centroid averages only members with both coordinates present.
- Sums go through `math.fsum`, so results do not depend on input order.
"""

from __future__ import annotations
from collections import Counter
from itertools import product
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import math

from loguru import logger

from .models import CatRecord, ColonyCohort


def group_by_colony(records: Iterable[CatRecord]) -> Dict[str, List[CatRecord]]:
    by_colony: Dict[str, List[CatRecord]] = {}
    for r in records:
        by_colony.setdefault(r.colony_id, []).append(r)
    return by_colony


def prevalence_pct(flags: Iterable[Optional[bool]]) -> Optional[float]:
    """Percent True among non-None flags; None if no flag is known."""
    known = [f for f in flags if f is not None]
    if not known:
        return None
    return 100.0 * sum(1 for f in known if f) / len(known)


def _mean(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values)


def _centroid(members: Sequence[CatRecord]) -> Tuple[Optional[float], Optional[float]]:
    pts = [
        (m.latitude, m.longitude) for m in members
        if m.latitude is not None and m.longitude is not None
        and math.isfinite(m.latitude) and math.isfinite(m.longitude)
    ]
    if not pts:
        return None, None
    return _mean([p[0] for p in pts]), _mean([p[1] for p in pts])


def summarize_colony(colony_id: str, members: Sequence[CatRecord],
                     threshold: int = 160) -> ColonyCohort:
    if not members:
        raise ValueError(f"colony {colony_id!r} has no members")
    toxo = [m.exposure(threshold) for m in members]
    lat, lon = _centroid(members)
    return ColonyCohort(
        colony_id=colony_id,
        size=len(members),
        toxo_tested=sum(1 for f in toxo if f is not None),
        toxo_prevalence_pct=prevalence_pct(toxo),
        fiv_prevalence_pct=prevalence_pct(m.fiv_exposed for m in members),
        felv_prevalence_pct=prevalence_pct(m.felv_exposed for m in members),
        centroid_latitude=lat,
        centroid_longitude=lon,
    )


def build_cohorts(records: Iterable[CatRecord], threshold: int = 160) -> Dict[str, ColonyCohort]:
    """Return one ColonyCohort per colony id present in `records`.

    The mapping is keyed by colony id; it carries no meaningful ordering.
    """
    groups = group_by_colony(records)
    cohorts = {cid: summarize_colony(cid, members, threshold) for cid, members in groups.items()}
    logger.info(f"Built {len(cohorts)} colony cohorts from {sum(len(g) for g in groups.values())} records")
    return cohorts


def interaction_counts(records: Iterable[CatRecord], factors: Sequence[str] = ("fiv", "felv"),
                       threshold: int = 160) -> Counter:
    """Count records per joint exposure tuple.

    Every tuple of the factors' boolean product appears, with 0 if unused, so
    the counts always sum to the number of records passed in.
    """
    if not 1 <= len(factors) <= 3:
        raise ValueError("interaction needs 1 to 3 factors")
    counts: Counter = Counter({combo: 0 for combo in product((True, False), repeat=len(factors))})
    for r in records:
        counts[r.interaction_state(*factors, threshold=threshold)] += 1
    return counts
