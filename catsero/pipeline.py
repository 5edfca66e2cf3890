"""
Pipeline (raw rows -> SurveyResult)
===================================

Runs the stages in order, each one consuming the previous stage's output:

1) Normalizer -> CatRecord tuple + rejections (flags come from the Classifier)
2) Aggregator -> ColonyCohort per colony id

The result is an immutable `SurveyResult`; running the pipeline twice on
the same rows gives equal results.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple

from loguru import logger

from .aggregator import build_cohorts, interaction_counts
from .config import PipelineConfig
from .models import CatRecord, ColonyCohort, Rejection
from .normalizer import normalize


@dataclass(frozen=True, eq=True)
class SurveyResult:
    """Everything the presentation layer needs.

    Compares by value but is unhashable, since `cohorts` is a mapping.

    - records: qualifying cats, in input order
    - cohorts: colony id -> ColonyCohort (read-only mapping)
    - rejections: rows that did not qualify, with reasons
    """
    records: Tuple[CatRecord, ...]
    cohorts: Mapping[str, ColonyCohort]
    rejections: Tuple[Rejection, ...]

    __hash__ = None

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def rejections_by_reason(self) -> Counter:
        return Counter(r.reason for r in self.rejections)

    def members(self, colony_id: str) -> Tuple[CatRecord, ...]:
        return tuple(r for r in self.records if r.colony_id == colony_id)

    def colony_interactions(self, colony_id: str, factors: Sequence[str] = ("fiv", "felv")) -> Counter:
        if colony_id not in self.cohorts:
            raise KeyError(f"unknown colony: {colony_id!r}")
        return interaction_counts(self.members(colony_id), factors)


def run_pipeline(raw_records: Sequence[Mapping[str, Any]],
                 config: Optional[PipelineConfig] = None) -> SurveyResult:
    config = config or PipelineConfig()
    logger.info(f"Running pipeline on {len(raw_records)} rows")
    normalized = normalize(raw_records, config)
    cohorts = build_cohorts(normalized.records, threshold=config.prevalence_threshold)
    return SurveyResult(
        records=normalized.records,
        cohorts=MappingProxyType(dict(cohorts)),
        rejections=normalized.rejections,
    )
