"""
catsero package
===============

Normalization, serology classification and colony aggregation for field
surveys of free-roaming cats (Toxoplasma, FIV, FeLV).

- The CLI entry point is in `catsero/cli.py`.
- Raw row cleanup is in `catsero/normalizer.py`; threshold flags in `catsero/classifier.py`.
- Colony summaries are in `catsero/aggregator.py`; map colours in `catsero/palette.py`.
- `catsero.pipeline.run_pipeline` runs everything on already-loaded rows.
"""

from .models import AgeClass, CatRecord, ColonyCohort, LifeStage, Rejection, RejectionReason
from .pipeline import SurveyResult, run_pipeline

__version__ = '0.1.0'

__all__ = [
    "AgeClass", "CatRecord", "ColonyCohort", "LifeStage", "Rejection", "RejectionReason",
    "SurveyResult", "run_pipeline",
]
