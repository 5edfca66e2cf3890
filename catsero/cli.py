"""
catsero Command Line Interface (CLI)
====================================

Runs the full pipeline on a survey file and prints a colony summary:

    python -m catsero.cli --csv "path/to/survey.csv"
    python -m catsero.cli --xlsx "survey.xlsx" --config cfg.yaml --colony "Dock St"

The CLI does not modify the survey file and writes nothing to disk.
"""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional, Sequence

from loguru import logger

from .config import PipelineConfig
from .exceptions import CatseroError
from .loader import load_survey
from .log import configure_logging
from .models import CatRecord, ColonyCohort
from .palette import PrevalenceRamp, palette_token
from .pipeline import SurveyResult, run_pipeline


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="catsero", description="Feline serosurvey colony summary")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--csv", help="Path to the survey CSV")
    src.add_argument("--xlsx", help="Path to the survey Excel export")
    ap.add_argument("--config", help="Optional YAML pipeline config")
    ap.add_argument("--colony", help="Also list the members of this colony")
    ap.add_argument("--factors", default="fiv,felv",
                    help="Comma-separated interaction factors for --colony (fiv, felv, toxo)")
    ap.add_argument("--log-level", default="WARNING", help="loguru level (DEBUG, INFO, ...)")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = PipelineConfig.from_yaml(args.config) if args.config else PipelineConfig()
        rows = load_survey(args.csv or args.xlsx, config)
        result = run_pipeline(rows, config)
    except CatseroError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(rows)} rows: {len(result.records)} kept, {result.rejected_count} rejected.")
    for reason, n in sorted(result.rejections_by_reason().items(), key=lambda kv: kv[0].value):
        print(f"  {reason.value}: {n}")
    print()
    _print_cohorts(sorted(result.cohorts.values(), key=lambda c: c.colony_id), config)

    if args.colony:
        factors = [f.strip() for f in args.factors.split(",") if f.strip()]
        try:
            _print_colony(result, args.colony, factors)
        except (KeyError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


def _fmt(v: Optional[float], spec: str = ".1f") -> str:
    return "NA" if v is None else format(v, spec)


def _print_cohorts(cohorts: List[ColonyCohort], config: PipelineConfig) -> None:
    ramp = PrevalenceRamp.fit(cohorts, cmap=config.colormap)
    print(f"{'colony':<24} {'n':>4} {'toxo%':>6} {'fiv%':>6} {'felv%':>6} {'lat':>10} {'lon':>11}  color")
    for c in cohorts:
        print(f"{c.colony_id:<24} {c.size:>4} {_fmt(c.toxo_prevalence_pct):>6} "
              f"{_fmt(c.fiv_prevalence_pct):>6} {_fmt(c.felv_prevalence_pct):>6} "
              f"{_fmt(c.centroid_latitude, '.5f'):>10} {_fmt(c.centroid_longitude, '.5f'):>11}  "
              f"{ramp.color(c.toxo_prevalence_pct)}")


def _print_colony(result: SurveyResult, colony_id: str, factors: List[str]) -> None:
    counts = result.colony_interactions(colony_id, factors)
    print(f"\nColony {colony_id}: interaction counts over ({', '.join(factors)})")
    for combo, n in sorted(counts.items(), key=lambda kv: str(kv[0]), reverse=True):
        print(f"  {combo}: {n}")
    members = sorted(result.members(colony_id), key=lambda r: (r.age_class, r.record_id))
    print(f"\nMembers ({len(members)}), youngest first:")
    _print_rows(members, factors)


def _print_rows(rows: Sequence[CatRecord], factors: List[str]) -> None:
    for r in rows:
        state = r.interaction_state(*factors)
        token = palette_token(state[0] if len(state) == 1 else state)
        print(f"[{r.record_id}] {r.age_class.value} {r.life_stage.value} | day={r.collection_day_of_year} "
              f"| titer={r.toxo_titer} (40/160/320: {r.toxo_exposed_40}/{r.toxo_exposed_160}/{r.toxo_exposed_320}) "
              f"| fiv={int(r.fiv_exposed)} felv={int(r.felv_exposed)} | {token}")


if __name__ == "__main__":
    sys.exit(main())
