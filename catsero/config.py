"""Config — pipeline parameters, optionally loaded from YAML.

Everything that encodes a survey-specific decision (column names, the managed
cohort tag, the date format, the titer correction table, diagnostic
thresholds) lives here instead of being scattered through the stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Mapping

import yaml
from matplotlib import colormaps

from .classifier import THRESHOLDS
from .exceptions import ConfigError
from .models import AgeClass, LifeStage

DEFAULT_COLUMNS: Dict[str, str] = {
    "colony_id": "colony",
    "cohort_type": "type",
    "longitude": "longitude",
    "latitude": "latitude",
    "date": "date",
    "age": "age",
    "life_stage": "life_stage",
    "toxo_titer": "toxo_titer",
    "fiv": "fiv",
    "felv": "felv",
}

# Known lab transcription errors: wrong reading -> intended titer.
DEFAULT_TITER_CORRECTIONS: Dict[int, int] = {5180: 5120, 51200: 5120}


@dataclass
class PipelineConfig:
    """Top-level pipeline configuration.

    Attributes:
        columns: Canonical field name -> column name in the raw table.
        managed_cohort_type: Cohort-type tag of in-scope (colony) cats.
            Compared case-insensitively.
        date_format: `strptime` format of the collection date.
        titer_corrections: Exact-match table applied after titer parsing.
        prevalence_threshold: Cutoff used for cohort toxo prevalence; one
            of the fixed classifier thresholds.
        age_aliases: Extra raw spellings -> canonical age label.
        life_stage_aliases: Extra raw spellings -> canonical life-stage label.
        colormap: Matplotlib colormap name for the prevalence ramp.
    """

    columns: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COLUMNS))
    managed_cohort_type: str = "colony"
    date_format: str = "%m/%d/%Y"
    titer_corrections: Dict[int, int] = field(
        default_factory=lambda: dict(DEFAULT_TITER_CORRECTIONS)
    )
    prevalence_threshold: int = 160
    age_aliases: Dict[str, str] = field(default_factory=dict)
    life_stage_aliases: Dict[str, str] = field(default_factory=dict)
    colormap: str = "YlOrRd"

    def __post_init__(self) -> None:
        for name in ("columns", "titer_corrections", "age_aliases", "life_stage_aliases"):
            value = getattr(self, name)
            if not isinstance(value, Mapping):
                raise ConfigError(f"{name} must be a mapping",
                                  {"got": type(value).__name__})
        for name in ("managed_cohort_type", "date_format", "colormap"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string", {name: getattr(self, name)})
        if self.colormap not in colormaps:
            raise ConfigError("unknown matplotlib colormap", {"colormap": self.colormap})
        bad_columns = {k: v for k, v in self.columns.items() if not isinstance(v, str)}
        if bad_columns:
            raise ConfigError("column names must be strings", {"invalid": bad_columns})
        self.columns = {**DEFAULT_COLUMNS, **self.columns}
        if self.prevalence_threshold not in THRESHOLDS:
            raise ConfigError("prevalence_threshold must be one of the toxo thresholds",
                              {"prevalence_threshold": self.prevalence_threshold,
                               "thresholds": THRESHOLDS})
        for name, enum_cls in (("age_aliases", AgeClass), ("life_stage_aliases", LifeStage)):
            labels = {m.value for m in enum_cls}
            bad = {k: v for k, v in getattr(self, name).items()
                   if not isinstance(v, str) or v not in labels}
            if bad:
                raise ConfigError(f"{name} must map onto {sorted(labels)}", {"invalid": bad})
        corrections = {}
        for wrong, right in self.titer_corrections.items():
            try:
                wrong_i, right_i = int(wrong), int(right)
            except (TypeError, ValueError) as e:
                raise ConfigError("titer corrections must map integers to integers",
                                  {"entry": (wrong, right)}) from e
            if wrong_i < 0 or right_i < 0:
                raise ConfigError("titer corrections must be non-negative",
                                  {"entry": (wrong, right)})
            corrections[wrong_i] = right_i
        self.titer_corrections = corrections

    @classmethod
    def from_yaml(cls, path: str | Path) -> PipelineConfig:
        """Load configuration from a YAML file.

        Keys missing from the file keep their defaults; unknown keys are
        rejected so typos do not silently fall back to defaults.

        Raises:
            ConfigError: If the file is missing, unparsable or has unknown keys.
        """
        path = Path(path)
        try:
            with path.open("r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config: {e}", {"path": str(path)}) from e

        if not isinstance(data, dict):
            raise ConfigError("config root must be a mapping", {"path": str(path)})
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in set(data) - known)
        if unknown:
            raise ConfigError("unknown config keys", {"keys": unknown, "path": str(path)})
        return cls(**data)
