"""Shared fixtures for the catsero test suite."""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from catsero.config import PipelineConfig


def make_row(**overrides: Any) -> Dict[str, Any]:
    """A complete, in-scope raw row; keyword arguments replace fields."""
    row: Dict[str, Any] = {
        "colony_id": "Harbor",
        "cohort_type": "colony",
        "longitude": "-122.30",
        "latitude": "47.60",
        "date": "03/15/2019",
        "age": ">12mo",
        "life_stage": "adult",
        "toxo_titer": "160",
        "fiv": "0",
        "felv": "0",
    }
    row.update(overrides)
    return row


@pytest.fixture
def row_factory() -> Callable[..., Dict[str, Any]]:
    return make_row


@pytest.fixture
def default_config() -> PipelineConfig:
    """Default pipeline config (no YAML file needed)."""
    return PipelineConfig()


@pytest.fixture
def survey_rows() -> list:
    """Two colonies plus rows that must be rejected."""
    return [
        make_row(colony_id="Harbor", toxo_titer="320", fiv="1", felv="1", latitude="47.0", longitude="-122.0"),
        make_row(colony_id="Harbor", toxo_titer="<40", fiv="1", felv="0", latitude="48.0", longitude="-123.0"),
        make_row(colony_id="Harbor", toxo_titer="5180", fiv="0", felv="0", latitude="49.0", longitude="-124.0"),
        make_row(colony_id="Mill Rd", toxo_titer="80", age="<6mo", life_stage="juvenile"),
        make_row(colony_id="Mill Rd", toxo_titer="1280*", age="6-12mo", life_stage="juvenile"),
        make_row(cohort_type="feral"),
        make_row(toxo_titer=None),
        make_row(toxo_titer="n/a"),
        make_row(date="02/30/2019"),
        make_row(age="adult-ish"),
    ]
