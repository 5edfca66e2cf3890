"""
Survey loader (CSV/Excel -> raw row dicts)
==========================================

Reads the field survey table and returns one dict per row, keyed by the
canonical field names the Normalizer expects.

Key ideas:
- Column names are matched exactly first, then case/punctuation-insensitively,
  because survey exports are typed by hand and vary.
- Every cell is read as text; type conversion is the Normalizer's job.
- Blank cells become None. The file itself is never modified.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import re

import pandas as pd
from loguru import logger

from .config import PipelineConfig
from .exceptions import LoadError


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, name: str) -> Optional[str]:
    cols = list(df.columns)
    if name in cols:
        return name
    norm_map = {_norm(c): c for c in cols}
    return norm_map.get(_norm(name))


def _cell(x: Any) -> Any:
    if pd.isna(x):
        return None
    return x


def read_table(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    try:
        if path.suffix.lower() in (".xlsx", ".xlsm"):
            df = pd.read_excel(path, engine="openpyxl", dtype=str)
        else:
            df = pd.read_csv(path, dtype=str)
    except (OSError, ValueError) as e:
        raise LoadError(f"cannot read survey table: {e}", {"path": str(path)}) from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df


def rows_from_frame(df: pd.DataFrame, config: Optional[PipelineConfig] = None) -> Tuple[Dict[str, Any], ...]:
    """Project a DataFrame onto canonical field names, one dict per row."""
    config = config or PipelineConfig()
    resolved: Dict[str, str] = {}
    for field, column in config.columns.items():
        src = _col(df, column)
        if src is None:
            logger.warning(f"Column {column!r} for field {field!r} not found; rows will lack it")
            continue
        resolved[field] = src

    rows: List[Dict[str, Any]] = []
    for rec in df.to_dict(orient="records"):
        rows.append({field: _cell(rec[src]) for field, src in resolved.items()})
    return tuple(rows)


def load_survey(path: str | Path, config: Optional[PipelineConfig] = None) -> Tuple[Dict[str, Any], ...]:
    """Read a survey file into raw row dicts for `normalize`/`run_pipeline`.

    Raises:
        LoadError: If the file cannot be read.
    """
    df = read_table(path)
    rows = rows_from_frame(df, config)
    logger.info(f"Loaded {len(rows)} rows from {Path(path).name}")
    return rows
