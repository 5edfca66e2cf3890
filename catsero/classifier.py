"""
Classifier
==========

Turns cleaned values into classifications:

- `exposure_flags`: one boolean per diagnostic threshold (titer >= cutoff).
  40 marks any detectable exposure, 160 the usual clinical cutoff, 320 the
  high-titer subset. A missing titer gives None flags, never False.
- `to_age_class` / `to_life_stage`: relabel raw category strings onto the
  ordered Enums in `models`.
"""

from __future__ import annotations
import re
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .exceptions import ContractViolation, RecordRejected
from .models import THRESHOLDS, AgeClass, LifeStage, RejectionReason


def exposure_flags(titer: Optional[int],
                   thresholds: Iterable[int] = THRESHOLDS) -> Tuple[Optional[bool], ...]:
    """Return `titer >= t` for each threshold, or all None if titer is None."""
    cutoffs = tuple(thresholds)
    for t in cutoffs:
        if t < 0:
            raise ContractViolation("threshold must be non-negative", context={"threshold": t})
    if titer is None:
        return tuple(None for _ in cutoffs)
    if titer < 0:
        raise ContractViolation("titer must be non-negative", context={"titer": titer})
    return tuple(titer >= t for t in cutoffs)


def _key(s: str) -> str:
    return re.sub(r"\s+", "", str(s).strip().lower())


def _lookup(enum_cls, raw: object, aliases: Optional[Mapping[str, str]], field: str):
    table: Dict[str, object] = {_key(m.value): m for m in enum_cls}
    for alias, label in (aliases or {}).items():
        table[_key(alias)] = enum_cls(label)
    member = table.get(_key(raw))
    if member is None:
        raise RecordRejected(RejectionReason.MALFORMED_CATEGORY, field,
                             f"{raw!r} is not a known {enum_cls.__name__}")
    return member


def to_age_class(raw: object, aliases: Optional[Mapping[str, str]] = None) -> AgeClass:
    return _lookup(AgeClass, raw, aliases, "age")


def to_life_stage(raw: object, aliases: Optional[Mapping[str, str]] = None) -> LifeStage:
    return _lookup(LifeStage, raw, aliases, "life_stage")
