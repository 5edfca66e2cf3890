"""
PaletteMapper
=============

Maps exposure states onto colour tokens for the map layer.

- One factor (a single bool): exposed / unexposed colour.
- Two or three factors (a tuple of bools): one designated combination gets
  the highlight colour, every other combination gets the background colour.
  By default the designated combination is "all exposed".
- Emphasis mode swaps the background (or unexposed) colour for "none", which
  matplotlib and most web renderers treat as fully transparent.

Cohort-level prevalence uses `PrevalenceRamp`, a continuous colormap fitted
to the observed prevalence range.
"""

from __future__ import annotations
from dataclasses import dataclass
from itertools import product
from typing import Dict, Iterable, Optional, Tuple, Union

import numpy as np
from matplotlib import colormaps
from matplotlib.colors import Normalize, is_color_like, to_hex

from .exceptions import ContractViolation, UndefinedInteractionMapping
from .models import ColonyCohort

SUPPRESS = "none"

InteractionState = Union[bool, Tuple[bool, ...]]


@dataclass(frozen=True)
class Palette:
    exposed: str = "#d7301f"
    unexposed: str = "#2c7fb8"
    highlight: str = "#e31a1c"
    background: str = "#bdbdbd"

    def __post_init__(self) -> None:
        for name in ("exposed", "unexposed", "highlight", "background"):
            value = getattr(self, name)
            if not is_color_like(value):
                raise ContractViolation("not a colour", context={"slot": name, "value": value})


DEFAULT_PALETTE = Palette()


def _check_state(state: Tuple[object, ...], what: str) -> None:
    if len(state) not in (2, 3):
        raise UndefinedInteractionMapping(f"{what} must have 2 or 3 factors",
                                          {"arity": len(state), "state": state})
    if not all(isinstance(v, (bool, np.bool_)) for v in state):
        raise UndefinedInteractionMapping(f"{what} must contain only booleans", {"state": state})


def palette_token(state: InteractionState, *, positive: Optional[Tuple[bool, ...]] = None,
                  palette: Palette = DEFAULT_PALETTE, emphasis: bool = False) -> str:
    """Colour token for a single exposure flag or an interaction tuple.

    Args:
        state: A bool, or a 2/3-tuple of bools (e.g. (fiv, felv, toxo)).
        positive: Combination that gets the highlight colour; defaults to
            all True. Ignored for a single bool.
        palette: Colours to draw from.
        emphasis: Use the suppress token instead of the background colour.

    Raises:
        UndefinedInteractionMapping: For None, wrong arity or non-bool members.
    """
    if isinstance(state, (bool, np.bool_)):
        if state:
            return palette.exposed
        return SUPPRESS if emphasis else palette.unexposed
    if not isinstance(state, tuple):
        raise UndefinedInteractionMapping("state must be a bool or a tuple of bools",
                                          {"state": state})
    _check_state(state, "interaction state")
    if positive is None:
        positive = (True,) * len(state)
    _check_state(tuple(positive), "designated positive")
    if len(positive) != len(state):
        raise UndefinedInteractionMapping("positive and state differ in arity",
                                          {"state": state, "positive": positive})
    if tuple(bool(v) for v in state) == tuple(bool(v) for v in positive):
        return palette.highlight
    return SUPPRESS if emphasis else palette.background


def palette_table(arity: int, *, positive: Optional[Tuple[bool, ...]] = None,
                  palette: Palette = DEFAULT_PALETTE, emphasis: bool = False) -> Dict[InteractionState, str]:
    """Enumerate the full mapping for 1, 2 or 3 factors."""
    if arity == 1:
        return {v: palette_token(v, palette=palette, emphasis=emphasis) for v in (True, False)}
    if arity not in (2, 3):
        raise UndefinedInteractionMapping("arity must be 1, 2 or 3", {"arity": arity})
    return {
        combo: palette_token(combo, positive=positive, palette=palette, emphasis=emphasis)
        for combo in product((True, False), repeat=arity)
    }


class PrevalenceRamp:
    """Continuous prevalence -> colour mapping spanning the observed range."""

    def __init__(self, vmin: float, vmax: float, cmap: str = "YlOrRd") -> None:
        if vmin > vmax:
            raise ContractViolation("vmin must not exceed vmax", context={"vmin": vmin, "vmax": vmax})
        self.vmin = float(vmin)
        self.vmax = float(vmax)
        self.cmap = colormaps[cmap]
        self._norm = Normalize(vmin=self.vmin, vmax=self.vmax, clip=True)

    @classmethod
    def fit(cls, cohorts: Iterable[ColonyCohort], cmap: str = "YlOrRd") -> PrevalenceRamp:
        values = [c.toxo_prevalence_pct for c in cohorts if c.toxo_prevalence_pct is not None]
        if not values:
            return cls(0.0, 100.0, cmap)
        return cls(min(values), max(values), cmap)

    def position(self, pct: float) -> float:
        """Place `pct` on [0, 1]; non-decreasing in `pct`."""
        if self.vmax == self.vmin:
            return 0.0
        return float(self._norm(pct))

    def color(self, pct: Optional[float]) -> str:
        if pct is None:
            return SUPPRESS
        return to_hex(self.cmap(self.position(pct)))
