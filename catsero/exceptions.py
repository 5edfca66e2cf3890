"""
Error taxonomy
==============

Two kinds of failure exist in the pipeline:

- Record-level problems (bad titer, bad date, missing field, wrong cohort type).
  These are raised internally as `RecordRejected` and caught by the Normalizer,
  which turns them into `Rejection` values. They never escape a stage.
- Contract violations (wrong interaction arity, negative threshold, bad config).
  These abort the offending call.

Every public exception derives from `CatseroError`, which carries an
`error_code` for programmatic handling and a `context` dict for debugging.
"""

from __future__ import annotations
from typing import Any, Dict, Optional

from .models import RejectionReason


class CatseroError(Exception):
    """Base class for all catsero errors."""

    def __init__(self, message: str, error_code: str = "CATSERO_001",
                 context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}

    def with_context(self, context: Dict[str, Any]) -> "CatseroError":
        """Merge extra context and return self, for `raise ... .with_context(...)`."""
        self.context.update(context)
        return self

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return f"[{self.error_code}] {base}"
        ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.error_code}] {base} ({ctx})"


class ContractViolation(CatseroError, ValueError):
    """A caller broke a function's input contract (e.g. negative threshold)."""

    def __init__(self, message: str, error_code: str = "CONTRACT_001",
                 context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, error_code, context)


class UndefinedInteractionMapping(ContractViolation):
    """Interaction state outside the enumerated 1/2/3-factor domain."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONTRACT_002", context)


class ConfigError(CatseroError):
    """Invalid or unreadable pipeline configuration."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_001", context)


class LoadError(CatseroError):
    """Survey file could not be read."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "LOAD_001", context)


class RecordRejected(CatseroError):
    """Raised by field cleaners; caught per record by the Normalizer."""

    def __init__(self, reason: RejectionReason, field: Optional[str] = None,
                 detail: str = "") -> None:
        super().__init__(detail or reason.value, f"RECORD_{reason.name}", {"field": field})
        self.reason = reason
        self.field = field
        self.detail = detail
