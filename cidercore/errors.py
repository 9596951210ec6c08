"""Error taxonomy for the correction and fermentation core.

All errors derive from ValueError: the same input always reproduces the same
failure, so none of them is worth retrying.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class CoreError(ValueError):
    """Base class for failures raised by cidercore."""


class MeasurementValidationError(CoreError):
    """A reading is non-finite or outside its plausible range."""

    def __init__(self, message: str, user_message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.user_message = user_message or message
        self.context: Dict[str, Any] = dict(context or {})


class DomainConsistencyError(CoreError):
    """Gravities are individually valid but inconsistent with each other."""


class InsufficientDataError(CoreError):
    """Too few readings for a calibration fit."""


class SingularMatrixError(CoreError):
    """Normal equations are singular or nearly singular (collinear data)."""
