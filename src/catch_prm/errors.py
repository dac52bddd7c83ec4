from __future__ import annotations


class PrmError(ValueError):
    """Base class for panel-regression failures."""


class InvalidInputError(PrmError):
    """Raised when a catch series cannot be turned into features."""


class FitError(PrmError):
    """Raised when a training table cannot support a model fit."""


class PredictionError(PrmError):
    """Raised when a fitted model cannot predict on the given table."""
