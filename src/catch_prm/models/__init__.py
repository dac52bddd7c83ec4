from __future__ import annotations

from collections.abc import Callable

from .base import (
    NUMERIC_PREDICTORS,
    REQUIRED_COLUMNS,
    RESPONSE_COLUMN,
    SPECIES_COLUMN,
    BoostedTreeModel,
    FittedModel,
    LinearModel,
    as_frame,
    complete_rows,
    design_columns,
    design_matrix,
    missing_columns,
    species_label,
)
from .boosted import DEFAULT_BOOSTED_PARAMS, SUPPORTED_BOOSTED_ENGINES, fit_boosted, predict_boosted
from .linear import fit_linear, predict_linear

ModelFitter = Callable[..., FittedModel]
MODEL_NAME_ALIASES: dict[str, str] = {
    "lm": "linear",
    "gbm": "boosted",
}

MODEL_REGISTRY: dict[str, ModelFitter] = {
    "linear": fit_linear,
    "boosted": fit_boosted,
}


def register_model(name: str, fitter: ModelFitter) -> None:
    """Register a fitter under a stable model-type name.

    A fitter takes ``(X, y, species_levels, **params)`` and returns a
    ``FittedModel``.
    """
    MODEL_REGISTRY[name] = fitter


def canonicalize_model_name(name: str) -> str:
    key = str(name).strip().lower()
    return MODEL_NAME_ALIASES.get(key, key)


def available_models(*, include_aliases: bool = False) -> list[str]:
    names = set(MODEL_REGISTRY.keys())
    if include_aliases:
        names |= set(MODEL_NAME_ALIASES.keys())
    return sorted(names)
