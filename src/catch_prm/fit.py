from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd
from datasets import Dataset

from .errors import FitError
from .models import (
    MODEL_REGISTRY,
    REQUIRED_COLUMNS,
    RESPONSE_COLUMN,
    SPECIES_COLUMN,
    FittedModel,
    as_frame,
    available_models,
    canonicalize_model_name,
    complete_rows,
    design_matrix,
    missing_columns,
    species_label,
)

logger = logging.getLogger(__name__)


def _species_levels(species: pd.Series) -> tuple[str, ...]:
    observed = sorted({species_label(v) for v in species})
    if isinstance(species.dtype, pd.CategoricalDtype):
        declared = {species_label(c) for c in species.cat.categories}
        unrepresented = sorted(declared - set(observed))
        if unrepresented:
            raise FitError(f"species_cat levels with no usable rows: {unrepresented}")
    return tuple(observed)


def fit_model(
    features_table: pd.DataFrame | Dataset,
    model_type: str = "linear",
    **params: Any,
) -> FittedModel:
    """Fit a panel regression of log(B/Bmsy) on the catch-derived features.

    ``features_table`` is a stack of ``build_features`` outputs. Rows with any
    missing predictor or response are dropped first; the number kept is
    recorded on the model as ``n_obs``. ``params`` are forwarded untouched to
    the underlying fitter (boosted tuning, engine choice).
    """
    name = canonicalize_model_name(model_type)
    if name not in MODEL_REGISTRY:
        raise FitError(f"Unknown model_type={model_type!r}. Available={available_models()}")

    frame = as_frame(features_table)
    missing = missing_columns(frame, (*REQUIRED_COLUMNS, RESPONSE_COLUMN))
    if missing:
        raise FitError(f"Training table missing required columns: {missing}")

    response = pd.to_numeric(frame[RESPONSE_COLUMN], errors="coerce")
    mask = complete_rows(frame) & response.notna()
    used = frame.loc[mask]
    logger.info("Fitting %s model on %d of %d rows", name, len(used), len(frame))
    if used.empty:
        raise FitError("No training rows have every predictor and bbmsy present")

    y_raw = response.loc[mask].to_numpy(dtype=float)
    if (y_raw <= 0.0).any():
        raise FitError(f"bbmsy must be positive to take logs; found {int((y_raw <= 0.0).sum())} non-positive rows")

    species_levels = _species_levels(used[SPECIES_COLUMN])
    X = design_matrix(used, species_levels)
    return MODEL_REGISTRY[name](X, np.log(y_raw), species_levels, **params)
