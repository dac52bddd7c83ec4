from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from datasets import Dataset
from scipy.stats import norm

from .errors import PredictionError
from .models import (
    REQUIRED_COLUMNS,
    SPECIES_COLUMN,
    FittedModel,
    as_frame,
    complete_rows,
    design_matrix,
    missing_columns,
    predict_boosted,
    predict_linear,
    species_label,
)

logger = logging.getLogger(__name__)


def normal_critical_value(level: float) -> float:
    """Two-sided standard-normal critical value, e.g. 0.95 -> 1.959964."""
    return float(-norm.ppf((1.0 - level) / 2.0))


def predict(
    new_features_table: pd.DataFrame | Dataset,
    model: FittedModel,
    want_interval: bool = False,
    level: float = 0.95,
) -> np.ndarray | pd.DataFrame:
    """Predict median B/Bmsy from a fitted panel model.

    Returns one value per input row, in input order; rows with a missing
    predictor come back as NaN. With ``want_interval`` a frame of
    ``fit``/``lower``/``upper`` is returned, the bounds being built on the
    log scale and then exponentiated. Intervals need standard errors and are
    only available from linear models.
    """
    if not 0.0 < float(level) < 1.0:
        raise PredictionError(f"level must lie strictly between 0 and 1, got {level!r}")
    if want_interval and model.kind != "linear":
        raise PredictionError(f"Intervals are not available for {model.kind!r} models (no standard errors)")

    frame = as_frame(new_features_table)
    missing = missing_columns(frame, REQUIRED_COLUMNS)
    if missing:
        raise PredictionError(f"Prediction table missing columns the model was trained on: {missing}")

    mask = complete_rows(frame)
    usable = frame.loc[mask]
    unseen = sorted({species_label(v) for v in usable[SPECIES_COLUMN]} - set(model.species_levels))
    if unseen:
        raise PredictionError(
            f"species_cat levels not seen at fit time: {unseen}. Known={list(model.species_levels)}"
        )
    if not mask.all():
        logger.debug("%d of %d rows have missing predictors; returning NaN for them", int((~mask).sum()), len(frame))

    X = design_matrix(usable, model.species_levels)
    log_mean = np.full(len(frame), np.nan, dtype=float)
    log_se = np.full(len(frame), np.nan, dtype=float)
    rows = mask.to_numpy()

    if model.kind == "linear":
        mean, se = predict_linear(model, X)
        log_mean[rows] = mean
        log_se[rows] = se
    elif model.kind == "boosted":
        log_mean[rows] = predict_boosted(model, X)
    else:
        raise PredictionError(f"Unsupported model kind={model.kind!r}")

    if not want_interval:
        return np.exp(log_mean)

    q = normal_critical_value(level)
    return pd.DataFrame(
        {
            "fit": np.exp(log_mean),
            "lower": np.exp(log_mean - q * log_se),
            "upper": np.exp(log_mean + q * log_se),
        },
        index=frame.index,
    )
