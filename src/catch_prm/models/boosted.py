from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from ..errors import FitError
from .base import BoostedTreeModel

SUPPORTED_BOOSTED_ENGINES = {"xgboost", "sklearn"}

# gbm-style defaults: stumps, shrinkage 0.1, half-sample bagging.
DEFAULT_BOOSTED_PARAMS: dict[str, Any] = {
    "n_estimators": 100,
    "max_depth": 1,
    "learning_rate": 0.1,
    "subsample": 0.5,
    "random_state": 0,
}


def _estimator_cls(engine: str):
    if engine == "xgboost":
        try:
            from xgboost import XGBRegressor
        except ImportError as exc:
            raise ImportError("xgboost is required for the boosted panel model.") from exc
        return XGBRegressor

    try:
        from sklearn.ensemble import GradientBoostingRegressor
    except ImportError as exc:
        raise ImportError("scikit-learn is required for engine='sklearn'.") from exc
    return GradientBoostingRegressor


def fit_boosted(
    X: pd.DataFrame,
    y: np.ndarray,
    species_levels: tuple[str, ...],
    engine: str = "xgboost",
    **params: Any,
) -> BoostedTreeModel:
    """Fit a squared-error boosted ensemble; ``params`` go straight to the estimator."""
    engine = str(engine).strip().lower()
    if engine not in SUPPORTED_BOOSTED_ENGINES:
        raise FitError(f"Unsupported engine={engine!r}. Supported={sorted(SUPPORTED_BOOSTED_ENGINES)}")
    if X.shape[0] == 0:
        raise FitError("No usable rows to fit the boosted model")

    merged = {**DEFAULT_BOOSTED_PARAMS, **params}
    if engine == "xgboost":
        merged.setdefault("objective", "reg:squarederror")
    else:
        merged.setdefault("loss", "squared_error")

    try:
        estimator = _estimator_cls(engine)(**merged)
        estimator.fit(X.to_numpy(dtype=float), np.asarray(y, dtype=float))
    except (TypeError, ValueError) as exc:
        raise FitError(f"Boosted fit failed ({engine}): {exc}") from exc

    if engine == "xgboost":
        n_trees = int(estimator.get_booster().num_boosted_rounds())
    else:
        n_trees = int(estimator.n_estimators_)

    return BoostedTreeModel(
        columns=tuple(X.columns),
        species_levels=species_levels,
        n_obs=int(X.shape[0]),
        ensemble=estimator,
        n_trees=n_trees,
        engine=engine,
        params=merged,
    )


def predict_boosted(model: BoostedTreeModel, X: pd.DataFrame) -> np.ndarray:
    """Return log-scale predictions using exactly ``model.n_trees`` trees."""
    x = X[list(model.columns)].to_numpy(dtype=float)
    if x.shape[0] == 0:
        return np.empty(0, dtype=float)

    if model.engine == "xgboost":
        pred = model.ensemble.predict(x, iteration_range=(0, model.n_trees))
        return np.asarray(pred, dtype=float).reshape(-1)

    pred = np.zeros(x.shape[0], dtype=float)
    for stage, staged in enumerate(model.ensemble.staged_predict(x), start=1):
        pred = staged
        if stage >= model.n_trees:
            break
    return np.asarray(pred, dtype=float).reshape(-1)
