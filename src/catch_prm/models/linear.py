from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from ..errors import FitError
from .base import LinearModel


def fit_linear(
    X: pd.DataFrame,
    y: np.ndarray,
    species_levels: tuple[str, ...],
    **params: Any,
) -> LinearModel:
    """Ordinary least squares on an explicit no-intercept design matrix."""
    if params:
        raise FitError(f"linear model takes no tuning parameters, got {sorted(params)}")

    try:
        import statsmodels.api as sm
    except ImportError as exc:
        raise ImportError("statsmodels is required for the linear panel model.") from exc

    n_rows, n_cols = X.shape
    if n_rows < n_cols:
        raise FitError(f"Fewer usable rows than predictors: rows={n_rows}, predictors={n_cols}")

    rank = int(np.linalg.matrix_rank(X.to_numpy(dtype=float)))
    if rank < n_cols:
        raise FitError(f"Design matrix is rank deficient: rank={rank}, predictors={n_cols}")

    try:
        result = sm.OLS(np.asarray(y, dtype=float), X, hasconst=False).fit()
    except (ValueError, np.linalg.LinAlgError) as exc:
        raise FitError(f"OLS fit failed: {exc}") from exc

    return LinearModel(
        columns=tuple(X.columns),
        species_levels=species_levels,
        n_obs=int(n_rows),
        coefficients=pd.Series(np.asarray(result.params, dtype=float), index=X.columns, name="coef"),
        cov_params=pd.DataFrame(np.asarray(result.cov_params(), dtype=float), index=X.columns, columns=X.columns),
        residual_variance=float(result.scale),
        df_resid=float(result.df_resid),
    )


def predict_linear(model: LinearModel, X: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    """Return the fitted log-scale mean and its standard error for each row."""
    x = X[list(model.columns)].to_numpy(dtype=float)
    beta = model.coefficients.loc[list(model.columns)].to_numpy(dtype=float)
    cov = model.cov_params.loc[list(model.columns), list(model.columns)].to_numpy(dtype=float)

    mean = x @ beta
    var = np.einsum("ij,jk,ik->i", x, cov, x)
    se = np.sqrt(np.clip(var, 0.0, None))
    return mean, se
