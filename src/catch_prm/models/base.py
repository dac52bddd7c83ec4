from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Sequence

import numpy as np
import pandas as pd
from datasets import Dataset

NUMERIC_PREDICTORS: tuple[str, ...] = (
    "max_catch",
    "mean_scaled_catch",
    "scaled_catch",
    "scaled_catch1",
    "scaled_catch2",
    "scaled_catch3",
    "scaled_catch4",
    "catch_to_rolling_max",
    "time_to_max",
    "years_back",
    "initial_slope",
)
SPECIES_COLUMN = "species_cat"
RESPONSE_COLUMN = "bbmsy"
REQUIRED_COLUMNS: tuple[str, ...] = (SPECIES_COLUMN, *NUMERIC_PREDICTORS)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Read-only handle shared by both model kinds.

    ``columns`` is the design-matrix column order (species indicators first,
    then ``NUMERIC_PREDICTORS``); ``n_obs`` is the number of rows that
    survived missing-value filtering at fit time.
    """

    kind: ClassVar[str] = ""

    columns: tuple[str, ...]
    species_levels: tuple[str, ...]
    n_obs: int


@dataclass(frozen=True, eq=False)
class LinearModel(FittedModel):
    """OLS fit of log(B/Bmsy) without an intercept."""

    kind: ClassVar[str] = "linear"

    coefficients: pd.Series
    cov_params: pd.DataFrame
    residual_variance: float
    df_resid: float

    @property
    def residual_se(self) -> float:
        return float(np.sqrt(self.residual_variance))


@dataclass(frozen=True, eq=False)
class BoostedTreeModel(FittedModel):
    """Gradient-boosted trees on log(B/Bmsy)."""

    kind: ClassVar[str] = "boosted"

    ensemble: Any
    n_trees: int
    engine: str
    params: dict[str, Any]


def as_frame(table: pd.DataFrame | Dataset) -> pd.DataFrame:
    if isinstance(table, pd.DataFrame):
        return table
    if isinstance(table, Dataset):
        return table.to_pandas().copy()
    raise TypeError(f"Unexpected table type: {type(table)}")


def missing_columns(frame: pd.DataFrame, required: Sequence[str] = REQUIRED_COLUMNS) -> list[str]:
    return [c for c in required if c not in frame.columns]


def species_label(value: Any) -> str:
    """Text label for a species category; integral floats drop the trailing ``.0``."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def species_indicator_name(level: str) -> str:
    return f"{SPECIES_COLUMN}[{level}]"


def design_columns(species_levels: Sequence[str]) -> tuple[str, ...]:
    return tuple(species_indicator_name(level) for level in species_levels) + NUMERIC_PREDICTORS


def complete_rows(frame: pd.DataFrame) -> pd.Series:
    """Boolean mask of rows with every predictor present."""
    numeric = frame[list(NUMERIC_PREDICTORS)].apply(pd.to_numeric, errors="coerce")
    return numeric.notna().all(axis=1) & frame[SPECIES_COLUMN].notna()


def design_matrix(frame: pd.DataFrame, species_levels: Sequence[str]) -> pd.DataFrame:
    """Build the no-intercept model matrix.

    Every level in ``species_levels`` gets its own indicator column; no level
    is dropped as a reference. Rows whose species is not in the level set get
    all-zero indicators, so callers must check levels first.
    """
    species = frame[SPECIES_COLUMN].astype(object).map(species_label)
    indicators = {
        species_indicator_name(level): (species == level).astype(float).to_numpy() for level in species_levels
    }
    numeric = frame[list(NUMERIC_PREDICTORS)].apply(pd.to_numeric, errors="coerce").astype(float)
    X = pd.DataFrame(indicators, index=frame.index)
    X = pd.concat([X, numeric], axis=1)
    return X[list(design_columns(species_levels))]
