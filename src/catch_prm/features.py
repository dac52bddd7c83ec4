from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
import pandas as pd

from .errors import InvalidInputError

logger = logging.getLogger(__name__)

MIN_SERIES_LENGTH = 6
N_LAGS = 4

FEATURE_COLUMNS: tuple[str, ...] = (
    "year",
    "bbmsy",
    "years_back",
    "catch",
    "max_catch",
    "scaled_catch",
    "mean_scaled_catch",
    "scaled_catch1",
    "scaled_catch2",
    "scaled_catch3",
    "scaled_catch4",
    "catch_to_rolling_max",
    "time_to_max",
    "initial_slope",
    "species_cat",
)


def _is_sequence_value(value: Any) -> bool:
    return isinstance(value, (list, tuple, np.ndarray, pd.Series, pd.Index))


def _scalar_species(species_cat: Any) -> Any:
    if not _is_sequence_value(species_cat):
        return species_cat
    values = list(species_cat)
    if len(values) != 1:
        raise InvalidInputError(f"species_cat must be a single value, got {len(values)} values")
    return values[0]


def _initial_slope(scaled_catch: np.ndarray) -> float:
    x = np.arange(1, MIN_SERIES_LENGTH + 1, dtype=float)
    design = np.column_stack([np.ones(x.size, dtype=float), x])
    coefs = np.linalg.lstsq(design, scaled_catch[:MIN_SERIES_LENGTH], rcond=None)[0]
    return float(coefs[1])


def build_features(
    year: Sequence[Any],
    catch: Sequence[float],
    bbmsy: Sequence[float] | None,
    species_cat: Any,
) -> pd.DataFrame:
    """Derive the per-year predictor table for one stock.

    All series-level summaries (``max_catch``, ``mean_scaled_catch``,
    ``time_to_max``, ``initial_slope``) are computed once over the whole
    series and repeated on every row. Lagged scaled catches are missing where
    the series has no earlier value.
    """
    catch_arr = np.asarray(catch, dtype=float).reshape(-1)
    n = catch_arr.size
    year_arr = np.asarray(year).reshape(-1)
    if bbmsy is None:
        bbmsy_arr = np.full(n, np.nan, dtype=float)
    else:
        bbmsy_arr = np.asarray(bbmsy, dtype=float).reshape(-1)

    if bbmsy_arr.size != n:
        raise InvalidInputError(f"catch and bbmsy lengths differ: catch={n}, bbmsy={bbmsy_arr.size}")
    if year_arr.size != n:
        raise InvalidInputError(f"catch and year lengths differ: catch={n}, year={year_arr.size}")
    species = _scalar_species(species_cat)
    if n < MIN_SERIES_LENGTH:
        raise InvalidInputError(
            f"Series needs at least {MIN_SERIES_LENGTH} years to compute initial_slope, got {n}"
        )
    if not np.isfinite(catch_arr).all() or (catch_arr < 0.0).any():
        raise InvalidInputError("catch must be finite and non-negative")

    max_catch = float(catch_arr.max())
    if max_catch <= 0.0:
        raise InvalidInputError("catch is zero in every year; cannot scale by max_catch")

    scaled = pd.Series(catch_arr / max_catch)
    with np.errstate(invalid="ignore", divide="ignore"):
        to_rolling_max = scaled.to_numpy() / scaled.cummax().to_numpy()

    out = pd.DataFrame(
        {
            "year": year_arr,
            "bbmsy": bbmsy_arr,
            "years_back": np.arange(n, 0, -1, dtype=int),
            "catch": catch_arr,
            "max_catch": np.repeat(max_catch, n),
            "scaled_catch": scaled.to_numpy(),
            "mean_scaled_catch": np.repeat(float(scaled.mean()), n),
        }
    )
    for lag in range(1, N_LAGS + 1):
        out[f"scaled_catch{lag}"] = scaled.shift(lag).to_numpy()
    out["catch_to_rolling_max"] = to_rolling_max
    # argmax returns the first index on ties
    out["time_to_max"] = int(np.argmax(catch_arr)) + 1
    out["initial_slope"] = _initial_slope(scaled.to_numpy())
    out["species_cat"] = species
    return out


def build_panel(
    frame: pd.DataFrame,
    *,
    stock_col: str = "stockid",
    year_col: str = "year",
    catch_col: str = "catch",
    bbmsy_col: str | None = "bbmsy",
    species_col: str = "species_cat",
    skip_invalid: bool = False,
) -> pd.DataFrame:
    """Build features stock by stock from a long table and stack them.

    Each stock is sorted by year before its features are derived, so lags and
    running maxima never cross stock boundaries. With ``skip_invalid`` a stock
    that cannot be featurised is logged and left out.
    """
    required = [stock_col, year_col, catch_col, species_col]
    if bbmsy_col is not None:
        required.append(bbmsy_col)
    missing = [c for c in required if c not in frame.columns]
    if missing:
        raise InvalidInputError(f"Panel frame missing required columns: {missing}")

    pieces: list[pd.DataFrame] = []
    skipped: list[Any] = []
    for stock_id, grp in frame.groupby(stock_col, sort=False):
        grp = grp.sort_values(year_col)
        species = grp[species_col].dropna().unique()
        try:
            if len(species) != 1:
                raise InvalidInputError(
                    f"species_cat must be constant within a stock, found {len(species)} values"
                )
            features = build_features(
                year=grp[year_col].to_numpy(),
                catch=grp[catch_col].to_numpy(dtype=float),
                bbmsy=None if bbmsy_col is None else grp[bbmsy_col].to_numpy(dtype=float),
                species_cat=species[0],
            )
        except InvalidInputError as exc:
            if not skip_invalid:
                raise InvalidInputError(f"{stock_col}={stock_id!r}: {exc}") from exc
            logger.warning("Skipping %s=%r: %s", stock_col, stock_id, exc)
            skipped.append(stock_id)
            continue

        features.insert(0, stock_col, stock_id)
        pieces.append(features)

    if not pieces:
        raise InvalidInputError("No stock produced a feature table")

    if skipped:
        logger.info("Built panel from %d stocks, skipped %d", len(pieces), len(skipped))
    return pd.concat(pieces, ignore_index=True)
