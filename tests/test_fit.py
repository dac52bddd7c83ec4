from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pandas as pd
import pytest
from datasets import Dataset

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from catch_prm.errors import FitError, PrmError  # noqa: E402
from catch_prm.features import build_features, build_panel  # noqa: E402
from catch_prm.fit import fit_model  # noqa: E402
from catch_prm.models import (  # noqa: E402
    MODEL_REGISTRY,
    NUMERIC_PREDICTORS,
    available_models,
    complete_rows,
    design_matrix,
    fit_linear,
    register_model,
)


def _synthetic_panel(seed: int = 7, n_stocks: int = 8, n_years: int = 20) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rows: list[dict] = []
    for i in range(n_stocks):
        t = np.arange(n_years, dtype=float)
        peak = float(rng.integers(4, n_years - 4))
        catch = 50.0 + 40.0 * np.exp(-(((t - peak) / 5.0) ** 2)) + rng.uniform(0.0, 15.0, n_years)
        bbmsy = np.exp(0.5 - 0.03 * t + rng.normal(0.0, 0.2, n_years))
        species = "A" if i % 2 == 0 else "B"
        rows += [
            {"stockid": f"S{i}", "year": 1990 + k, "catch": catch[k], "bbmsy": bbmsy[k], "species_cat": species}
            for k in range(n_years)
        ]
    return build_panel(pd.DataFrame(rows))


def test_linear_fit_matches_least_squares() -> None:
    panel = _synthetic_panel()
    model = fit_model(panel, "linear")

    used = panel.loc[complete_rows(panel)]
    X = design_matrix(used, ("A", "B")).to_numpy(dtype=float)
    y = np.log(used["bbmsy"].to_numpy(dtype=float))
    expected = np.linalg.lstsq(X, y, rcond=None)[0]

    assert model.kind == "linear"
    assert np.allclose(model.coefficients.to_numpy(), expected, rtol=1e-6, atol=1e-8)
    assert model.residual_se > 0.0
    assert model.df_resid == len(used) - X.shape[1]


def test_rows_with_missing_lags_are_dropped_and_counted() -> None:
    panel = _synthetic_panel(n_stocks=8, n_years=20)
    model = fit_model(panel, "linear")
    assert model.n_obs == 8 * (20 - 4)


def test_one_indicator_per_species_without_intercept() -> None:
    model = fit_model(_synthetic_panel(), "linear")
    assert model.species_levels == ("A", "B")
    assert model.columns == ("species_cat[A]", "species_cat[B]", *NUMERIC_PREDICTORS)
    assert "const" not in model.columns
    assert "Intercept" not in model.columns


def test_lm_alias_and_dataset_input() -> None:
    panel = _synthetic_panel()
    from_frame = fit_model(panel, "linear")
    from_dataset = fit_model(Dataset.from_pandas(panel), "lm")
    assert np.allclose(from_frame.coefficients.to_numpy(), from_dataset.coefficients.to_numpy())


def test_missing_column_raises() -> None:
    with pytest.raises(FitError, match="initial_slope"):
        fit_model(_synthetic_panel().drop(columns="initial_slope"), "linear")


def test_single_stock_is_rank_deficient() -> None:
    panel = _synthetic_panel(n_stocks=1)
    with pytest.raises(FitError, match="rank deficient"):
        fit_model(panel, "linear")


def test_fewer_rows_than_predictors_raises() -> None:
    panel = build_features(
        year=range(8), catch=[1.0, 3.0, 5.0, 4.0, 2.0, 3.0, 2.0, 1.0], bbmsy=[1.0] * 8, species_cat="A"
    )
    with pytest.raises(FitError, match="Fewer usable rows"):
        fit_model(panel, "linear")


def test_unrepresented_category_raises() -> None:
    panel = _synthetic_panel()
    panel["species_cat"] = pd.Categorical(panel["species_cat"], categories=["A", "B", "C"])
    with pytest.raises(FitError, match="'C'"):
        fit_model(panel, "linear")


def test_non_positive_bbmsy_raises() -> None:
    panel = _synthetic_panel()
    panel.loc[panel.index[-1], "bbmsy"] = 0.0
    with pytest.raises(FitError, match="positive"):
        fit_model(panel, "linear")


def test_unknown_model_type_raises() -> None:
    with pytest.raises(FitError, match="Available"):
        fit_model(_synthetic_panel(), "random_forest")
    assert available_models() == ["boosted", "linear"]


def test_boosted_fit_passes_tuning_through() -> None:
    pytest.importorskip("xgboost")
    model = fit_model(_synthetic_panel(), "boosted", n_estimators=25, max_depth=2)
    assert model.kind == "boosted"
    assert model.engine == "xgboost"
    assert model.n_trees == 25
    assert model.ensemble.get_params()["max_depth"] == 2
    assert model.n_obs == 8 * 16


def test_sklearn_engine_and_estimator_errors() -> None:
    pytest.importorskip("sklearn")
    model = fit_model(_synthetic_panel(), "gbm", engine="sklearn", n_estimators=30)
    assert model.engine == "sklearn"
    assert model.n_trees == 30

    with pytest.raises(FitError, match="sklearn"):
        fit_model(_synthetic_panel(), "boosted", engine="sklearn", learning_rate=-1.0)


def test_linear_fit_rejects_tuning_parameters() -> None:
    with pytest.raises(FitError, match="n_estimators") as excinfo:
        fit_model(_synthetic_panel(), "linear", n_estimators=10)
    assert isinstance(excinfo.value, PrmError)


def test_registered_fitter_is_dispatched() -> None:
    calls: list[tuple[str, ...]] = []

    def _recording_linear(X, y, species_levels, **params):
        calls.append(species_levels)
        return fit_linear(X, y, species_levels)

    register_model("recording_linear", _recording_linear)
    try:
        assert "recording_linear" in available_models()
        model = fit_model(_synthetic_panel(), " Recording_Linear ")
    finally:
        MODEL_REGISTRY.pop("recording_linear", None)

    assert calls == [("A", "B")]
    assert model.kind == "linear"
    assert "recording_linear" not in available_models()
