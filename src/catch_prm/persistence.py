from __future__ import annotations

import logging
from pathlib import Path

import joblib

from .models import FittedModel

logger = logging.getLogger(__name__)


def save_model(model: FittedModel, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(model, out)
    logger.info("Saved %s model (%d rows) to %s", model.kind, model.n_obs, out)
    return out


def load_model(path: str | Path) -> FittedModel:
    """Load a model written by ``save_model``."""
    model = joblib.load(Path(path))
    if not isinstance(model, FittedModel):
        raise TypeError(f"Unexpected object in {path}: {type(model)}")
    logger.info("Loaded %s model from %s", model.kind, path)
    return model
