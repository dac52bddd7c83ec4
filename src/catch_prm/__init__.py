"""Catch-only panel regression estimates of B/Bmsy."""

from .errors import FitError, InvalidInputError, PredictionError, PrmError
from .features import FEATURE_COLUMNS, MIN_SERIES_LENGTH, build_features, build_panel
from .fit import fit_model
from .models import BoostedTreeModel, FittedModel, LinearModel
from .persistence import load_model, save_model
from .predict import predict

__version__ = "0.1.0"
