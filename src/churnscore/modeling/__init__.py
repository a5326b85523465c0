"""Modeling module: the logistic model and the engine that fits it."""

from churnscore.modeling.engine import FitOptions, ModelEngine
from churnscore.modeling.logistic import LogisticModel

__all__ = ["FitOptions", "LogisticModel", "ModelEngine"]
