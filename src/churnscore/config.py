"""
Configuration constants for the churnscore package.

Provides centralized default values for loading, capping, binning, filtering,
modeling and evaluation.
"""

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class DatasetConfig:
    """Raw dataset defaults"""

    DEFAULT_TARGET: Final[str] = "churn"
    DEFAULT_POSITIVE_LABEL: Final[str] = "yes"
    DEFAULT_NEGATIVE_LABEL: Final[str] = "no"
    DEFAULT_SEPARATOR: Final[str] = ","


@dataclass(frozen=True)
class OutlierConfig:
    """Tukey fence defaults"""

    DEFAULT_IQR_MULTIPLIER: Final[float] = 1.5


@dataclass(frozen=True)
class BinningConfig:
    """Supervised binning defaults"""

    DEFAULT_MAX_BINS: Final[int] = 10
    DEFAULT_MIN_BINS: Final[int] = 2
    DEFAULT_MIN_BIN_SIZE: Final[float] = 0.05
    DEFAULT_INITIAL_BINS: Final[int] = 50
    DEFAULT_CHI_ALPHA: Final[float] = 0.05
    DEFAULT_EPSILON: Final[float] = 1e-8
    DEFAULT_MONOTONIC: Final[bool] = True
    MISSING_LABEL: Final[str] = "Missing"


@dataclass(frozen=True)
class FilteringConfig:
    """Feature filtering defaults"""

    DEFAULT_IV_THRESHOLD: Final[float] = 0.02


@dataclass(frozen=True)
class ModelingConfig:
    """Logistic model and refinement defaults"""

    DEFAULT_P_THRESHOLD: Final[float] = 0.05
    DEFAULT_P_VALUE_DECIMALS: Final[int] = 3
    DEFAULT_N_FOLDS: Final[int] = 5
    DEFAULT_SEED: Final[int] = 42
    DEFAULT_MAXITER: Final[int] = 100
    DEFAULT_METHOD: Final[str] = "bfgs"
    DEFAULT_REGULARIZATION: Final[float] = 0.0
    DEFAULT_BALANCE_CLASSES: Final[bool] = False


@dataclass(frozen=True)
class SplitConfig:
    """Train/test split defaults"""

    DEFAULT_TEST_SIZE: Final[float] = 0.3
    DEFAULT_SEED: Final[int] = 42
    DEFAULT_STRATIFY: Final[bool] = True


@dataclass(frozen=True)
class EvaluationConfig:
    """Evaluation defaults"""

    DEFAULT_THRESHOLD_GRID_SIZE: Final[int] = 101


# Singleton instances for easy access
DATASET = DatasetConfig()
OUTLIER = OutlierConfig()
BINNING = BinningConfig()
FILTERING = FilteringConfig()
MODELING = ModelingConfig()
SPLIT = SplitConfig()
EVALUATION = EvaluationConfig()
