"""
Exception hierarchy for the churn scoring pipeline.

Fatal errors (schema, configuration, refinement non-termination, engine
failure) propagate out of the pipeline. Recoverable errors (degenerate
features, binning constraints, unseen categories) are raised by per-feature
helpers and caught by the stage that owns the feature.
"""

from typing import Any, Dict, Optional


class ChurnScoreError(Exception):
    """
    Base exception for all churnscore errors.

    Parameters
    ----------
    message : str
        Human readable error message.
    details : dict, optional
        Structured context (feature names, counts, thresholds).
    cause : Exception, optional
        Underlying exception, if any.
    stage : str, optional
        Pipeline stage in which the error surfaced. Filled in by the
        pipeline when not given.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.stage = stage

    def __str__(self) -> str:
        result = self.message
        if self.stage:
            result = f"[{self.stage}] {result}"
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {self.cause}"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/reporting."""
        return {
            "type": self.__class__.__name__,
            "stage": self.stage,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ChurnScoreError):
    """Raised for invalid component or engine options."""


class SchemaError(ChurnScoreError):
    """
    Raised when the dataset does not match what a stage expects.

    Examples:
    - Target column missing or containing missing values
    - Target labels outside the configured positive/negative labels
    - A feature referenced downstream is not present in the data
    """


class DegenerateFeatureError(ChurnScoreError):
    """Raised for a feature with zero variance. Recovered by skipping it."""

    def __init__(self, feature: str, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or f"Feature '{feature}' has zero variance",
            details={"feature": feature, **kwargs.pop("details", {})},
            **kwargs,
        )
        self.feature = feature


class BinningConstraintError(ChurnScoreError):
    """
    Raised when a feature cannot be split into enough bins that satisfy
    the minimum bin size. Recovered by excluding the feature.
    """

    def __init__(
        self,
        feature: Optional[str],
        n_bins: int,
        min_bins: int,
        **kwargs,
    ):
        name = feature if feature is not None else "<unnamed>"
        super().__init__(
            f"Feature '{name}' produced {n_bins} bin(s), at least {min_bins} required",
            details={"feature": feature, "n_bins": n_bins, "min_bins": min_bins},
            **kwargs,
        )
        self.feature = feature
        self.n_bins = n_bins
        self.min_bins = min_bins


class UnseenCategoryError(ChurnScoreError, KeyError):
    """Raised by strict lookups for a category never seen while binning."""

    def __init__(self, feature: str, category: Any, **kwargs):
        super().__init__(
            f"Category {category!r} of feature '{feature}' was not seen during binning",
            details={"feature": feature, "category": category},
            **kwargs,
        )
        self.feature = feature
        self.category = category

    def __str__(self) -> str:
        return ChurnScoreError.__str__(self)


class UnseenCategoryWarning(UserWarning):
    """Emitted when unseen categories are routed to the fallback bin."""


class ModelFitError(ChurnScoreError):
    """Raised when the logistic engine cannot produce a fit at all."""


class RefinementNonTermination(ConfigurationError):
    """
    Raised when significance refinement cannot finish: the iteration cap was
    exceeded or the last remaining feature would have to be removed.
    """
