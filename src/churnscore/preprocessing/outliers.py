"""
Outlier capping at Tukey fences.

Fences are learned on one dataset (the training partition) and applied to
any other; values outside ``[Q1 - k*IQR, Q3 + k*IQR]`` are replaced by the
nearest fence.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from churnscore.config import OUTLIER
from churnscore.exceptions import DegenerateFeatureError, SchemaError
from churnscore.utils.decorators import requires_fit

logger = logging.getLogger(__name__)


def tukey_fences(
    X: pd.Series,
    k: float = OUTLIER.DEFAULT_IQR_MULTIPLIER,
) -> Tuple[float, float]:
    """
    Compute ``(lower, upper)`` Tukey fences on the non-missing values.

    Raises
    ------
    DegenerateFeatureError
        If the interquartile range is zero (constant or near-constant
        feature), where fences would collapse onto the median.
    """
    values = X.dropna()
    if values.empty:
        raise DegenerateFeatureError(str(X.name), "Feature has no non-missing values")

    q1, q3 = values.quantile([0.25, 0.75])
    iqr = q3 - q1
    if not iqr > 0:
        raise DegenerateFeatureError(
            str(X.name),
            f"Feature '{X.name}' has zero interquartile range",
        )
    return float(q1 - k * iqr), float(q3 + k * iqr)


class OutlierCapper:
    """
    Cap numeric features at Tukey fences.

    Examples
    --------
    >>> capper = OutlierCapper()
    >>> capper.fit(train, cols=schema.numeric)
    >>> train_capped = capper.transform(train)
    >>> test_capped = capper.transform(test)
    >>> capper.report()
    """

    def __init__(self, k: float = OUTLIER.DEFAULT_IQR_MULTIPLIER):
        self.k = k
        self.fences_: Dict[str, Tuple[float, float]] = {}
        self.skipped_: Dict[str, str] = {}
        self.n_capped_: Dict[str, int] = {}
        self.is_fitted_: bool = False

    def fit(self, X: pd.DataFrame, cols: Optional[Iterable[str]] = None) -> "OutlierCapper":
        """
        Learn fences for ``cols`` (default: all numeric columns).

        Degenerate features are recorded in ``skipped_`` and left alone.
        """
        if cols is None:
            cols = X.select_dtypes(include="number").columns.tolist()
        cols = list(cols)

        missing = [c for c in cols if c not in X.columns]
        if missing:
            raise SchemaError("Columns to cap not found", details={"features": missing})

        self.fences_ = {}
        self.skipped_ = {}
        for col in cols:
            try:
                self.fences_[col] = tukey_fences(X[col], self.k)
            except DegenerateFeatureError as e:
                self.skipped_[col] = e.message
                logger.warning("Skipping outlier capping: %s", e.message)

        self.is_fitted_ = True
        return self

    @requires_fit()
    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Return a copy of ``X`` with fitted columns clipped to their fences.

        Columns without any value outside the fences are not rewritten.
        Missing values stay missing.
        """
        X_new = X.copy()
        self.n_capped_ = {}

        for col, (low, high) in self.fences_.items():
            if col not in X_new.columns:
                continue
            values = X_new[col]
            outside = (values < low) | (values > high)
            n_out = int(outside.sum())
            self.n_capped_[col] = n_out
            if n_out == 0:
                continue
            X_new[col] = values.clip(lower=low, upper=high)
            logger.info(
                "Capped %d value(s) of '%s' to [%.4g, %.4g]", n_out, col, low, high
            )

        return X_new

    def fit_transform(
        self, X: pd.DataFrame, cols: Optional[Iterable[str]] = None
    ) -> pd.DataFrame:
        """Fit and transform in one step."""
        self.fit(X, cols)
        return self.transform(X)

    @requires_fit()
    def report(self) -> pd.DataFrame:
        """Fences and capped counts (from the last ``transform``) per feature."""
        rows: List[Dict] = []
        for col, (low, high) in self.fences_.items():
            rows.append(
                {
                    "feature": col,
                    "lower_fence": low,
                    "upper_fence": high,
                    "n_capped": self.n_capped_.get(col, 0),
                    "skipped": None,
                }
            )
        for col, reason in self.skipped_.items():
            rows.append(
                {
                    "feature": col,
                    "lower_fence": float("nan"),
                    "upper_fence": float("nan"),
                    "n_capped": 0,
                    "skipped": reason,
                }
            )
        return pd.DataFrame(
            rows,
            columns=["feature", "lower_fence", "upper_fence", "n_capped", "skipped"],
        )


def cap_outliers(
    df: pd.DataFrame,
    cols: Optional[Iterable[str]] = None,
    k: float = OUTLIER.DEFAULT_IQR_MULTIPLIER,
) -> pd.DataFrame:
    """Fit fences on ``df`` and return the capped copy."""
    return OutlierCapper(k=k).fit_transform(df, cols)
