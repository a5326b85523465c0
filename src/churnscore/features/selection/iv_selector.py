"""
Information Value feature selection.

Keeps features whose IV against the target is strictly above a threshold.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from churnscore.config import FILTERING
from churnscore.data.schema import FeatureSchema
from churnscore.exceptions import BinningConstraintError
from churnscore.features.analysis.iv_calculator import calculate_iv
from churnscore.features.binning import Binner
from churnscore.utils.decorators import requires_fit

logger = logging.getLogger(__name__)


class IVSelector:
    """
    Variable filter based on Information Value.

    IV is computed per feature with the supervised binning algorithm in
    univariate mode. IV is used only to filter, never to rank the final
    model's features.

    Examples
    --------
    >>> selector = IVSelector(iv_threshold=0.02)
    >>> selector.fit(train, train["churn"], schema)
    >>> selector.selected_features_
    >>> print(selector.report())
    """

    def __init__(
        self,
        iv_threshold: float = FILTERING.DEFAULT_IV_THRESHOLD,
        binner: Optional[Binner] = None,
    ):
        """
        Initialize IVSelector.

        Parameters
        ----------
        iv_threshold : float
            Features with IV <= threshold are discarded. Default 0.02.
        binner : Binner, optional
            Binner whose parameters are used for the IV bins.
        """
        self.iv_threshold = iv_threshold
        self.binner = binner or Binner()

        # Results
        self.iv_dict_: Dict[str, float] = {}
        self.selected_features_: List[str] = []
        self.removed_features_: Dict[str, str] = {}  # feature -> reason
        self._errors: Dict[str, str] = {}
        self.is_fitted_: bool = False

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        schema: FeatureSchema,
        cols: Optional[List[str]] = None,
    ) -> "IVSelector":
        """
        Compute IV for ``cols`` (default: every schema feature) and select.

        Parameters
        ----------
        X : pd.DataFrame
            Training data.
        y : pd.Series
            Binary target (1 = churn).
        schema : FeatureSchema
            Feature types.
        cols : List[str], optional
            Candidate features.

        Returns
        -------
        IVSelector
            Fitted instance.
        """
        cols = list(cols) if cols is not None else schema.features
        schema.validate(X, cols, require_target=False)

        self.iv_dict_ = {}
        self._errors = {}

        for col in cols:
            try:
                result = calculate_iv(X[col], y, kind=schema[col], binner=self.binner)
                self.iv_dict_[col] = float(result["iv"])
            except BinningConstraintError as e:
                # Cannot be binned into enough bins: no usable signal
                self.iv_dict_[col] = 0.0
                self._errors[col] = e.message
                logger.warning("IV set to 0: %s", e.message)

        self.is_fitted_ = True
        self.select(self.iv_threshold)
        return self

    @requires_fit()
    def select(self, iv_threshold: float) -> List[str]:
        """
        (Re)apply a threshold to the computed IVs without recomputing them.

        Returns the selected features, strongest first.
        """
        self.iv_threshold = iv_threshold
        self.selected_features_ = []
        self.removed_features_ = {}

        for feature, iv in self.ranking_:
            if feature in self._errors:
                self.removed_features_[feature] = f"binning: {self._errors[feature]}"
            elif iv > iv_threshold:
                self.selected_features_.append(feature)
            else:
                self.removed_features_[feature] = f"iv={iv:.4f}"

        logger.info(
            "IV filter (threshold %.3f): kept %d, removed %d",
            iv_threshold,
            len(self.selected_features_),
            len(self.removed_features_),
        )
        return list(self.selected_features_)

    @property
    def ranking_(self) -> List[tuple]:
        """(feature, IV) pairs sorted by IV descending, ties by name."""
        return sorted(self.iv_dict_.items(), key=lambda kv: (-kv[1], kv[0]))

    @requires_fit()
    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Drop the removed features; all other columns are kept."""
        return X.drop(columns=[c for c in self.removed_features_ if c in X.columns])

    def fit_transform(
        self, X: pd.DataFrame, y: pd.Series, schema: FeatureSchema
    ) -> pd.DataFrame:
        """Fit and transform in one step."""
        self.fit(X, y, schema)
        return self.transform(X)

    @requires_fit()
    def report(self) -> pd.DataFrame:
        """
        Generate a filtering report.

        Returns
        -------
        pd.DataFrame
            Report with columns: feature, iv, status, reason
        """
        records = []
        for feat, iv in self.ranking_:
            selected = feat in self.selected_features_
            records.append(
                {
                    "feature": feat,
                    "iv": iv,
                    "status": "selected" if selected else "removed",
                    "reason": "" if selected else self.removed_features_.get(feat, ""),
                }
            )

        if not records:
            return pd.DataFrame(columns=["feature", "iv", "status", "reason"])
        return pd.DataFrame(records)

    def get_iv(self, feature: str) -> float:
        return self.iv_dict_.get(feature, np.nan)
