"""
Unified binning interface.

Fits supervised bins for every selected feature and collects them, with
their WoE values, into a :class:`BinningMap`.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from churnscore.config import BINNING
from churnscore.data.schema import FeatureSchema, FeatureType
from churnscore.exceptions import BinningConstraintError, DegenerateFeatureError
from churnscore.utils.decorators import requires_fit

from .base import BaseBinner
from .binning_map import Bin, BinningMap, FeatureBinning
from .supervised import CategoricalChiMergeBinner, ChiMergeBinner

logger = logging.getLogger(__name__)


def _format_bound(value: float) -> str:
    if np.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.6g}"


class Binner:
    """
    Supervised binning for numeric and categorical features.

    Numeric features use :class:`ChiMergeBinner`, categorical features
    :class:`CategoricalChiMergeBinner`. Missing values always get their own
    bin. Features that cannot be binned (degenerate, or fewer than
    ``min_bins`` bins meeting ``min_bin_size``) are excluded and recorded in
    ``excluded_``.

    Examples
    --------
    >>> binner = Binner(max_bins=10, min_bin_size=0.05)
    >>> binner.fit(train, train["churn"], schema, cols=selected)
    >>> binner["balance"].stats()
    >>> train_woe = binner.woe_transform(train)
    """

    method_map = {
        FeatureType.NUMERIC: ChiMergeBinner,
        FeatureType.CATEGORICAL: CategoricalChiMergeBinner,
    }

    def __init__(
        self,
        max_bins: int = BINNING.DEFAULT_MAX_BINS,
        min_bins: int = BINNING.DEFAULT_MIN_BINS,
        min_bin_size: float = BINNING.DEFAULT_MIN_BIN_SIZE,
        alpha: float = BINNING.DEFAULT_CHI_ALPHA,
        monotonic: bool = BINNING.DEFAULT_MONOTONIC,
        initial_bins: int = BINNING.DEFAULT_INITIAL_BINS,
        epsilon: float = BINNING.DEFAULT_EPSILON,
    ):
        self.max_bins = max_bins
        self.min_bins = min_bins
        self.min_bin_size = min_bin_size
        self.alpha = alpha
        self.monotonic = monotonic
        self.initial_bins = initial_bins
        self.epsilon = epsilon

        self.binners_: Dict[str, BaseBinner] = {}
        self.binning_map_ = BinningMap()
        self.excluded_: Dict[str, str] = {}
        self._missing_label = BINNING.MISSING_LABEL
        self.is_fitted_ = False

    def _make_binner(self, kind: FeatureType) -> BaseBinner:
        params = {
            "max_bins": self.max_bins,
            "min_bins": self.min_bins,
            "min_bin_size": self.min_bin_size,
            "alpha": self.alpha,
            "monotonic": self.monotonic,
        }
        if kind is FeatureType.NUMERIC:
            params["initial_bins"] = self.initial_bins
        return self.method_map[kind](**params)

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        schema: FeatureSchema,
        cols: Optional[List[str]] = None,
    ) -> "Binner":
        """
        Fit bins for ``cols`` (default: every schema feature).

        Parameters
        ----------
        X : pd.DataFrame
            Training data.
        y : pd.Series
            Binary target aligned with ``X``.
        schema : FeatureSchema
            Feature types.
        cols : List[str], optional
            Features to bin.

        Returns
        -------
        Binner
            Fitted binner instance.
        """
        cols = list(cols) if cols is not None else schema.features
        schema.validate(X, cols, require_target=False)

        self.binners_ = {}
        self.binning_map_ = BinningMap()
        self.excluded_ = {}

        for col in cols:
            try:
                binning = self.fit_feature(X[col], y, schema[col])
            except (DegenerateFeatureError, BinningConstraintError) as e:
                self.excluded_[col] = e.message
                logger.warning("Excluding feature from binning: %s", e.message)
                continue
            self.binning_map_.store(binning)

        logger.info(
            "Binned %d feature(s), excluded %d", len(self.binning_map_), len(self.excluded_)
        )
        self.is_fitted_ = True
        return self

    def fit_feature(self, X: pd.Series, y: pd.Series, kind: FeatureType) -> FeatureBinning:
        """
        Bin a single feature and compute per-bin counts and WoE.

        Raises
        ------
        DegenerateFeatureError
            Fewer than two distinct non-missing values.
        BinningConstraintError
            Fewer than ``min_bins`` bins satisfy the size constraint.
        """
        from churnscore.features.analysis.woe_calculator import calculate_woe

        y = y.astype(int)
        valid_mask = X.notna()

        binner = self._make_binner(kind)
        binner.fit(X[valid_mask], y[valid_mask])
        self.binners_[str(X.name)] = binner

        n_value_bins = binner.n_bins_
        codes = binner.transform(X[valid_mask]).astype(int).to_numpy()
        y_valid = y[valid_mask].to_numpy()

        positives = np.bincount(codes, weights=y_valid, minlength=n_value_bins).astype(int)
        totals = np.bincount(codes, minlength=n_value_bins)
        negatives = totals - positives

        y_missing = y[~valid_mask].to_numpy()
        positives = np.append(positives, int(y_missing.sum()))
        negatives = np.append(negatives, int(len(y_missing) - y_missing.sum()))

        woe, iv = calculate_woe(positives, negatives, epsilon=self.epsilon)

        bins = []
        for idx in range(n_value_bins):
            bin_kwargs = {}
            if kind is FeatureType.NUMERIC:
                edges = [-np.inf] + binner.splits_ + [np.inf]
                bin_kwargs["lower"] = float(edges[idx])
                bin_kwargs["upper"] = float(edges[idx + 1])
                label = f"({_format_bound(edges[idx])}, {_format_bound(edges[idx + 1])}]"
            else:
                group = tuple(binner.groups_[idx])
                bin_kwargs["categories"] = group
                label = "{" + ", ".join(str(c) for c in group) + "}"

            bins.append(
                Bin(
                    index=idx,
                    label=label,
                    positives=int(positives[idx]),
                    negatives=int(negatives[idx]),
                    woe=float(woe[idx]),
                    iv=float(iv[idx]),
                    **bin_kwargs,
                )
            )

        bins.append(
            Bin(
                index=n_value_bins,
                label=self._missing_label,
                positives=int(positives[-1]),
                negatives=int(negatives[-1]),
                woe=float(woe[-1]),
                iv=float(iv[-1]),
                is_missing=True,
            )
        )

        return FeatureBinning(
            feature=str(X.name),
            kind=kind,
            bins=bins,
            splits=list(getattr(binner, "splits_", [])),
            category_index=dict(getattr(binner, "category_map_", {})),
        )

    @requires_fit()
    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Replace binned features with their bin index.

        The missing bin has the last index of each feature.
        """
        X_new = X.copy()
        for feature, binning in self.binning_map_.features_.items():
            if feature in X_new.columns:
                X_new[feature] = binning.bin_indices(X[feature])
        return X_new

    @requires_fit()
    def woe_transform(
        self,
        X: pd.DataFrame,
        target: Optional[str] = None,
        strict: bool = False,
    ) -> pd.DataFrame:
        """
        Apply WOE transformation to the data.

        Uses the WoE values computed during fit(); nothing is refitted.
        """
        return self.binning_map_.transform(X, target=target, strict=strict)

    def __getitem__(self, feature: str) -> FeatureBinning:
        """
        Get the fitted binning of a feature.

        Parameters
        ----------
        feature : str
            Feature name.

        Returns
        -------
        FeatureBinning
            Bins, WoE values and stats of the feature.
        """
        if feature not in self.binning_map_:
            raise KeyError(f"Feature '{feature}' not found in binner.")
        return self.binning_map_[feature]

    def __contains__(self, feature: str) -> bool:
        """Check if feature is in binner."""
        return feature in self.binning_map_

    def __iter__(self):
        """Iterate over feature names."""
        return iter(self.binning_map_)

    def __len__(self) -> int:
        """Number of binned features."""
        return len(self.binning_map_)

    def features(self) -> List[str]:
        """Get list of binned feature names."""
        return self.binning_map_.features()

    def export(self) -> Dict[str, Dict]:
        """Export binning rules."""
        return self.binning_map_.export()
