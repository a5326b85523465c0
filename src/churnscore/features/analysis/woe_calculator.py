from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np
import pandas as pd

from churnscore.config import BINNING

if TYPE_CHECKING:
    from churnscore.features.binning.binning_map import BinningMap


def calculate_woe(
    positives: np.ndarray,
    negatives: np.ndarray,
    epsilon: float = BINNING.DEFAULT_EPSILON,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Weight of Evidence and IV contribution per bin.

    ``woe = ln(pos_dist / neg_dist)`` where ``pos_dist`` is the bin's share of
    all positives (churners) and ``neg_dist`` its share of all negatives.
    Shares are floored at ``epsilon`` so empty or pure bins stay finite.

    Args:
        positives: Positive-class count per bin.
        negatives: Negative-class count per bin.
        epsilon: Smoothing floor for the class distributions.

    Returns:
        Tuple of (woe, iv_contribution) arrays. Both are all zero when one
        class is absent altogether.
    """
    positives = np.asarray(positives, dtype=float)
    negatives = np.asarray(negatives, dtype=float)

    total_pos = positives.sum()
    total_neg = negatives.sum()

    if total_pos == 0 or total_neg == 0:
        # Degenerate case, set everything to 0
        zeros = np.zeros(len(positives))
        return zeros, zeros.copy()

    # Distributions with smoothing
    dist_pos = np.clip(positives / total_pos, epsilon, None)
    dist_neg = np.clip(negatives / total_neg, epsilon, None)

    woe = np.log(dist_pos / dist_neg)
    iv_contrib = (dist_pos - dist_neg) * woe
    return woe, iv_contrib


class WOETransformer:
    """
    Weight of Evidence transformer backed by a fitted BinningMap.

    There is deliberately no ``fit``: the map is learned once on training
    data by :class:`~churnscore.features.binning.Binner` and every dataset,
    train or test, goes through the same instance.

    Examples
    --------
    >>> woe = WOETransformer(binner.binning_map_, target="churn")
    >>> train_woe = woe.transform(train)
    >>> test_woe = woe.transform(test)
    """

    def __init__(
        self,
        binning_map: "BinningMap",
        target: Optional[str] = None,
        strict: bool = False,
    ):
        if len(binning_map) == 0:
            raise ValueError("BinningMap is empty. Fit a Binner first.")
        self.binning_map = binning_map
        self.target = target
        self.strict = strict

    @property
    def features(self):
        return self.binning_map.features()

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Replace every mapped feature with its bin's WoE.

        The target column, when configured and present, is carried over
        unchanged; other columns are dropped.
        """
        target = self.target if self.target in X.columns else None
        return self.binning_map.transform(X, target=target, strict=self.strict)

    def transform_feature(self, feature: str, values: pd.Series) -> pd.Series:
        """WoE of a single feature's values."""
        return self.binning_map[feature].transform(values, strict=self.strict)
