"""
BinningMap: the fitted bins and WoE values of every selected feature.

Fitted once on training data and applied, unchanged, to any later dataset.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from churnscore.data.schema import FeatureType
from churnscore.exceptions import SchemaError, UnseenCategoryError, UnseenCategoryWarning

logger = logging.getLogger(__name__)


@dataclass
class Bin:
    """One bin of a feature: value range or category group, counts and WoE."""

    index: int
    label: str
    positives: int
    negatives: int
    woe: float
    iv: float
    lower: Optional[float] = None
    upper: Optional[float] = None
    categories: Optional[Tuple[Any, ...]] = None
    is_missing: bool = False

    @property
    def total(self) -> int:
        return self.positives + self.negatives

    @property
    def event_rate(self) -> float:
        return self.positives / self.total if self.total else float("nan")


@dataclass
class FeatureBinning:
    """
    Bins of a single feature.

    ``bins`` holds the value bins in order followed by the missing bin,
    which is always present (with zero counts and WoE 0 when the training
    data had no missing values).
    """

    feature: str
    kind: FeatureType
    bins: List[Bin]
    splits: List[float] = field(default_factory=list)
    category_index: Dict[Any, int] = field(default_factory=dict)

    @property
    def iv(self) -> float:
        return float(sum(b.iv for b in self.bins))

    @property
    def value_bins(self) -> List[Bin]:
        return [b for b in self.bins if not b.is_missing]

    @property
    def missing_bin(self) -> Bin:
        return self.bins[-1]

    @property
    def fallback_bin(self) -> Bin:
        """Least frequent value bin; destination of unseen categories."""
        return min(self.value_bins, key=lambda b: (b.total, b.index))

    @property
    def woe_values(self) -> np.ndarray:
        return np.array([b.woe for b in self.bins])

    def bin_indices(self, values: pd.Series, strict: bool = False) -> pd.Series:
        """
        Bin index for every value. Missing values get the missing bin.

        Unseen categories raise :class:`UnseenCategoryError` when ``strict``,
        otherwise they go to :attr:`fallback_bin` with a warning.
        """
        missing = values.isna()

        if self.kind is FeatureType.NUMERIC:
            bins = [-np.inf] + list(self.splits) + [np.inf]
            codes = pd.cut(
                values.where(~missing).astype(float),
                bins=bins,
                labels=False,
                include_lowest=True,
            )
            codes = pd.Series(codes, index=values.index, dtype=float)
        else:
            codes = pd.Series(
                values.astype(object).map(self.category_index),
                index=values.index,
                dtype=float,
            )
            unseen = codes.isna() & ~missing
            if unseen.any():
                categories = sorted(values[unseen].astype(str).unique().tolist())
                if strict:
                    raise UnseenCategoryError(self.feature, categories[0])
                fallback = self.fallback_bin
                message = (
                    f"Feature '{self.feature}': {int(unseen.sum())} value(s) in unseen "
                    f"categories {categories} assigned to bin '{fallback.label}'"
                )
                warnings.warn(message, UnseenCategoryWarning, stacklevel=3)
                logger.warning(message)
                codes[unseen] = fallback.index

        codes[missing] = self.missing_bin.index
        return codes.astype(int)

    def transform(self, values: pd.Series, strict: bool = False) -> pd.Series:
        """Replace every value with the WoE of its bin."""
        codes = self.bin_indices(values, strict=strict)
        return pd.Series(self.woe_values[codes.to_numpy()], index=values.index, name=values.name)

    def stats(self) -> pd.DataFrame:
        """Per-bin statistics table."""
        stats = pd.DataFrame(
            {
                "bin": [b.label for b in self.bins],
                "positives": [b.positives for b in self.bins],
                "negatives": [b.negatives for b in self.bins],
                "total": [b.total for b in self.bins],
                "woe": [b.woe for b in self.bins],
                "iv": [b.iv for b in self.bins],
            }
        )
        total_pos = max(stats["positives"].sum(), 1)
        total_neg = max(stats["negatives"].sum(), 1)
        total_all = max(stats["total"].sum(), 1)

        stats["event_rate"] = stats["positives"] / stats["total"].clip(lower=1)
        stats["total_prop"] = stats["total"] / total_all
        stats["pos_prop"] = stats["positives"] / total_pos
        stats["neg_prop"] = stats["negatives"] / total_neg
        stats["ks"] = (stats["pos_prop"].cumsum() - stats["neg_prop"].cumsum()).abs()

        return stats[
            [
                "bin",
                "positives",
                "negatives",
                "total",
                "total_prop",
                "event_rate",
                "pos_prop",
                "neg_prop",
                "woe",
                "iv",
                "ks",
            ]
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature": self.feature,
            "kind": self.kind.value,
            "iv": self.iv,
            "splits": list(self.splits),
            "bins": [
                {
                    "label": b.label,
                    "lower": b.lower,
                    "upper": b.upper,
                    "categories": list(b.categories) if b.categories is not None else None,
                    "is_missing": b.is_missing,
                    "positives": b.positives,
                    "negatives": b.negatives,
                    "woe": b.woe,
                }
                for b in self.bins
            ],
        }


class BinningMap:
    """
    Storage for fitted :class:`FeatureBinning` objects, keyed by feature.

    Examples
    --------
    >>> binning_map = Binner().fit(train, y_train, schema).binning_map_
    >>> binning_map.iv_table()
    >>> test_woe = binning_map.transform(test)
    """

    def __init__(self):
        self.features_: Dict[str, FeatureBinning] = {}

    def store(self, binning: FeatureBinning):
        self.features_[binning.feature] = binning

    def get(self, feature: str) -> Optional[FeatureBinning]:
        return self.features_.get(feature)

    def remove(self, feature: str):
        if feature in self.features_:
            del self.features_[feature]

    def features(self) -> List[str]:
        return list(self.features_.keys())

    def get_iv(self, feature: str) -> float:
        binning = self.get(feature)
        if binning is None:
            return 0.0
        return binning.iv

    def iv_table(self) -> pd.DataFrame:
        """Features ranked by IV, strongest first."""
        records = [{"feature": f, "iv": b.iv, "n_bins": len(b.value_bins)}
                   for f, b in self.features_.items()]
        if not records:
            return pd.DataFrame(columns=["feature", "iv", "n_bins"])
        return (
            pd.DataFrame(records)
            .sort_values("iv", ascending=False, kind="mergesort")
            .reset_index(drop=True)
        )

    def transform(
        self,
        X: pd.DataFrame,
        target: Optional[str] = None,
        strict: bool = False,
    ) -> pd.DataFrame:
        """
        Build the WoE dataset: one WoE column per mapped feature, plus the
        unchanged ``target`` column when given.
        """
        missing = [f for f in self.features_ if f not in X.columns]
        if missing:
            raise SchemaError(
                "Features of the binning map missing from dataset",
                details={"features": missing},
            )

        out = pd.DataFrame(index=X.index)
        for feature, binning in self.features_.items():
            out[feature] = binning.transform(X[feature], strict=strict)

        if target is not None:
            if target not in X.columns:
                raise SchemaError(f"Target column '{target}' not found")
            out[target] = X[target]
        return out

    def export(self) -> Dict[str, Dict[str, Any]]:
        return {f: b.to_dict() for f, b in self.features_.items()}

    def __getitem__(self, feature: str) -> FeatureBinning:
        if feature not in self.features_:
            raise KeyError(f"Feature '{feature}' not found in binning map.")
        return self.features_[feature]

    def __contains__(self, feature: str) -> bool:
        return feature in self.features_

    def __len__(self) -> int:
        return len(self.features_)

    def __iter__(self) -> Iterator[str]:
        return iter(self.features_)
