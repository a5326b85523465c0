from typing import Any, Dict, List

import numpy as np
import pandas as pd

from churnscore.config import BINNING
from churnscore.utils.decorators import requires_fit

from .base import BaseBinner, Segment


class ChiMergeBinner(BaseBinner):
    """
    Bins continuous data using ChiMerge on quantile pre-bins.

    Fine segments are the distinct values, or ``initial_bins`` quantile
    groups when there are more distinct values than that. Bins are
    right-closed intervals ``(s_i, s_{i+1}]`` with ``-inf``/``inf`` at the
    ends, so any future value has a bin.
    """

    def __init__(self, initial_bins: int = BINNING.DEFAULT_INITIAL_BINS, **kwargs):
        super().__init__(**kwargs)
        self.initial_bins = initial_bins
        self.splits_: List[float] = []

    def _initial_segments(self, X: pd.Series, y: pd.Series) -> List[Segment]:
        values = X.to_numpy(dtype=float)
        unique_vals = np.unique(values)

        if len(unique_vals) > self.initial_bins:
            quantiles = np.linspace(0, 1, self.initial_bins + 1)[1:-1]
            edges = np.unique(np.quantile(values, quantiles))
        else:
            edges = unique_vals[:-1]

        # x <= edges[0] -> 0, edges[0] < x <= edges[1] -> 1, ...
        codes = np.searchsorted(edges, values, side="left")

        df = pd.DataFrame({"code": codes, "x": values, "y": y.to_numpy()})
        grouped = df.groupby("code").agg(
            low=("x", "min"),
            high=("x", "max"),
            total=("y", "size"),
            events=("y", "sum"),
        )

        return [
            Segment(
                members=[(row.low, row.high)],
                total=int(row.total),
                events=int(row.events),
                low=float(row.low),
                high=float(row.high),
            )
            for row in grouped.itertuples()
        ]

    def _store_segments(self, segments: List[Segment]) -> None:
        # Midway between the largest value of one bin and the smallest of the next
        self.splits_ = [
            (segments[i].high + segments[i + 1].low) / 2 for i in range(len(segments) - 1)
        ]

    @requires_fit()
    def transform(self, X: pd.Series) -> pd.Series:
        bins = [-np.inf] + self.splits_ + [np.inf]
        codes = pd.cut(X.astype(float), bins=bins, labels=False, include_lowest=True)
        return pd.Series(codes, index=X.index, dtype=float)


class CategoricalChiMergeBinner(BaseBinner):
    """
    Groups categories with ChiMerge.

    Categories are ordered by event rate (ties by their string form) and
    adjacent groups in that order are merged, so groups stay ordered by risk.
    Monotonicity holds by construction.
    """

    def __init__(self, **kwargs):
        kwargs["monotonic"] = False
        super().__init__(**kwargs)
        self.groups_: List[List[Any]] = []
        self.category_map_: Dict[Any, int] = {}

    def _initial_segments(self, X: pd.Series, y: pd.Series) -> List[Segment]:
        df = pd.DataFrame({"x": X.to_numpy(dtype=object), "y": y.to_numpy()})
        grouped = df.groupby("x")["y"].agg(total="size", events="sum").reset_index()
        grouped["rate"] = grouped["events"] / grouped["total"]
        grouped["key"] = grouped["x"].astype(str)
        grouped = grouped.sort_values(["rate", "key"], kind="mergesort")

        return [
            Segment(members=[row.x], total=int(row.total), events=int(row.events))
            for row in grouped.itertuples()
        ]

    def _store_segments(self, segments: List[Segment]) -> None:
        self.groups_ = [list(s.members) for s in segments]
        self.category_map_ = {
            category: idx for idx, group in enumerate(self.groups_) for category in group
        }

    @requires_fit()
    def transform(self, X: pd.Series) -> pd.Series:
        """Group index per value; NaN for missing or unseen categories."""
        codes = X.astype(object).map(self.category_map_)
        return pd.Series(codes, index=X.index, dtype=float)
