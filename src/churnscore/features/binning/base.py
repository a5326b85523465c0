from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

import numpy as np
import pandas as pd
from scipy import stats

from churnscore.config import BINNING
from churnscore.exceptions import BinningConstraintError, DegenerateFeatureError


@dataclass
class Segment:
    """A run of adjacent fine bins: numeric value range or a category group."""

    members: List[Any]
    total: int
    events: int
    low: float = np.nan
    high: float = np.nan

    @property
    def event_rate(self) -> float:
        return self.events / self.total if self.total else 0.0

    def merge(self, other: "Segment") -> "Segment":
        return Segment(
            members=self.members + other.members,
            total=self.total + other.total,
            events=self.events + other.events,
            low=np.fmin(self.low, other.low),
            high=np.fmax(self.high, other.high),
        )


class BaseBinner(ABC):
    """
    Base class for supervised merge binning of one feature.

    Starts from fine segments (provided by subclasses) and merges adjacent
    segments until:

    1. there are at most ``max_bins`` segments and every adjacent pair is
       significantly different (chi-square at ``alpha``), never going below
       ``min_bins``;
    2. every segment holds at least ``min_bin_size`` of the rows;
    3. optionally, event rates are monotonic (kept only while it does not
       drop below ``min_bins``).

    Missing values are not binned here; callers route them to a dedicated bin.
    """

    def __init__(
        self,
        max_bins: int = BINNING.DEFAULT_MAX_BINS,
        min_bins: int = BINNING.DEFAULT_MIN_BINS,
        min_bin_size: float = BINNING.DEFAULT_MIN_BIN_SIZE,
        alpha: float = BINNING.DEFAULT_CHI_ALPHA,
        monotonic: bool = BINNING.DEFAULT_MONOTONIC,
        **kwargs,
    ):
        if min_bins < 1 or max_bins < min_bins:
            raise ValueError("Require 1 <= min_bins <= max_bins")
        self.max_bins = max_bins
        self.min_bins = min_bins
        self.min_bin_size = min_bin_size
        self.alpha = alpha
        self.monotonic = monotonic
        self.segments_: List[Segment] = []
        self.is_fitted_ = False

    @abstractmethod
    def _initial_segments(self, X: pd.Series, y: pd.Series) -> List[Segment]:
        """Build the fine-grained starting segments in merge order."""
        pass

    @abstractmethod
    def _store_segments(self, segments: List[Segment]) -> None:
        """Persist whatever transform() needs from the final segments."""
        pass

    @abstractmethod
    def transform(self, X: pd.Series) -> pd.Series:
        """Bin index per value (float, NaN where no bin applies)."""
        pass

    def fit(self, X: pd.Series, y: pd.Series) -> "BaseBinner":
        """
        Fit the binner on non-missing ``X`` against binary ``y``.
        """
        if y is None:
            raise ValueError(f"{self.__class__.__name__} requires target 'y'.")

        mask = X.notna() & y.notna()
        X = X[mask]
        y = y[mask].astype(int)
        name = str(X.name) if X.name is not None else None

        if X.nunique() < 2:
            raise DegenerateFeatureError(
                name or "<unnamed>",
                f"Feature '{name}' has fewer than two distinct non-missing values",
            )

        segments = self._initial_segments(X, y)
        segments = self._merge_segments(segments, n_total=len(X))

        if len(segments) < self.min_bins:
            raise BinningConstraintError(name, len(segments), self.min_bins)

        self.segments_ = segments
        self._store_segments(segments)
        self.is_fitted_ = True
        return self

    def _min_count(self, n_total: int) -> int:
        if self.min_bin_size < 1:
            return int(np.ceil(self.min_bin_size * n_total))
        return int(self.min_bin_size)

    def _merge_segments(self, segments: List[Segment], n_total: int) -> List[Segment]:
        threshold = stats.chi2.ppf(1 - self.alpha, 1)

        # 1. ChiMerge down to max_bins, then while neighbours are indistinguishable
        while len(segments) > self.min_bins:
            chi_squares = self._compute_chi_squares(segments)
            idx = int(np.argmin(chi_squares))
            if len(segments) <= self.max_bins and chi_squares[idx] >= threshold:
                break
            segments = self._merge_at(segments, idx)

        # 2. Minimum bin size; may go below min_bins, which fit() rejects
        min_count = self._min_count(n_total)
        while len(segments) > 1:
            sizes = np.array([s.total for s in segments])
            small = int(np.argmin(sizes))
            if sizes[small] >= min_count:
                break
            segments = self._merge_at(segments, self._neighbour_pair(segments, small))

        # 3. Monotonic event rate
        if self.monotonic:
            segments = self._adjust_monotonicity(segments)

        return segments

    def _neighbour_pair(self, segments: List[Segment], idx: int) -> int:
        """Left index of the pair to merge segment ``idx`` into (most similar neighbour)."""
        if idx == 0:
            return 0
        if idx == len(segments) - 1:
            return idx - 1
        chi_squares = self._compute_chi_squares(segments)
        return idx - 1 if chi_squares[idx - 1] <= chi_squares[idx] else idx

    def _adjust_monotonicity(self, segments: List[Segment]) -> List[Segment]:
        """
        Merge the first adjacent violator until event rates are monotonic.

        Direction follows the end points (rising if the last rate exceeds the
        first). Stops at ``min_bins``, leaving a non-monotonic result rather
        than an unusable feature.
        """
        while len(segments) > self.min_bins:
            rates = np.array([s.event_rate for s in segments])
            diffs = np.diff(rates)
            if np.all(diffs >= 0) or np.all(diffs <= 0):
                break

            direction = 1 if rates[-1] > rates[0] else -1
            violations = np.where(diffs * direction < 0)[0]
            if len(violations) == 0:
                break
            segments = self._merge_at(segments, int(violations[0]))

        return segments

    @staticmethod
    def _compute_chi_squares(segments: List[Segment]) -> np.ndarray:
        """Yates-corrected 2x2 chi-square of each adjacent pair."""
        if len(segments) < 2:
            return np.array([])

        n = np.array([s.total for s in segments], dtype=float)
        e = np.array([s.events for s in segments], dtype=float)
        n1, n2 = n[:-1], n[1:]
        e1, e2 = e[:-1], e[1:]

        total_n = n1 + n2
        total_e = e1 + e2
        total_ne = total_n - total_e

        # Add eps to avoid div by zero
        e1_expected = np.maximum(n1 * total_e / total_n, 1e-9)
        e2_expected = np.maximum(n2 * total_e / total_n, 1e-9)
        ne1_expected = np.maximum(n1 * total_ne / total_n, 1e-9)
        ne2_expected = np.maximum(n2 * total_ne / total_n, 1e-9)

        def term(observed, expected):
            return np.maximum(np.abs(observed - expected) - 0.5, 0.0) ** 2 / expected

        return (
            term(e1, e1_expected)
            + term(e2, e2_expected)
            + term(n1 - e1, ne1_expected)
            + term(n2 - e2, ne2_expected)
        )

    @staticmethod
    def _merge_at(segments: List[Segment], idx: int) -> List[Segment]:
        merged = segments[idx].merge(segments[idx + 1])
        return segments[:idx] + [merged] + segments[idx + 2 :]

    @property
    def n_bins_(self) -> int:
        return len(self.segments_)

