"""
Decision threshold search.

The threshold maximizing F1 is found over the distinct predicted
probabilities together with a fixed grid on [0, 1]. A row is predicted
positive when its probability is >= the threshold.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Union

import numpy as np

from churnscore.config import EVALUATION


@dataclass
class ThresholdResult:
    """Best-F1 threshold and the scores reached at it."""

    threshold: float
    f1_score: float
    precision: float
    recall: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def threshold_candidates(
    y_prob: np.ndarray, grid_size: int = EVALUATION.DEFAULT_THRESHOLD_GRID_SIZE
) -> np.ndarray:
    """Sorted union of the distinct probabilities and a ``grid_size`` point grid on [0, 1]."""
    return np.union1d(np.unique(y_prob), np.linspace(0.0, 1.0, grid_size))


def find_best_f1_threshold(
    y_true: Union[np.ndarray, list],
    y_prob: Union[np.ndarray, list],
    grid_size: int = EVALUATION.DEFAULT_THRESHOLD_GRID_SIZE,
) -> ThresholdResult:
    """
    Find the decision threshold with the highest F1 score.

    Ties go to the lowest threshold.

    Args:
        y_true: True binary labels (1 = churn).
        y_prob: Predicted probabilities of the positive class.
        grid_size: Number of points of the fixed grid on [0, 1].

    Returns:
        ThresholdResult with threshold, F1, precision and recall.

    Raises:
        ValueError: lengths differ, inputs are empty or contain NaN.
    """
    y_true = np.asarray(y_true, dtype=int).ravel()
    y_prob = np.asarray(y_prob, dtype=float).ravel()

    if len(y_true) != len(y_prob):
        raise ValueError("y_true and y_prob must have the same length")
    if len(y_true) == 0:
        raise ValueError("Cannot search a threshold on empty inputs")
    if np.isnan(y_prob).any():
        raise ValueError("y_prob contains NaN")

    candidates = threshold_candidates(y_prob, grid_size)

    # Positives among rows with probability >= t, for every candidate t
    order = np.argsort(y_prob, kind="mergesort")
    prob_sorted = y_prob[order]
    pos_suffix = np.append(np.cumsum(y_true[order][::-1])[::-1], 0)

    n = len(y_true)
    total_pos = y_true.sum()
    first_idx = np.searchsorted(prob_sorted, candidates, side="left")

    tp = pos_suffix[first_idx].astype(float)
    predicted_pos = (n - first_idx).astype(float)
    fp = predicted_pos - tp
    fn = total_pos - tp

    denom = 2 * tp + fp + fn
    f1 = np.divide(2 * tp, denom, out=np.zeros_like(tp), where=denom > 0)
    precision = np.divide(tp, predicted_pos, out=np.zeros_like(tp), where=predicted_pos > 0)
    recall = np.divide(tp, float(total_pos), out=np.zeros_like(tp), where=total_pos > 0)

    best = int(np.argmax(f1))
    return ThresholdResult(
        threshold=float(candidates[best]),
        f1_score=float(f1[best]),
        precision=float(precision[best]),
        recall=float(recall[best]),
    )
