"""Ranking quality of churn scores."""

import warnings
from typing import Union

import numpy as np
from sklearn.metrics import roc_auc_score

ArrayLike = Union[np.ndarray, list]


def calculate_auc(
    y_true: ArrayLike,
    y_prob: ArrayLike,
    sample_weight: Union[ArrayLike, None] = None,
) -> float:
    """
    Area under the ROC curve of churn probabilities.

    Parameters
    ----------
    y_true : array-like
        Observed churn flags (1 = churned).
    y_prob : array-like
        Predicted churn probabilities.
    sample_weight : array-like, optional
        Row weights.

    Returns
    -------
    float
        AUC, or nan with a warning when it is undefined, e.g. a partition
        holding a single class.
    """
    try:
        return float(roc_auc_score(y_true, y_prob, sample_weight=sample_weight))
    except ValueError as e:
        warnings.warn(f"AUC undefined: {e}", stacklevel=2)
        return np.nan
