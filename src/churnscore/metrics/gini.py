from typing import Union

from .auc import ArrayLike, calculate_auc


def gini_from_auc(auc: float) -> float:
    """Gini = 2 * AUC - 1. nan stays nan."""
    return 2 * auc - 1


def calculate_gini(
    y_true: ArrayLike,
    y_prob: ArrayLike,
    sample_weight: Union[ArrayLike, None] = None,
) -> float:
    """Gini coefficient of churn probabilities, derived from their AUC."""
    return gini_from_auc(calculate_auc(y_true, y_prob, sample_weight=sample_weight))
