from .auc import calculate_auc
from .gini import calculate_gini, gini_from_auc
from .threshold import ThresholdResult, find_best_f1_threshold, threshold_candidates

__all__ = [
    "calculate_auc",
    "calculate_gini",
    "gini_from_auc",
    "find_best_f1_threshold",
    "threshold_candidates",
    "ThresholdResult",
]
