"""Model evaluation on held-out data."""

from churnscore.evaluation.evaluator import EvaluationResult, Evaluator

__all__ = ["EvaluationResult", "Evaluator"]
