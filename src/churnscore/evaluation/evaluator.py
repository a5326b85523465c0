"""
Held-out evaluation of the final churn model.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from churnscore.config import EVALUATION
from churnscore.exceptions import SchemaError
from churnscore.metrics import calculate_auc, find_best_f1_threshold, gini_from_auc
from churnscore.modeling import LogisticModel

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """Discrimination, best-F1 decision threshold and confusion matrix."""

    auc: float
    gini: float
    threshold: float
    precision: float
    recall: float
    f1_score: float
    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int
    train_auc: float = np.nan
    valid_auc: float = np.nan
    cv_auc: float = np.nan
    coefficients: pd.DataFrame = field(default_factory=pd.DataFrame)
    feature_importance: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def confusion_matrix(self) -> np.ndarray:
        """[[TN, FP], [FN, TP]], rows actual, columns predicted."""
        return np.array(
            [
                [self.true_negatives, self.false_positives],
                [self.false_negatives, self.true_positives],
            ]
        )

    def auc_table(self) -> pd.DataFrame:
        """
        AUC and Gini per data split, for overfitting inspection.

        Splits that were not scored, or whose AUC is undefined, are left out.
        """
        aucs = {
            split: auc
            for split, auc in [
                ("train", self.train_auc),
                ("valid", self.valid_auc),
                ("cv", self.cv_auc),
                ("test", self.auc),
            ]
            if not np.isnan(auc)
        }
        return pd.DataFrame(
            {
                "split": list(aucs),
                "auc": list(aucs.values()),
                "gini": [gini_from_auc(a) for a in aucs.values()],
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auc": self.auc,
            "gini": self.gini,
            "threshold": self.threshold,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "true_negatives": self.true_negatives,
            "false_negatives": self.false_negatives,
            "train_auc": self.train_auc,
            "valid_auc": self.valid_auc,
            "cv_auc": self.cv_auc,
            "coefficients": self.coefficients.to_dict(orient="records"),
            "feature_importance": self.feature_importance.to_dict(orient="records"),
        }


class Evaluator:
    """
    Score a fitted model on WoE-encoded test data.

    Nothing about the model is modified.

    Examples
    --------
    >>> result = Evaluator().evaluate(model, test_woe, y_test, X_train=train_woe)
    >>> result.auc, result.threshold
    >>> result.auc_table()
    """

    def __init__(self, grid_size: int = EVALUATION.DEFAULT_THRESHOLD_GRID_SIZE):
        self.grid_size = grid_size

    def evaluate(
        self,
        model: LogisticModel,
        X_test: pd.DataFrame,
        y_test: pd.Series,
        X_train: Optional[pd.DataFrame] = None,
    ) -> EvaluationResult:
        """
        Evaluate ``model`` on the test partition.

        Parameters
        ----------
        model : LogisticModel
            Final fitted model.
        X_test : pd.DataFrame
            WoE test features; must contain every model feature.
        y_test : pd.Series
            Test target (1 = churn).
        X_train : pd.DataFrame, optional
            WoE training features, used for the standardized-coefficient
            importance ranking. The test features are used when omitted.

        Returns
        -------
        EvaluationResult
        """
        missing = [f for f in model.feature_names_ if f not in X_test.columns]
        if missing:
            raise SchemaError(
                "Model features missing from test data", details={"features": missing}
            )

        y_true = np.asarray(y_test, dtype=int)
        y_prob = model.predict_proba(X_test)

        auc = calculate_auc(y_true, y_prob)
        best = find_best_f1_threshold(y_true, y_prob, grid_size=self.grid_size)
        y_pred = (y_prob >= best.threshold).astype(int)
        tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()

        result = EvaluationResult(
            auc=auc,
            gini=gini_from_auc(auc),
            threshold=best.threshold,
            precision=best.precision,
            recall=best.recall,
            f1_score=best.f1_score,
            true_positives=int(tp),
            false_positives=int(fp),
            true_negatives=int(tn),
            false_negatives=int(fn),
            train_auc=model.train_auc_,
            valid_auc=model.valid_auc_,
            cv_auc=model.cv_auc_,
            coefficients=model.get_coefficients(),
            feature_importance=model.feature_importance(
                X_train if X_train is not None else X_test
            ),
        )

        logger.info(
            "Test AUC %.4f (Gini %.4f), best F1 %.4f at threshold %.4f",
            result.auc,
            result.gini,
            result.f1_score,
            result.threshold,
        )
        return result
