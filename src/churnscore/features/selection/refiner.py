"""
Backward significance pruning of a logistic model.

Refits the model, removes the least significant feature and repeats until
every remaining feature is significant.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from churnscore.config import MODELING
from churnscore.exceptions import ConfigurationError, RefinementNonTermination
from churnscore.modeling import FitOptions, LogisticModel, ModelEngine
from churnscore.utils.decorators import requires_fit

logger = logging.getLogger(__name__)


class SignificanceRefiner:
    """
    Iterative p-value pruning over a shrinking feature set.

    Each iteration fits a logistic model through the engine, reads the
    p-values of the features (intercept excluded) rounded to ``decimals``
    and removes the worst one:

    - an undefined (NaN) p-value is always worst, the first such feature in
      lexical order goes first;
    - otherwise the highest rounded p-value at or above ``p_threshold``,
      ties broken by lexical order.

    The loop stops when no feature qualifies. It raises
    :class:`RefinementNonTermination` instead of removing the last
    feature, or when more than ``max_iter`` removals would be needed.

    Examples
    --------
    >>> with ModelEngine() as engine:
    ...     refiner = SignificanceRefiner(engine).fit(X_woe, y)
    >>> refiner.selected_features_
    >>> refiner.report()
    """

    def __init__(
        self,
        engine: ModelEngine,
        p_threshold: float = MODELING.DEFAULT_P_THRESHOLD,
        max_iter: Optional[int] = None,
        decimals: int = MODELING.DEFAULT_P_VALUE_DECIMALS,
        fit_options: Optional[FitOptions] = None,
    ):
        """
        Initialize SignificanceRefiner.

        Parameters
        ----------
        engine : ModelEngine
            Engine used for every refit.
        p_threshold : float
            Features need a rounded p-value below this to stay. Default 0.05.
        max_iter : int, optional
            Maximum number of removals. Defaults to the initial feature count.
        decimals : int
            Rounding applied to p-values before comparison. Default 3.
        fit_options : FitOptions, optional
            Options for every refit. Must request p-values.
        """
        if fit_options is not None and not fit_options.compute_p_values:
            raise ConfigurationError("Refinement requires fit options with p-values")
        if max_iter is not None and max_iter < 0:
            raise ConfigurationError("max_iter must be non-negative", details={"max_iter": max_iter})

        self.engine = engine
        self.p_threshold = p_threshold
        self.max_iter = max_iter
        self.decimals = decimals
        self.fit_options = fit_options

        # Fitted attributes
        self.initial_features_: List[str] = []
        self.selected_features_: List[str] = []
        self.removed_features_: List[str] = []
        self.history_: List[Dict] = []
        self.model_: Optional[LogisticModel] = None
        self.p_values_: pd.Series = pd.Series(dtype=float)
        self.n_iter_: int = 0
        self.is_fitted_: bool = False

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        X_valid: Optional[pd.DataFrame] = None,
        y_valid: Optional[pd.Series] = None,
    ) -> "SignificanceRefiner":
        """
        Run the pruning loop.

        Parameters
        ----------
        X : pd.DataFrame
            WoE features; every column is a candidate.
        y : pd.Series
            Binary target (1 = churn).
        X_valid, y_valid : optional
            Validation data passed through to the engine for reporting.

        Returns
        -------
        SignificanceRefiner
            Fitted instance.

        Raises
        ------
        RefinementNonTermination
            No features, the iteration cap was hit, or the last feature
            would have to be removed.
        """
        features = X.columns.tolist()
        if not features:
            raise RefinementNonTermination("No features to refine")

        cap = self.max_iter if self.max_iter is not None else len(features)
        self.initial_features_ = list(features)
        self.history_ = []
        removed: List[str] = []
        iteration = 0

        logger.info("Significance refinement started with %d feature(s)", len(features))

        while True:
            model = self.engine.fit_logistic(
                X[features],
                y,
                self.fit_options,
                X_valid[features] if X_valid is not None else None,
                y_valid,
            )
            p_values = model.p_values().round(self.decimals)
            worst = self._worst_feature(p_values)

            if worst is None:
                break

            if iteration >= cap:
                raise RefinementNonTermination(
                    f"Refinement did not converge within {cap} iteration(s)",
                    details={"max_iter": cap, "remaining": list(features)},
                )
            if len(features) == 1:
                raise RefinementNonTermination(
                    f"Removing '{worst}' would leave no features",
                    details={"feature": worst, "p_value": p_values[worst]},
                )

            iteration += 1
            features.remove(worst)
            removed.append(worst)

            p_value = p_values[worst]
            self.history_.append(
                {
                    "iteration": iteration,
                    "action": "remove",
                    "feature": worst,
                    "p_value": p_value,
                    "reason": "undefined" if np.isnan(p_value) else "not significant",
                    "n_features": len(features),
                }
            )
            logger.info(
                "Iteration %d: removed '%s' (p=%s), %d feature(s) left",
                iteration,
                worst,
                "undefined" if np.isnan(p_value) else f"{p_value:.{self.decimals}f}",
                len(features),
            )

        self.selected_features_ = list(features)
        self.removed_features_ = removed
        self.model_ = model
        self.p_values_ = p_values
        self.n_iter_ = iteration
        self.is_fitted_ = True

        logger.info(
            "Significance refinement finished after %d removal(s): %s",
            iteration,
            self.selected_features_,
        )
        return self

    def _worst_feature(self, p_values: pd.Series) -> Optional[str]:
        undefined = sorted(p_values.index[p_values.isna()])
        if undefined:
            return undefined[0]

        failing = p_values[p_values >= self.p_threshold]
        if failing.empty:
            return None
        return sorted(failing.index[failing == failing.max()])[0]

    @requires_fit()
    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Keep only the retained features."""
        return X[[c for c in self.selected_features_ if c in X.columns]]

    def fit_transform(self, X: pd.DataFrame, y: pd.Series) -> pd.DataFrame:
        """Fit and transform in one step."""
        self.fit(X, y)
        return self.transform(X)

    @requires_fit()
    def report(self) -> pd.DataFrame:
        """
        Generate refinement report.

        Returns
        -------
        pd.DataFrame
            One row per removal, in order.
        """
        if not self.history_:
            return pd.DataFrame(
                columns=["iteration", "action", "feature", "p_value", "reason", "n_features"]
            )
        return pd.DataFrame(self.history_)

    @requires_fit()
    def summary(self) -> str:
        """
        Get refinement summary.

        Returns
        -------
        str
            Summary of the pruning run.
        """
        lines = [
            "=" * 50,
            "Significance Refinement Summary",
            "=" * 50,
            f"P-threshold: {self.p_threshold} (rounded to {self.decimals} decimals)",
            f"Iterations: {self.n_iter_}",
            "-" * 50,
            f"Selected features: {len(self.selected_features_)}",
            f"Removed features: {len(self.removed_features_)}",
            "-" * 50,
            "Selected:",
        ]

        for f in self.selected_features_:
            lines.append(f"  - {f} (p={self.p_values_[f]:.{self.decimals}f})")

        if self.removed_features_:
            lines.append("-" * 50)
            lines.append("Removed:")
            for row in self.history_:
                lines.append(f"  - {row['feature']} ({row['reason']})")

        lines.append("=" * 50)
        return "\n".join(lines)
