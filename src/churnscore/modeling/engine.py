"""
Model engine: the boundary through which every logistic fit is made.

The engine is an explicit resource. It is created once per pipeline run,
handed to the refinement loop and closed when the run ends.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold
from sklearn.utils.class_weight import compute_sample_weight

from churnscore.config import MODELING
from churnscore.exceptions import ConfigurationError, ModelFitError
from churnscore.metrics import calculate_auc

from .logistic import LogisticModel

logger = logging.getLogger(__name__)


@dataclass
class FitOptions:
    """
    Options of a single ``fit_logistic`` call.

    Attributes
    ----------
    regularization : float
        L1 penalty strength. Must be 0 when p-values are requested.
    n_folds : int
        Cross-validation folds. 0 disables cross-validation.
    seed : int
        Seed of the fold shuffling.
    balance_classes : bool
        Weight rows inversely to their class frequency.
    compute_p_values : bool
        Whether coefficient significance is needed.
    maxiter : int
        Optimizer iteration limit.
    method : str
        statsmodels optimizer name.
    """

    regularization: float = MODELING.DEFAULT_REGULARIZATION
    n_folds: int = MODELING.DEFAULT_N_FOLDS
    seed: int = MODELING.DEFAULT_SEED
    balance_classes: bool = MODELING.DEFAULT_BALANCE_CLASSES
    compute_p_values: bool = True
    maxiter: int = MODELING.DEFAULT_MAXITER
    method: str = MODELING.DEFAULT_METHOD

    def __post_init__(self):
        if self.regularization < 0:
            raise ConfigurationError(
                "regularization must be non-negative",
                details={"regularization": self.regularization},
            )
        if self.compute_p_values and self.regularization > 0:
            raise ConfigurationError(
                "p-values require an unregularized fit",
                details={"regularization": self.regularization},
            )
        if self.n_folds < 0 or self.n_folds == 1:
            raise ConfigurationError(
                "n_folds must be 0 (disabled) or at least 2",
                details={"n_folds": self.n_folds},
            )
        if self.maxiter < 1:
            raise ConfigurationError(
                "maxiter must be positive", details={"maxiter": self.maxiter}
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ModelEngine:
    """
    Logistic regression trainer with train, validation and CV AUC.

    Use it as a context manager so it is closed deterministically; a closed
    engine refuses further fits.

    Examples
    --------
    >>> with ModelEngine(FitOptions(n_folds=5, seed=42)) as engine:
    ...     model = engine.fit_logistic(X_woe, y)
    ...     model.cv_auc_
    """

    def __init__(self, options: Optional[FitOptions] = None):
        self.options = options or FitOptions()
        self.n_fits_: int = 0
        self._closed = False
        logger.info("Model engine opened with options %s", self.options.to_dict())

    def __enter__(self) -> "ModelEngine":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Release the engine. Calling it again has no effect."""
        if not self._closed:
            self._closed = True
            logger.info("Model engine closed after %d fit(s)", self.n_fits_)

    def fit_logistic(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        options: Optional[FitOptions] = None,
        X_valid: Optional[pd.DataFrame] = None,
        y_valid: Optional[pd.Series] = None,
    ) -> LogisticModel:
        """
        Fit a logistic model and score it.

        Parameters
        ----------
        X : pd.DataFrame
            WoE features.
        y : pd.Series
            Binary target (1 = churn).
        options : FitOptions, optional
            Per-call options. Defaults to the engine's options.
        X_valid, y_valid : optional
            Validation frame, used for reporting only.

        Returns
        -------
        LogisticModel
            Fitted model with ``train_auc_``, ``valid_auc_`` and ``cv_auc_``.

        Raises
        ------
        ModelFitError
            The engine is closed, the target is not binary, or the fit failed.
        """
        if self._closed:
            raise ModelFitError("Model engine is closed")

        options = options or self.options
        y = pd.Series(np.asarray(y, dtype=int), index=X.index)

        classes = np.unique(y)
        if len(classes) != 2:
            raise ModelFitError(
                "Target must contain both classes",
                details={"classes": classes.tolist()},
            )

        model = self._fit_once(X, y, options)
        model.train_auc_ = calculate_auc(y, model.predict_proba(X))

        if X_valid is not None and y_valid is not None:
            model.valid_auc_ = calculate_auc(y_valid, model.predict_proba(X_valid))

        if options.n_folds >= 2:
            model.cv_auc_ = self._cross_validate(X, y, options)

        self.n_fits_ += 1
        logger.debug(
            "Fit #%d on %d feature(s): train AUC %.4f, valid AUC %.4f, CV AUC %.4f",
            self.n_fits_,
            X.shape[1],
            model.train_auc_,
            model.valid_auc_,
            model.cv_auc_,
        )
        return model

    def _fit_once(
        self, X: pd.DataFrame, y: pd.Series, options: FitOptions
    ) -> LogisticModel:
        weights = (
            compute_sample_weight("balanced", y) if options.balance_classes else None
        )
        model = LogisticModel(
            method=options.method,
            maxiter=options.maxiter,
            regularization="l1" if options.regularization > 0 else None,
            alpha=options.regularization,
        )
        return model.fit(X, y, sample_weight=weights)

    def _cross_validate(
        self, X: pd.DataFrame, y: pd.Series, options: FitOptions
    ) -> float:
        """AUC of the out-of-fold predictions."""
        try:
            folds = StratifiedKFold(
                n_splits=options.n_folds, shuffle=True, random_state=options.seed
            )
            splits = list(folds.split(X, y))
        except ValueError as e:
            raise ConfigurationError(
                "Cannot build cross-validation folds",
                details={"n_folds": options.n_folds},
                cause=e,
            ) from e

        oof = np.full(len(y), np.nan)
        for train_idx, test_idx in splits:
            fold_model = self._fit_once(X.iloc[train_idx], y.iloc[train_idx], options)
            oof[test_idx] = fold_model.predict_proba(X.iloc[test_idx])

        return calculate_auc(y, oof)
