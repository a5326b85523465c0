"""
Logistic Regression model wrapper using statsmodels.

Provides a scikit-learn-like interface for statsmodels Logit, with
coefficient significance made explicit for collinear designs and kept
finite under separation through a Firth refit.
"""

import logging
import warnings
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.special import expit
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    HessianInversionWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from churnscore.config import MODELING
from churnscore.exceptions import ConfigurationError, ModelFitError
from churnscore.utils.decorators import requires_fit

from .firth import firth_logit

logger = logging.getLogger(__name__)

_COEF_COLUMNS = [
    "feature",
    "coefficient",
    "std_error",
    "z_value",
    "p_value",
    "ci_lower",
    "ci_upper",
    "odds_ratio",
]


def independent_columns(design: pd.DataFrame) -> List[str]:
    """
    Columns of ``design`` that are not linear combinations of earlier ones.

    Columns are scanned left to right and kept only if they raise the rank
    of the kept set, so of two identical columns the first one survives.
    """
    values = design.to_numpy(dtype=float)
    kept: List[int] = []
    rank = 0
    for j in range(values.shape[1]):
        new_rank = np.linalg.matrix_rank(values[:, kept + [j]])
        if new_rank > rank:
            kept.append(j)
            rank = new_rank
    return [design.columns[j] for j in kept]


def separating_columns(design: pd.DataFrame, y: pd.Series) -> List[str]:
    """
    Non-constant columns that split the classes on their own.

    A column separates when every value of one class is at most every value
    of the other (complete or quasi-complete separation); the logistic MLE
    then does not exist.
    """
    y = np.asarray(y, dtype=float)
    separating = []
    for col in design.columns:
        values = design[col].to_numpy(dtype=float)
        if np.ptp(values) == 0:
            continue
        neg, pos = values[y == 0], values[y == 1]
        if neg.max() <= pos.min() or pos.max() <= neg.min():
            separating.append(col)
    return separating


class LogisticModel:
    """
    Logistic Regression model wrapper using statsmodels.

    Provides a familiar fit/predict interface while leveraging statsmodels
    for detailed statistical output (p-values, confidence intervals, etc.).

    Design columns that are linearly dependent on earlier columns are left
    out of the fit and reported with undefined (NaN) coefficient and
    p-value, so collinearity is never silently absorbed.

    Under separation the unpenalized MLE does not exist. The model is then
    refitted with Firth penalized likelihood (``estimator_ == "firth"``),
    whose finite estimates and Wald p-values replace the statsmodels ones.

    Examples
    --------
    >>> model = LogisticModel()
    >>> model.fit(X_woe, y)
    >>> print(model.summary())
    >>> predictions = model.predict_proba(X_woe)
    """

    def __init__(
        self,
        fit_intercept: bool = True,
        method: str = MODELING.DEFAULT_METHOD,
        maxiter: int = MODELING.DEFAULT_MAXITER,
        regularization: Optional[str] = None,
        alpha: float = 0.0,
        **kwargs,
    ):
        """
        Initialize LogisticModel.

        Parameters
        ----------
        fit_intercept : bool
            Whether to fit an intercept term. Default True.
        method : str
            Optimization method for statsmodels. Default 'bfgs'.
            Options: 'newton', 'bfgs', 'lbfgs', 'powell', 'cg', 'ncg'.
        maxiter : int
            Maximum iterations for optimization. Default 100.
        regularization : str, optional
            Regularization type: only 'l1' is supported. Default None.
            Regularized fits carry no standard errors or p-values.
        alpha : float
            Regularization strength. Default 0.0.
        **kwargs
            Additional arguments passed to statsmodels fit method.
        """
        if regularization not in (None, "l1"):
            raise ConfigurationError(
                f"Unsupported regularization '{regularization}'",
                details={"supported": [None, "l1"]},
            )

        self.fit_intercept = fit_intercept
        self.method = method
        self.maxiter = maxiter
        self.regularization = regularization
        self.alpha = alpha
        self.extra_kwargs = kwargs

        # Fitted attributes
        self.model_ = None
        self.result_ = None
        self.feature_names_: list = []
        self.active_columns_: list = []
        self.dependent_features_: list = []
        self.coefficients_: pd.DataFrame = pd.DataFrame(columns=_COEF_COLUMNS)
        self.converged_: bool = False
        self.fit_warnings_: List[str] = []
        self.separation_: bool = False
        self.separating_features_: List[str] = []
        self.estimator_: str = "mle"
        self.is_fitted_: bool = False

        # Filled in by ModelEngine
        self.train_auc_: float = np.nan
        self.valid_auc_: float = np.nan
        self.cv_auc_: float = np.nan

    def _design(self, X: pd.DataFrame) -> pd.DataFrame:
        X = X[self.feature_names_].astype(float)
        if self.fit_intercept:
            X = sm.add_constant(X, has_constant="add")
        return X

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        sample_weight: Optional[np.ndarray] = None,
    ) -> "LogisticModel":
        """
        Fit the logistic regression model.

        Parameters
        ----------
        X : pd.DataFrame
            Feature data (typically WOE transformed).
        y : pd.Series
            Binary target variable (0/1).
        sample_weight : np.ndarray, optional
            Sample weights. Fitted as frequency weights of a binomial GLM,
            since statsmodels Logit takes no weights.

        Returns
        -------
        LogisticModel
            Fitted instance.

        Raises
        ------
        ModelFitError
            The optimizer failed outright.
        """
        if X.isna().any().any():
            raise ModelFitError(
                "Design matrix contains missing values",
                details={"columns": X.columns[X.isna().any()].tolist()},
            )

        self.feature_names_ = X.columns.tolist()
        design = self._design(X)
        y = pd.Series(np.asarray(y, dtype=float), index=design.index)

        self.active_columns_ = independent_columns(design)
        self.dependent_features_ = [
            c for c in design.columns if c not in self.active_columns_
        ]
        if self.dependent_features_:
            logger.info(
                "Collinear column(s) left out of the fit: %s", self.dependent_features_
            )

        exog = design[self.active_columns_]

        # Build model
        if sample_weight is not None:
            self.model_ = sm.GLM(
                y,
                exog,
                family=sm.families.Binomial(),
                freq_weights=np.asarray(sample_weight, dtype=float),
            )
        else:
            self.model_ = sm.Logit(y, exog)

        self.separating_features_ = separating_columns(exog, y)
        self.separation_ = bool(self.separating_features_)
        self.estimator_ = "mle"
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                self.result_ = self._fit_result()
            except PerfectSeparationError:
                self.result_ = None
                self.separation_ = True
            except (np.linalg.LinAlgError, ValueError) as e:
                if self.separation_ and self.regularization is None:
                    self.result_ = None
                else:
                    raise ModelFitError(
                        "Logistic regression fit failed",
                        details={"features": self.feature_names_},
                        cause=e,
                    ) from e

        relevant = (ConvergenceWarning, HessianInversionWarning, PerfectSeparationWarning)
        self.fit_warnings_ = [
            str(w.message) for w in caught if issubclass(w.category, relevant)
        ]
        for message in self.fit_warnings_:
            logger.warning("Logistic fit: %s", message)

        if any("separation" in m.lower() for m in self.fit_warnings_):
            self.separation_ = True

        if self.separation_ and self.regularization is None:
            # MLE does not exist; significance comes from the penalized fit
            logger.info(
                "Separation detected (%s), refitting with Firth penalized likelihood",
                self.separating_features_ or "multivariate",
            )
            estimates = self._firth_estimates(exog, y, sample_weight)
        elif self.result_ is None:
            raise ModelFitError(
                "Regularized fit failed under perfect separation",
                details={"features": self.feature_names_},
            )
        else:
            self.converged_ = self._converged()
            estimates = self._statsmodels_estimates()

        self._extract_coefficients(design.columns.tolist(), estimates)

        self.is_fitted_ = True
        return self

    def _firth_estimates(
        self, exog: pd.DataFrame, y: pd.Series, sample_weight: Optional[np.ndarray]
    ) -> Dict[str, np.ndarray]:
        try:
            estimates = firth_logit(exog, y, weights=sample_weight, maxiter=self.maxiter)
        except np.linalg.LinAlgError as e:
            raise ModelFitError(
                "Firth logistic regression fit failed",
                details={"features": self.feature_names_},
                cause=e,
            ) from e
        self.estimator_ = "firth"
        self.converged_ = bool(estimates.pop("converged"))
        estimates.pop("n_iter")
        return estimates

    def _statsmodels_estimates(self) -> Dict[str, np.ndarray]:
        estimates = {"coefficient": np.asarray(self.result_.params, dtype=float)}
        if self.regularization is None:
            conf_int = np.asarray(self.result_.conf_int())
            estimates.update(
                std_error=np.asarray(self.result_.bse),
                z_value=np.asarray(self.result_.tvalues),
                p_value=np.asarray(self.result_.pvalues),
                ci_lower=conf_int[:, 0],
                ci_upper=conf_int[:, 1],
            )
        return estimates

    def _fit_result(self):
        if self.regularization == "l1":
            if isinstance(self.model_, sm.GLM):
                return self.model_.fit_regularized(
                    method="elastic_net", alpha=self.alpha, L1_wt=1.0
                )
            return self.model_.fit_regularized(method="l1", alpha=self.alpha, disp=False)

        if isinstance(self.model_, sm.GLM):
            return self.model_.fit(maxiter=self.maxiter)

        fit_kwargs = {
            "method": self.method,
            "maxiter": self.maxiter,
            "disp": False,
            **self.extra_kwargs,
        }
        return self.model_.fit(**fit_kwargs)

    def _converged(self) -> bool:
        if any("separation" in m.lower() for m in self.fit_warnings_):
            return False
        retvals = getattr(self.result_, "mle_retvals", None)
        if retvals is not None and "converged" in retvals:
            return bool(retvals["converged"])
        return bool(getattr(self.result_, "converged", True))

    def _extract_coefficients(self, columns: List[str], estimates: Dict[str, np.ndarray]):
        """Extract coefficients into a DataFrame, one row per design column."""
        coef_df = pd.DataFrame({"feature": columns})
        for name in ("coefficient", "std_error", "z_value", "p_value", "ci_lower", "ci_upper"):
            if name in estimates:
                values = pd.Series(np.asarray(estimates[name]), index=self.active_columns_)
                coef_df[name] = values.reindex(columns).values
            else:
                coef_df[name] = np.nan

        # Add odds ratio
        coef_df["odds_ratio"] = np.exp(coef_df["coefficient"])

        self.coefficients_ = coef_df[_COEF_COLUMNS]

    @requires_fit()
    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict probability of positive class.

        Parameters
        ----------
        X : pd.DataFrame
            Feature data.

        Returns
        -------
        np.ndarray
            Predicted probabilities for positive class.
        """
        design = self._design(X)[self.active_columns_].to_numpy()
        params = self.coefficients_.set_index("feature").loc[self.active_columns_, "coefficient"]
        return expit(design @ params.to_numpy())

    def predict(
        self,
        X: pd.DataFrame,
        threshold: float = 0.5,
    ) -> np.ndarray:
        """
        Predict class labels.

        Parameters
        ----------
        X : pd.DataFrame
            Feature data.
        threshold : float
            Classification threshold. Default 0.5.

        Returns
        -------
        np.ndarray
            Predicted class labels (0 or 1).
        """
        proba = self.predict_proba(X)
        return (proba >= threshold).astype(int)

    @requires_fit()
    def summary(self) -> str:
        """
        Get model summary.

        The statsmodels summary, or the coefficient table when the
        coefficients come from the Firth refit.

        Returns
        -------
        str
            Model summary as string.
        """
        if self.estimator_ == "firth":
            lines = [
                "Firth penalized logistic regression",
                f"Separating features: {self.separating_features_ or 'multivariate'}",
                f"Converged: {self.converged_}",
                self.coefficients_.to_string(index=False),
            ]
            return "\n".join(lines)
        return self.result_.summary().as_text()

    @requires_fit()
    def get_coefficients(self) -> pd.DataFrame:
        """
        Get coefficients DataFrame.

        Returns
        -------
        pd.DataFrame
            DataFrame with coefficient details.
        """
        return self.coefficients_.copy()

    @requires_fit()
    def p_values(self) -> pd.Series:
        """P-value per feature, intercept excluded. NaN means undefined."""
        coef = self.coefficients_[self.coefficients_["feature"] != "const"]
        return pd.Series(coef["p_value"].values, index=coef["feature"].values, name="p_value")

    @requires_fit()
    def get_significant_features(
        self,
        p_threshold: float = MODELING.DEFAULT_P_THRESHOLD,
    ) -> pd.DataFrame:
        """
        Get features with p-value below threshold.

        Parameters
        ----------
        p_threshold : float
            P-value threshold. Default 0.05.

        Returns
        -------
        pd.DataFrame
            Significant coefficients.
        """
        coef = self.get_coefficients()
        return coef[coef["p_value"] < p_threshold]

    @requires_fit()
    def feature_importance(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Rank features by standardized coefficient ``|coef| * std(x)``.

        Parameters
        ----------
        X : pd.DataFrame
            WoE data the model was trained on.

        Returns
        -------
        pd.DataFrame
            Columns feature, coefficient, std, importance; most important first.
        """
        coef = self.coefficients_.set_index("feature")["coefficient"]
        records = []
        for feature in self.feature_names_:
            std = float(X[feature].std(ddof=0))
            value = coef.get(feature, np.nan)
            records.append(
                {
                    "feature": feature,
                    "coefficient": value,
                    "std": std,
                    "importance": abs(value) * std,
                }
            )
        if not records:
            return pd.DataFrame(columns=["feature", "coefficient", "std", "importance"])
        return (
            pd.DataFrame(records)
            .sort_values("importance", ascending=False, kind="mergesort")
            .reset_index(drop=True)
        )

    @requires_fit()
    def to_dict(self) -> Dict[str, Any]:
        """
        Export model parameters as dictionary.

        Returns
        -------
        Dict
            Model parameters including coefficients and p-values.
        """
        rows = self.coefficients_.set_index("feature")
        return {
            "intercept": (
                float(rows.loc["const", "coefficient"]) if self.fit_intercept else 0.0
            ),
            "coefficients": {
                f: float(rows.loc[f, "coefficient"]) for f in self.feature_names_
            },
            "p_values": {f: float(rows.loc[f, "p_value"]) for f in self.feature_names_},
            "feature_names": self.feature_names_,
            "converged": self.converged_,
            "estimator": self.estimator_,
        }
