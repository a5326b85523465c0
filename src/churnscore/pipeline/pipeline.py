"""
ChurnPipeline - Chainable pipeline for churn model development.

Provides a fluent API for the complete churn scoring workflow.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from churnscore.config import BINNING, EVALUATION, FILTERING, MODELING, OUTLIER, SPLIT
from churnscore.data import DataLoader, DataSplitter, FeatureSchema
from churnscore.evaluation import EvaluationResult, Evaluator
from churnscore.exceptions import ChurnScoreError
from churnscore.features.analysis import WOETransformer
from churnscore.features.binning import Binner
from churnscore.features.selection import IVSelector, SignificanceRefiner
from churnscore.modeling import FitOptions, ModelEngine
from churnscore.preprocessing import OutlierCapper

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str):
    """Tag churnscore errors raised inside with the stage name, log them and re-raise."""
    logger.info("Stage '%s' started", name)
    try:
        yield
    except ChurnScoreError as e:
        if e.stage is None:
            e.stage = name
        logger.error("Stage '%s' failed: %s", name, e)
        raise


class ChurnPipeline:
    """
    Chainable pipeline for churn model development.

    Provides a fluent API to chain together the complete workflow:
    1. Train/test split
    2. Outlier capping of numeric features
    3. Information Value filtering
    4. Supervised binning
    5. WOE transformation
    6. Significance refinement of a logistic model
    7. Evaluation on the test partition

    Every fitted step learns from the training partition only and is
    applied unchanged to the test partition.

    Examples
    --------
    >>> # Full pipeline
    >>> df, schema = DataLoader(drop_columns=["customer_id"]).load_clean("bank.csv")
    >>> with ModelEngine() as engine:
    ...     pipeline = (
    ...         ChurnPipeline(df, schema)
    ...         .split(test_size=0.3)
    ...         .cap_outliers()
    ...         .select_features(iv_threshold=0.02)
    ...         .bin(max_bins=10)
    ...         .woe_transform()
    ...         .refine(engine)
    ...         .evaluate()
    ...     )
    >>> pipeline.result_.auc

    >>> # Or in one call; the engine is opened and closed internally
    >>> result = ChurnPipeline(df, schema).run()
    """

    def __init__(self, data: pd.DataFrame, schema: FeatureSchema):
        """
        Initialize ChurnPipeline.

        Parameters
        ----------
        data : pd.DataFrame
            Cleaned dataset with a binary (0/1) target column.
        schema : FeatureSchema
            Feature types and target name, as returned by DataLoader.clean().
        """
        with _stage("validate"):
            schema.validate(data)

        self.data = data.copy()
        self.schema = schema
        self.target = schema.target

        # Step results
        self.steps_: List[str] = []
        self.splitter_: Optional[DataSplitter] = None
        self.capper_: Optional[OutlierCapper] = None
        self.selector_: Optional[IVSelector] = None
        self.binner_: Optional[Binner] = None
        self.woe_: Optional[WOETransformer] = None
        self.refiner_: Optional[SignificanceRefiner] = None
        self.result_: Optional[EvaluationResult] = None

        # Intermediate data
        self.train_: Optional[pd.DataFrame] = None
        self.test_: Optional[pd.DataFrame] = None
        self.features_: List[str] = schema.features
        self.train_woe_: Optional[pd.DataFrame] = None
        self.test_woe_: Optional[pd.DataFrame] = None

    @classmethod
    def from_csv(
        cls, path: Union[str, Path], loader: Optional[DataLoader] = None
    ) -> "ChurnPipeline":
        """Load, clean and wrap a delimited file."""
        loader = loader or DataLoader()
        with _stage("load"):
            data, schema = loader.load_clean(path)
        return cls(data, schema)

    def _require(self, step: str, attr: str, action: str):
        if getattr(self, attr) is None:
            raise ValueError(f"Must call {step}() before {action}().")

    @property
    def y_train(self) -> pd.Series:
        self._require("split", "train_", "y_train")
        return self.train_[self.target]

    @property
    def y_test(self) -> pd.Series:
        self._require("split", "test_", "y_test")
        return self.test_[self.target]

    def split(
        self,
        test_size: float = SPLIT.DEFAULT_TEST_SIZE,
        seed: int = SPLIT.DEFAULT_SEED,
        stratify: bool = SPLIT.DEFAULT_STRATIFY,
    ) -> "ChurnPipeline":
        """
        Partition the raw data into disjoint train and test sets.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        with _stage("split"):
            self.splitter_ = DataSplitter(test_size=test_size, seed=seed, stratify=stratify)
            self.train_, self.test_ = self.splitter_.split(self.data, self.target)
        self.steps_.append("split")
        return self

    def cap_outliers(self, k: float = OUTLIER.DEFAULT_IQR_MULTIPLIER) -> "ChurnPipeline":
        """
        Cap numeric features at Tukey fences learned on the training data.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("split", "train_", "cap_outliers")
        with _stage("cap_outliers"):
            self.capper_ = OutlierCapper(k=k)
            cols = [c for c in self.schema.numeric if c in self.features_]
            self.train_ = self.capper_.fit_transform(self.train_, cols)
            self.test_ = self.capper_.transform(self.test_)
        self.steps_.append("cap_outliers")
        return self

    def select_features(
        self,
        iv_threshold: float = FILTERING.DEFAULT_IV_THRESHOLD,
        **binning_kwargs,
    ) -> "ChurnPipeline":
        """
        Keep features whose IV is above ``iv_threshold``.

        Parameters
        ----------
        iv_threshold : float
            Minimum IV (exclusive). Default 0.02.
        **binning_kwargs
            Parameters of the Binner used to compute IV.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("split", "train_", "select_features")
        with _stage("select_features"):
            self.selector_ = IVSelector(
                iv_threshold=iv_threshold, binner=Binner(**binning_kwargs)
            )
            self.selector_.fit(self.train_, self.y_train, self.schema, cols=self.features_)
            self.features_ = list(self.selector_.selected_features_)
        self.steps_.append("select_features")
        return self

    def bin(
        self,
        max_bins: int = BINNING.DEFAULT_MAX_BINS,
        min_bins: int = BINNING.DEFAULT_MIN_BINS,
        min_bin_size: float = BINNING.DEFAULT_MIN_BIN_SIZE,
        **kwargs,
    ) -> "ChurnPipeline":
        """
        Fit supervised bins for the current features on the training data.

        Features that cannot be binned are dropped.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("split", "train_", "bin")
        with _stage("bin"):
            self.binner_ = Binner(
                max_bins=max_bins, min_bins=min_bins, min_bin_size=min_bin_size, **kwargs
            )
            self.binner_.fit(self.train_, self.y_train, self.schema, cols=self.features_)
            self.features_ = self.binner_.features()
        self.steps_.append("bin")
        return self

    def woe_transform(self, strict: bool = False) -> "ChurnPipeline":
        """
        Replace both partitions' features with their WOE values.

        Parameters
        ----------
        strict : bool
            Raise on unseen categories instead of using the fallback bin.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("bin", "binner_", "woe_transform")
        with _stage("woe_transform"):
            self.woe_ = WOETransformer(
                self.binner_.binning_map_, target=self.target, strict=strict
            )
            self.train_woe_ = self.woe_.transform(self.train_)
            self.test_woe_ = self.woe_.transform(self.test_)
        self.steps_.append("woe_transform")
        return self

    def refine(
        self,
        engine: Optional[ModelEngine] = None,
        p_threshold: float = MODELING.DEFAULT_P_THRESHOLD,
        max_iter: Optional[int] = None,
        fit_options: Optional[FitOptions] = None,
    ) -> "ChurnPipeline":
        """
        Prune the WOE features down to a significant logistic model.

        Parameters
        ----------
        engine : ModelEngine, optional
            Engine for every refit. When omitted a private engine is opened
            for this step and closed afterwards.
        p_threshold : float
            Significance level. Default 0.05.
        max_iter : int, optional
            Cap on removals. Defaults to the number of features.
        fit_options : FitOptions, optional
            Options of every fit.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("woe_transform", "train_woe_", "refine")
        if engine is None:
            with ModelEngine(fit_options) as private_engine:
                return self.refine(private_engine, p_threshold, max_iter, fit_options)

        with _stage("refine"):
            self.refiner_ = SignificanceRefiner(
                engine,
                p_threshold=p_threshold,
                max_iter=max_iter,
                fit_options=fit_options,
            )
            self.refiner_.fit(self.train_woe_[self.features_], self.y_train)
            self.features_ = list(self.refiner_.selected_features_)
        self.steps_.append("refine")
        return self

    def evaluate(
        self, grid_size: int = EVALUATION.DEFAULT_THRESHOLD_GRID_SIZE
    ) -> "ChurnPipeline":
        """
        Score the final model on the test partition.

        Returns
        -------
        ChurnPipeline
            Self for chaining.
        """
        self._require("refine", "refiner_", "evaluate")
        with _stage("evaluate"):
            self.result_ = Evaluator(grid_size=grid_size).evaluate(
                self.model,
                self.test_woe_,
                self.y_test,
                X_train=self.train_woe_,
            )
        self.steps_.append("evaluate")
        return self

    def run(
        self,
        fit_options: Optional[FitOptions] = None,
        test_size: float = SPLIT.DEFAULT_TEST_SIZE,
        seed: int = SPLIT.DEFAULT_SEED,
        iv_threshold: float = FILTERING.DEFAULT_IV_THRESHOLD,
        p_threshold: float = MODELING.DEFAULT_P_THRESHOLD,
    ) -> EvaluationResult:
        """
        Run every stage in order with a dedicated model engine.

        The engine is closed when the run ends, whether it succeeds or not.

        Returns
        -------
        EvaluationResult
            Test-set evaluation of the final model.
        """
        with ModelEngine(fit_options) as engine:
            (
                self.split(test_size=test_size, seed=seed)
                .cap_outliers()
                .select_features(iv_threshold=iv_threshold)
                .bin()
                .woe_transform()
                .refine(engine, p_threshold=p_threshold, fit_options=fit_options)
                .evaluate()
            )
        return self.result_

    # Convenience properties for accessing results
    @property
    def model(self) -> Any:
        """Get the final fitted model."""
        return self.refiner_.model_ if self.refiner_ is not None else None

    @property
    def binning_map(self) -> Any:
        """Get the fitted binning map."""
        return self.binner_.binning_map_ if self.binner_ is not None else None

    @property
    def selected_features(self) -> List[str]:
        """Get current selected features."""
        return list(self.features_)

    def summary(self) -> Dict[str, Any]:
        """
        Get pipeline summary.

        Returns
        -------
        Dict
            Summary of pipeline steps and results.
        """
        summary = {
            "steps": self.steps_,
            "n_features_initial": len(self.schema.features),
            "n_features_final": len(self.features_),
            "selected_features": self.selected_features,
        }

        if self.capper_ is not None:
            summary["capping_skipped"] = sorted(self.capper_.skipped_)

        if self.selector_ is not None:
            summary["iv_selected"] = len(self.selector_.selected_features_)
            summary["iv_removed"] = len(self.selector_.removed_features_)

        if self.binner_ is not None:
            summary["binning_excluded"] = sorted(self.binner_.excluded_)

        if self.refiner_ is not None:
            summary["refinement_removed"] = list(self.refiner_.removed_features_)
            summary["refinement_iterations"] = self.refiner_.n_iter_

        if self.result_ is not None:
            summary["evaluation"] = {
                k: v
                for k, v in self.result_.to_dict().items()
                if k not in ("coefficients", "feature_importance")
            }

        return summary
