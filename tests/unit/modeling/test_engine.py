import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from churnscore.exceptions import ConfigurationError, ModelFitError
from churnscore.modeling import FitOptions, LogisticModel, ModelEngine


class TestFitOptions:
    def test_defaults(self):
        options = FitOptions()
        assert options.regularization == 0.0
        assert options.n_folds == 5
        assert options.compute_p_values
        assert options.to_dict()["method"] == "bfgs"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"regularization": -0.1},
            {"regularization": 0.5},
            {"n_folds": 1},
            {"n_folds": -2},
            {"maxiter": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            FitOptions(**kwargs)

    def test_regularized_without_p_values(self):
        options = FitOptions(regularization=0.5, compute_p_values=False)
        assert options.regularization == 0.5


class TestLifecycle:
    def test_context_manager_closes(self):
        with ModelEngine() as engine:
            assert not engine.closed
        assert engine.closed

    def test_closed_on_error(self):
        with pytest.raises(RuntimeError):
            with ModelEngine() as engine:
                raise RuntimeError("boom")
        assert engine.closed

    def test_close_is_idempotent(self):
        engine = ModelEngine()
        engine.close()
        engine.close()
        assert engine.closed

    def test_closed_engine_refuses_fits(self, logistic_data):
        X, y = logistic_data
        engine = ModelEngine()
        engine.close()
        with pytest.raises(ModelFitError, match="closed"):
            engine.fit_logistic(X, y)


class TestFitLogistic:
    def test_scores(self, logistic_data):
        X, y = logistic_data
        with ModelEngine(FitOptions(n_folds=5, seed=1)) as engine:
            model = engine.fit_logistic(X, y, X_valid=X.iloc[:200], y_valid=y.iloc[:200])

        assert isinstance(model, LogisticModel)
        assert 0.7 < model.train_auc_ <= 1.0
        assert 0.7 < model.valid_auc_ <= 1.0
        assert 0.7 < model.cv_auc_ <= 1.0
        assert model.cv_auc_ <= model.train_auc_ + 0.02
        assert engine.n_fits_ == 1

    def test_cv_disabled(self, logistic_data):
        X, y = logistic_data
        with ModelEngine(FitOptions(n_folds=0)) as engine:
            model = engine.fit_logistic(X, y)
        assert np.isnan(model.cv_auc_)
        assert np.isnan(model.valid_auc_)

    def test_cv_is_reproducible(self, logistic_data):
        X, y = logistic_data
        with ModelEngine(FitOptions(seed=3)) as engine:
            first = engine.fit_logistic(X, y).cv_auc_
            second = engine.fit_logistic(X, y).cv_auc_
        assert first == second

    def test_per_call_options_override(self, logistic_data):
        X, y = logistic_data
        with ModelEngine(FitOptions(n_folds=5)) as engine:
            model = engine.fit_logistic(X, y, FitOptions(n_folds=0))
        assert np.isnan(model.cv_auc_)

    def test_too_many_folds(self, logistic_data):
        X, y = logistic_data
        with ModelEngine(FitOptions(n_folds=len(y) + 1)) as engine:
            with pytest.raises(ConfigurationError, match="folds"):
                engine.fit_logistic(X, y)

    def test_single_class(self, logistic_data):
        X, _ = logistic_data
        with ModelEngine() as engine:
            with pytest.raises(ModelFitError, match="both classes"):
                engine.fit_logistic(X, pd.Series(np.zeros(len(X), dtype=int)))

    def test_balanced_classes(self, logistic_data):
        X, y = logistic_data
        y = y.copy()
        y[X["x3"] > 0.8] = 1
        options = FitOptions(n_folds=0, balance_classes=True)
        with ModelEngine() as engine:
            balanced = engine.fit_logistic(X, y, options)
            plain = engine.fit_logistic(X, y, FitOptions(n_folds=0))

        assert isinstance(balanced.model_, sm.GLM)
        assert balanced.predict_proba(X).mean() < plain.predict_proba(X).mean()
        assert not balanced.p_values().isna().any()

    def test_regularized_fit(self, logistic_data):
        X, y = logistic_data
        options = FitOptions(regularization=0.5, compute_p_values=False, n_folds=0)
        with ModelEngine(options) as engine:
            model = engine.fit_logistic(X, y)
        assert model.regularization == "l1"
        assert model.p_values().isna().all()
        assert model.train_auc_ > 0.7
