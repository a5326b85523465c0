import numpy as np
import pandas as pd
import pytest

from churnscore.evaluation import EvaluationResult, Evaluator
from churnscore.exceptions import SchemaError
from churnscore.metrics import calculate_auc, find_best_f1_threshold
from churnscore.modeling import FitOptions, LogisticModel, ModelEngine


@pytest.fixture
def model_and_data(logistic_data):
    X, y = logistic_data
    train, test = X.iloc[:400], X.iloc[400:]
    with ModelEngine(FitOptions(n_folds=3)) as engine:
        model = engine.fit_logistic(train[["x1", "x2"]], y.iloc[:400])
    return model, train, y.iloc[:400], test, y.iloc[400:]


@pytest.fixture
def result(model_and_data):
    model, train, _, test, y_test = model_and_data
    return Evaluator().evaluate(model, test, y_test, X_train=train)


class TestEvaluator:
    def test_discrimination(self, result, model_and_data):
        model, _, _, test, y_test = model_and_data
        expected = calculate_auc(y_test, model.predict_proba(test))

        assert isinstance(result, EvaluationResult)
        assert result.auc == pytest.approx(expected)
        assert result.gini == pytest.approx(2 * result.auc - 1)

    def test_threshold_and_confusion(self, result, model_and_data):
        model, _, _, test, y_test = model_and_data
        best = find_best_f1_threshold(y_test, model.predict_proba(test))

        assert result.threshold == best.threshold
        assert result.f1_score == pytest.approx(best.f1_score)

        cm = result.confusion_matrix
        assert cm.sum() == len(y_test)
        assert cm[1].sum() == y_test.sum()
        assert result.precision == pytest.approx(
            result.true_positives / (result.true_positives + result.false_positives)
        )
        assert result.recall == pytest.approx(
            result.true_positives / (result.true_positives + result.false_negatives)
        )

    def test_engine_scores_carried(self, result, model_and_data):
        model = model_and_data[0]
        assert result.train_auc == model.train_auc_
        assert result.cv_auc == model.cv_auc_
        assert np.isnan(result.valid_auc)

    def test_coefficients_and_importance(self, result, model_and_data):
        model, train, _, _, _ = model_and_data

        assert result.coefficients["feature"].tolist() == ["const", "x1", "x2"]
        imp = result.feature_importance.set_index("feature")
        assert imp.loc["x1", "std"] == pytest.approx(train["x1"].std(ddof=0))

    def test_auc_table(self, result):
        table = result.auc_table()
        assert table["split"].tolist() == ["train", "cv", "test"]
        assert np.allclose(table["gini"], 2 * table["auc"] - 1)

    def test_to_dict(self, result):
        d = result.to_dict()
        assert d["true_positives"] == result.true_positives
        assert isinstance(d["coefficients"], list)
        assert d["coefficients"][0]["feature"] == "const"

    def test_model_untouched(self, model_and_data):
        model, train, _, test, y_test = model_and_data
        before = model.get_coefficients().copy()
        Evaluator().evaluate(model, test, y_test)
        pd.testing.assert_frame_equal(model.get_coefficients(), before)

    def test_missing_feature(self, model_and_data):
        model, _, _, test, y_test = model_and_data
        with pytest.raises(SchemaError) as exc:
            Evaluator().evaluate(model, test.drop(columns="x2"), y_test)
        assert exc.value.details["features"] == ["x2"]

    def test_single_class_test_set(self, model_and_data):
        model, _, _, test, _ = model_and_data
        with pytest.warns(UserWarning, match="AUC"):
            result = Evaluator().evaluate(model, test, pd.Series(np.zeros(len(test))))

        assert np.isnan(result.auc)
        assert np.isnan(result.gini)
        assert result.true_positives == 0
        assert result.false_negatives == 0
        assert result.true_negatives + result.false_positives == len(test)

    def test_custom_grid(self, model_and_data):
        model, _, _, test, y_test = model_and_data
        result = Evaluator(grid_size=11).evaluate(model, test, y_test)
        candidates = np.union1d(model.predict_proba(test), np.linspace(0, 1, 11))
        assert result.threshold in candidates
        assert result.threshold == find_best_f1_threshold(
            y_test, model.predict_proba(test), grid_size=11
        ).threshold


def test_result_without_model_scores():
    result = EvaluationResult(
        auc=0.8, gini=0.6, threshold=0.4, precision=0.5, recall=0.75, f1_score=0.6,
        true_positives=3, false_positives=3, true_negatives=10, false_negatives=1,
    )
    assert result.confusion_matrix.tolist() == [[10, 3], [1, 3]]
    assert result.coefficients.empty
    assert result.auc_table()["split"].tolist() == ["test"]
