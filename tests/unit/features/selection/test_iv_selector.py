"""Unit tests for IVSelector."""

import numpy as np
import pytest

from churnscore.data.schema import FeatureSchema, FeatureType
from churnscore.features.binning import Binner
from churnscore.features.selection import IVSelector


@pytest.fixture
def fitted(churn_df, churn_schema):
    return IVSelector().fit(churn_df, churn_df["churn"], churn_schema)


class TestIVSelector:
    def test_default_init(self):
        selector = IVSelector()
        assert selector.iv_threshold == 0.02
        assert isinstance(selector.binner, Binner)
        assert not selector.is_fitted_

    def test_iv_non_negative(self, fitted, churn_schema):
        assert set(fitted.iv_dict_) == set(churn_schema.features)
        assert all(iv >= 0 for iv in fitted.iv_dict_.values())

    def test_separator_selected(self, fitted):
        assert "separator" in fitted.selected_features_
        assert fitted.selected_features_[0] == "separator"

    def test_constant_feature_zero_iv(self, fitted):
        assert fitted.iv_dict_["constant"] == 0.0
        assert "constant" in fitted.removed_features_

    def test_class_balanced_noise_removed(self, fitted):
        assert fitted.iv_dict_["channel"] == pytest.approx(0.0, abs=1e-12)
        assert "channel" in fitted.removed_features_

    def test_selected_and_removed_partition(self, fitted, churn_schema):
        selected = set(fitted.selected_features_)
        removed = set(fitted.removed_features_)
        assert selected.isdisjoint(removed)
        assert selected | removed == set(churn_schema.features)
        assert all(fitted.iv_dict_[f] > 0.02 for f in selected)
        assert all(fitted.iv_dict_[f] <= 0.02 for f in removed)

    def test_threshold_is_monotonic(self, fitted):
        previous = None
        for threshold in [0.0, 0.02, 0.05, 0.1, 0.5, 1.0, 100.0]:
            selected = set(fitted.select(threshold))
            if previous is not None:
                assert selected <= previous
            previous = selected

    def test_select_does_not_recompute(self, fitted):
        iv_before = dict(fitted.iv_dict_)
        fitted.select(0.3)
        assert fitted.iv_dict_ == iv_before
        assert fitted.iv_threshold == 0.3

    def test_binning_constraint_gives_zero_iv(self, churn_df, churn_schema):
        df = churn_df.copy()
        df["rare"] = np.where(np.arange(len(df)) < 10, 1.0, 0.0)
        schema = FeatureSchema(
            {**{f: churn_schema[f] for f in churn_schema}, "rare": FeatureType.NUMERIC},
            churn_schema.target,
        )

        selector = IVSelector().fit(df, df["churn"], schema)

        assert selector.iv_dict_["rare"] == 0.0
        assert selector.removed_features_["rare"].startswith("binning")

    def test_transform_keeps_target(self, fitted, churn_df):
        out = fitted.transform(churn_df)
        assert "churn" in out.columns
        assert "constant" not in out.columns
        assert set(fitted.selected_features_) <= set(out.columns)

    def test_report(self, fitted):
        report = fitted.report()

        assert list(report.columns) == ["feature", "iv", "status", "reason"]
        assert report["iv"].is_monotonic_decreasing
        assert set(report["status"]) == {"selected", "removed"}
        assert report.loc[report["status"] == "selected", "reason"].eq("").all()

    def test_ranking(self, fitted):
        ranking = fitted.ranking_
        assert [iv for _, iv in ranking] == sorted(fitted.iv_dict_.values(), reverse=True)

    def test_not_fitted(self, churn_df):
        with pytest.raises(ValueError, match="IVSelector is not fitted"):
            IVSelector().transform(churn_df)
