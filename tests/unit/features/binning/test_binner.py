"""Unit tests for Binner and BinningMap."""

import warnings

import numpy as np
import pandas as pd
import pytest

from churnscore.data import FeatureSchema, FeatureType
from churnscore.exceptions import SchemaError, UnseenCategoryError, UnseenCategoryWarning
from churnscore.features.analysis import calculate_woe
from churnscore.features.binning import Binner, BinningMap


@pytest.fixture
def frame():
    y = np.repeat([0, 1], 100)
    num = np.repeat(np.arange(20, dtype=float), 10)
    num[:10] = np.nan  # ten non-churners without a value
    cat = np.array(["low"] * 80 + ["high"] * 20 + ["low"] * 30 + ["high"] * 70)
    return pd.DataFrame(
        {
            "num": num,
            "cat": cat,
            "flat": np.ones(200),
            "rare": np.array([0.0] * 196 + [1.0] * 4),
            "churn": y,
        }
    )


@pytest.fixture
def schema(frame):
    return FeatureSchema.infer(frame, target="churn")


@pytest.fixture
def fitted(frame, schema):
    return Binner().fit(frame, frame["churn"], schema)


class TestBinnerFit:
    def test_features_and_exclusions(self, fitted):
        assert fitted.features() == ["num", "cat"]
        assert set(fitted.excluded_) == {"flat", "rare"}
        assert "flat" not in fitted
        assert len(fitted) == 2

    def test_numeric_bins(self, fitted):
        binning = fitted["num"]

        assert binning.kind is FeatureType.NUMERIC
        assert binning.splits == [9.5]
        assert [b.label for b in binning.bins] == ["(-inf, 9.5]", "(9.5, inf]", "Missing"]
        assert [(b.positives, b.negatives) for b in binning.bins] == [(0, 90), (100, 0), (0, 10)]
        assert binning.missing_bin.is_missing

    def test_woe_values_match_counts(self, fitted):
        binning = fitted["num"]
        expected, iv = calculate_woe([0, 100, 0], [90, 0, 10])

        assert np.allclose(binning.woe_values, expected)
        assert binning.iv == pytest.approx(iv.sum())
        assert binning.bins[1].woe > 0 > binning.bins[0].woe

    def test_categorical_bins(self, fitted):
        binning = fitted["cat"]

        assert binning.kind is FeatureType.CATEGORICAL
        assert binning.category_index == {"low": 0, "high": 1}
        assert [b.label for b in binning.bins] == ["{low}", "{high}", "Missing"]
        assert binning.bins[0].categories == ("low",)
        # no missing values in training: empty missing bin with neutral WoE
        assert binning.missing_bin.total == 0
        assert binning.missing_bin.woe == 0.0

    def test_bins_partition_rows(self, fitted, frame):
        for feature in fitted:
            assert sum(b.total for b in fitted[feature].bins) == len(frame)

    def test_cols_subset(self, frame, schema):
        binner = Binner().fit(frame, frame["churn"], schema, cols=["cat"])
        assert binner.features() == ["cat"]

    def test_missing_column(self, frame, schema):
        with pytest.raises(SchemaError):
            Binner().fit(frame.drop(columns=["num"]), frame["churn"], schema)

    def test_unknown_feature(self, fitted):
        with pytest.raises(KeyError):
            fitted["flat"]


class TestBinnerTransform:
    def test_bin_indices(self, fitted, frame):
        out = fitted.transform(frame)

        assert out["num"].iloc[:10].eq(2).all()  # missing bin
        assert out["num"].iloc[10:100].eq(0).all()
        assert out["num"].iloc[100:].eq(1).all()
        assert out["flat"].equals(frame["flat"])

    def test_woe_transform(self, fitted, frame):
        out = fitted.woe_transform(frame, target="churn")

        assert list(out.columns) == ["num", "cat", "churn"]
        assert not out.isna().any().any()
        assert set(out["cat"].unique()) == set(fitted["cat"].woe_values[:2])
        assert out["churn"].equals(frame["churn"])

    def test_woe_transform_is_deterministic(self, fitted, frame):
        first = fitted.woe_transform(frame)
        second = fitted.woe_transform(frame)
        pd.testing.assert_frame_equal(first, second)

    def test_not_fitted(self, frame):
        with pytest.raises(ValueError, match="Binner is not fitted"):
            Binner().transform(frame)


class TestBinningMap:
    def test_unseen_category_goes_to_least_frequent_bin(self, fitted):
        binning = fitted["cat"]
        assert binning.fallback_bin.label == "{high}"  # 90 rows vs 110

        with pytest.warns(UnseenCategoryWarning, match="unseen"):
            woe = binning.transform(pd.Series(["low", "premium"]))

        assert woe.iloc[0] == binning.bins[0].woe
        assert woe.iloc[1] == binning.fallback_bin.woe

    def test_unseen_category_strict(self, fitted):
        with pytest.raises(UnseenCategoryError) as exc:
            fitted["cat"].transform(pd.Series(["premium"]), strict=True)

        assert isinstance(exc.value, KeyError)
        assert exc.value.category == "premium"

    def test_missing_values_use_missing_bin(self, fitted):
        binning = fitted["cat"]
        with warnings.catch_warnings():
            warnings.simplefilter("error", UnseenCategoryWarning)
            woe = binning.transform(pd.Series([None, "high"], dtype=object))

        assert woe.iloc[0] == binning.missing_bin.woe
        assert woe.iloc[1] == binning.bins[1].woe

    def test_values_outside_training_range(self, fitted):
        woe = fitted["num"].transform(pd.Series([-1e6, 1e6]))
        assert woe.tolist() == [fitted["num"].bins[0].woe, fitted["num"].bins[1].woe]

    def test_transform_missing_feature(self, fitted, frame):
        with pytest.raises(SchemaError):
            fitted.binning_map_.transform(frame.drop(columns=["cat"]))

    def test_iv_table(self, fitted):
        table = fitted.binning_map_.iv_table()

        assert list(table.columns) == ["feature", "iv", "n_bins"]
        assert table["iv"].is_monotonic_decreasing
        assert table.iloc[0]["feature"] == "num"

    def test_stats(self, fitted):
        stats = fitted["cat"].stats()

        assert list(stats["bin"]) == ["{low}", "{high}", "Missing"]
        assert stats["total"].sum() == 200
        assert stats["iv"].sum() == pytest.approx(fitted["cat"].iv)
        assert stats["ks"].between(0, 1).all()

    def test_export(self, fitted):
        exported = fitted.export()

        assert set(exported) == {"num", "cat"}
        assert exported["num"]["splits"] == [9.5]
        assert exported["cat"]["bins"][1]["categories"] == ["high"]
        assert exported["cat"]["bins"][-1]["is_missing"] is True

    def test_store_remove(self, fitted):
        binning_map = BinningMap()
        binning_map.store(fitted["num"])

        assert binning_map.features() == ["num"]
        assert binning_map.get_iv("num") == fitted["num"].iv
        assert binning_map.get_iv("cat") == 0.0

        binning_map.remove("num")
        assert len(binning_map) == 0
