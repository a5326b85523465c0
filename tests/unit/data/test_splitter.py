"""Unit tests for DataSplitter."""

import pytest

from churnscore.data import DataSplitter
from churnscore.exceptions import ConfigurationError, SchemaError


def test_split_is_disjoint_and_complete(churn_df):
    train, test = DataSplitter(test_size=0.3, seed=42).split(churn_df, "churn")

    assert len(train) == 700
    assert len(test) == 300
    assert set(train.index).isdisjoint(test.index)
    assert set(train.index) | set(test.index) == set(churn_df.index)


def test_split_is_stratified(churn_df):
    train, test = DataSplitter().split(churn_df, "churn")
    assert train["churn"].mean() == pytest.approx(0.5)
    assert test["churn"].mean() == pytest.approx(0.5)


def test_split_is_reproducible(churn_df):
    first, _ = DataSplitter(seed=1).split(churn_df, "churn")
    second, _ = DataSplitter(seed=1).split(churn_df, "churn")
    other, _ = DataSplitter(seed=2).split(churn_df, "churn")

    assert first.index.equals(second.index)
    assert not first.index.equals(other.index)


def test_split_returns_copies(churn_df):
    train, _ = DataSplitter().split(churn_df, "churn")
    train["age"] = -1
    assert (churn_df["age"] != -1).all()


@pytest.mark.parametrize("test_size", [0.0, 1.0, -0.1, 1.5])
def test_invalid_test_size(test_size):
    with pytest.raises(ConfigurationError):
        DataSplitter(test_size=test_size)


def test_missing_target(churn_df):
    with pytest.raises(SchemaError):
        DataSplitter().split(churn_df.drop(columns=["churn"]), "churn")
