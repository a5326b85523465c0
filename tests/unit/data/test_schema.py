"""Unit tests for FeatureSchema."""

import pandas as pd
import pytest

from churnscore.data import FeatureSchema, FeatureType
from churnscore.exceptions import SchemaError


@pytest.fixture
def frame():
    return pd.DataFrame(
        {
            "age": [30, 40, 50],
            "balance": [1.0, 2.5, None],
            "region": ["north", "south", "north"],
            "is_active": [True, False, True],
            "churn": [1, 0, 1],
        }
    )


def test_infer_types(frame):
    schema = FeatureSchema.infer(frame, target="churn")

    assert schema.numeric == ["age", "balance"]
    assert schema.categorical == ["region", "is_active"]
    assert "churn" not in schema
    assert len(schema) == 4


def test_infer_exclude(frame):
    schema = FeatureSchema.infer(frame, target="churn", exclude=["region"])
    assert "region" not in schema.features


def test_infer_missing_target(frame):
    with pytest.raises(SchemaError):
        FeatureSchema.infer(frame, target="exited")


def test_target_cannot_be_feature():
    with pytest.raises(SchemaError):
        FeatureSchema({"churn": FeatureType.NUMERIC}, target="churn")


def test_lookup(frame):
    schema = FeatureSchema.infer(frame, target="churn")

    assert schema["age"] is FeatureType.NUMERIC
    assert schema.is_numeric("balance")
    assert schema.get("unknown") is None
    with pytest.raises(SchemaError, match="not present"):
        schema["unknown"]


def test_subset(frame):
    schema = FeatureSchema.infer(frame, target="churn").subset(["region", "age"])
    assert schema.features == ["region", "age"]
    assert schema.target == "churn"

    with pytest.raises(SchemaError):
        schema.subset(["balance"])


def test_validate(frame):
    schema = FeatureSchema.infer(frame, target="churn")
    schema.validate(frame)

    with pytest.raises(SchemaError, match="missing from dataset"):
        schema.validate(frame.drop(columns=["age"]))

    with pytest.raises(SchemaError, match="not found"):
        schema.validate(frame.drop(columns=["churn"]))

    schema.validate(frame.drop(columns=["churn"]), require_target=False)


def test_validate_missing_target_values(frame):
    schema = FeatureSchema.infer(frame, target="churn")
    frame.loc[0, "churn"] = None
    with pytest.raises(SchemaError, match="missing values"):
        schema.validate(frame)
