import pytest

from churnscore.exceptions import (
    BinningConstraintError,
    ChurnScoreError,
    ConfigurationError,
    DegenerateFeatureError,
    ModelFitError,
    RefinementNonTermination,
    SchemaError,
    UnseenCategoryError,
)


class TestChurnScoreError:
    def test_str(self):
        err = ChurnScoreError("bad input")
        assert str(err) == "bad input"
        assert err.details == {}
        assert err.stage is None

    def test_str_with_context(self):
        cause = ValueError("inner")
        err = SchemaError("missing", details={"features": ["age"]}, cause=cause, stage="split")
        text = str(err)
        assert text.startswith("[split] missing")
        assert "'features': ['age']" in text
        assert "Caused by: inner" in text

    def test_to_dict(self):
        err = ModelFitError("fit failed", stage="refine")
        assert err.to_dict() == {
            "type": "ModelFitError",
            "stage": "refine",
            "message": "fit failed",
            "details": {},
            "cause": None,
        }

    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, SchemaError, ModelFitError, RefinementNonTermination],
    )
    def test_hierarchy(self, cls):
        assert issubclass(cls, ChurnScoreError)


class TestFeatureErrors:
    def test_degenerate(self):
        err = DegenerateFeatureError("constant")
        assert err.feature == "constant"
        assert err.details["feature"] == "constant"
        assert "zero variance" in err.message

    def test_binning_constraint(self):
        err = BinningConstraintError("rare", 1, 2)
        assert err.n_bins == 1
        assert err.min_bins == 2
        assert "produced 1 bin(s), at least 2 required" in err.message

    def test_binning_constraint_unnamed(self):
        assert "'<unnamed>'" in BinningConstraintError(None, 0, 2).message

    def test_unseen_category_is_key_error(self):
        err = UnseenCategoryError("region", "mars")
        assert isinstance(err, KeyError)
        assert err.category == "mars"
        assert str(err).startswith("Category 'mars' of feature 'region'")

        with pytest.raises(KeyError):
            raise err
