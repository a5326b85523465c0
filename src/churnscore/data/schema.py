"""
Typed feature schema.

The schema is inferred once, when the raw data are cleaned, and carried
through every later stage instead of re-inspecting dtypes per stage.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

import pandas as pd

from churnscore.exceptions import SchemaError


class FeatureType(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


class FeatureSchema(Mapping):
    """
    Mapping from feature name to :class:`FeatureType`, plus the target name.

    Examples
    --------
    >>> schema = FeatureSchema.infer(df, target="churn")
    >>> schema.numeric
    ['age', 'balance']
    >>> schema["gender"]
    <FeatureType.CATEGORICAL: 'categorical'>
    """

    def __init__(self, types: Dict[str, FeatureType], target: str):
        self._types = {name: FeatureType(kind) for name, kind in types.items()}
        self.target = target
        if target in self._types:
            raise SchemaError(
                "Target column cannot also be a feature",
                details={"target": target},
            )

    @classmethod
    def infer(
        cls,
        df: pd.DataFrame,
        target: str,
        exclude: Optional[Iterable[str]] = None,
    ) -> "FeatureSchema":
        """
        Infer feature types from dtypes.

        Numeric dtypes (bool excluded) become NUMERIC, everything else
        CATEGORICAL.
        """
        if target not in df.columns:
            raise SchemaError(
                f"Target column '{target}' not found",
                details={"columns": df.columns.tolist()},
            )

        skip = set(exclude or []) | {target}
        types = {}
        for col in df.columns:
            if col in skip:
                continue
            series = df[col]
            if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(
                series
            ):
                types[col] = FeatureType.NUMERIC
            else:
                types[col] = FeatureType.CATEGORICAL
        return cls(types, target)

    @property
    def features(self) -> List[str]:
        return list(self._types)

    @property
    def numeric(self) -> List[str]:
        return [f for f, t in self._types.items() if t is FeatureType.NUMERIC]

    @property
    def categorical(self) -> List[str]:
        return [f for f, t in self._types.items() if t is FeatureType.CATEGORICAL]

    def is_numeric(self, feature: str) -> bool:
        return self[feature] is FeatureType.NUMERIC

    def subset(self, features: Iterable[str]) -> "FeatureSchema":
        """Schema restricted to ``features`` (order follows the argument)."""
        features = list(features)
        unknown = [f for f in features if f not in self._types]
        if unknown:
            raise SchemaError(
                "Features not present in schema",
                details={"features": unknown},
            )
        return FeatureSchema({f: self._types[f] for f in features}, self.target)

    def validate(
        self,
        df: pd.DataFrame,
        features: Optional[Iterable[str]] = None,
        require_target: bool = True,
    ) -> None:
        """
        Check that ``df`` carries the given features (default: all) and,
        optionally, a fully populated target column.
        """
        wanted = list(features) if features is not None else self.features
        missing = [f for f in wanted if f not in df.columns]
        if missing:
            raise SchemaError(
                "Features missing from dataset",
                details={"features": missing},
            )

        if require_target:
            if self.target not in df.columns:
                raise SchemaError(f"Target column '{self.target}' not found")
            n_missing = int(df[self.target].isna().sum())
            if n_missing:
                raise SchemaError(
                    f"Target column '{self.target}' has missing values",
                    details={"n_missing": n_missing},
                )

    def __getitem__(self, feature: str) -> FeatureType:
        try:
            return self._types[feature]
        except KeyError:
            raise SchemaError(
                f"Feature '{feature}' not present in schema",
                details={"feature": feature},
            ) from None

    def get(self, feature: str, default=None):
        return self._types.get(feature, default)

    def __contains__(self, feature: object) -> bool:
        return feature in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return (
            f"FeatureSchema(target={self.target!r}, numeric={self.numeric}, "
            f"categorical={self.categorical})"
        )
