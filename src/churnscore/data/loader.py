"""
Dataset loading and cleaning.

Reads the raw customer file, drops columns that carry no signal (ids,
free text) and normalizes the churn label to a 0/1 indicator.
"""

import logging
from typing import Iterable, Optional, Tuple, Union
from pathlib import Path

import pandas as pd

from churnscore.config import DATASET
from churnscore.exceptions import SchemaError

from .schema import FeatureSchema

logger = logging.getLogger(__name__)


class DataLoader:
    """
    Load and clean raw churn data.

    Examples
    --------
    >>> loader = DataLoader(target="churn", drop_columns=["customer_id"])
    >>> df, schema = loader.load_clean("bank_churn.csv")
    >>> df["churn"].unique()
    array([0, 1])
    """

    def __init__(
        self,
        target: str = DATASET.DEFAULT_TARGET,
        positive_label: str = DATASET.DEFAULT_POSITIVE_LABEL,
        negative_label: str = DATASET.DEFAULT_NEGATIVE_LABEL,
        drop_columns: Optional[Iterable[str]] = None,
        sep: str = DATASET.DEFAULT_SEPARATOR,
    ):
        self.target = target
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.drop_columns = list(drop_columns or [])
        self.sep = sep

    def load(self, path: Union[str, Path], **read_kwargs) -> pd.DataFrame:
        """Read a delimited file into a DataFrame."""
        df = pd.read_csv(path, sep=self.sep, **read_kwargs)
        logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
        return df

    def clean(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, FeatureSchema]:
        """
        Drop configured columns, normalize the target and infer the schema.

        Returns a new DataFrame; the input is left untouched.
        """
        if self.target not in df.columns:
            raise SchemaError(
                f"Target column '{self.target}' not found",
                details={"columns": df.columns.tolist()},
            )

        absent = [c for c in self.drop_columns if c not in df.columns]
        if absent:
            logger.warning("Columns to drop not present: %s", absent)

        out = df.drop(columns=[c for c in self.drop_columns if c in df.columns])
        out[self.target] = self.normalize_target(out[self.target])

        schema = FeatureSchema.infer(out, target=self.target)
        logger.info(
            "Cleaned dataset: %d numeric, %d categorical features, churn rate %.3f",
            len(schema.numeric),
            len(schema.categorical),
            out[self.target].mean(),
        )
        return out, schema

    def load_clean(
        self, path: Union[str, Path], **read_kwargs
    ) -> Tuple[pd.DataFrame, FeatureSchema]:
        """Load and clean in one step."""
        return self.clean(self.load(path, **read_kwargs))

    def normalize_target(self, target: pd.Series) -> pd.Series:
        """
        Map the churn label to ``{positive: 1, negative: 0}``.

        String labels are compared case- and whitespace-insensitively.
        A column that is already 0/1 is passed through.
        """
        if target.isna().any():
            raise SchemaError(
                f"Target column '{self.target}' has missing values",
                details={"n_missing": int(target.isna().sum())},
            )

        if pd.api.types.is_numeric_dtype(target) or pd.api.types.is_bool_dtype(target):
            values = set(pd.unique(target.astype(int)))
            if not values <= {0, 1}:
                raise SchemaError(
                    "Numeric target must be binary 0/1",
                    details={"values": sorted(values)},
                )
            return target.astype(int)

        labels = target.astype(str).str.strip().str.lower()
        mapping = {
            self.positive_label.lower(): 1,
            self.negative_label.lower(): 0,
        }
        mapped = labels.map(mapping)
        unknown = sorted(labels[mapped.isna()].unique().tolist())
        if unknown:
            raise SchemaError(
                "Target contains labels outside the configured positive/negative labels",
                details={
                    "unknown": unknown,
                    "positive": self.positive_label,
                    "negative": self.negative_label,
                },
            )
        return mapped.astype(int)
