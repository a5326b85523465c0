"""
Seeded train/test partitioning.
"""

import logging
from typing import Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

from churnscore.config import SPLIT
from churnscore.exceptions import ConfigurationError, SchemaError

logger = logging.getLogger(__name__)


class DataSplitter:
    """
    Split a dataset into disjoint train and test partitions.

    The split is reproducible for a given ``seed`` and, by default,
    stratified on the target so both partitions keep the churn rate.
    """

    def __init__(
        self,
        test_size: float = SPLIT.DEFAULT_TEST_SIZE,
        seed: int = SPLIT.DEFAULT_SEED,
        stratify: bool = SPLIT.DEFAULT_STRATIFY,
    ):
        if not 0.0 < test_size < 1.0:
            raise ConfigurationError(
                "test_size must be in (0, 1)", details={"test_size": test_size}
            )
        self.test_size = test_size
        self.seed = seed
        self.stratify = stratify

    def split(self, df: pd.DataFrame, target: str) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Return ``(train, test)`` copies; index labels are preserved."""
        if target not in df.columns:
            raise SchemaError(f"Target column '{target}' not found")

        train, test = train_test_split(
            df,
            test_size=self.test_size,
            random_state=self.seed,
            stratify=df[target] if self.stratify else None,
        )
        logger.info(
            "Split %d rows into %d train / %d test (seed=%d)",
            len(df),
            len(train),
            len(test),
            self.seed,
        )
        return train.copy(), test.copy()
