import logging
from typing import Dict, Optional, Union

import pandas as pd

from churnscore.data.schema import FeatureType
from churnscore.exceptions import DegenerateFeatureError
from churnscore.features.binning import Binner

logger = logging.getLogger(__name__)


def calculate_iv(
    X: pd.Series,
    y: pd.Series,
    kind: Optional[FeatureType] = None,
    binner: Optional[Binner] = None,
) -> Dict[str, Union[float, pd.DataFrame]]:
    """
    Calculate Information Value (IV) for a feature.

    The feature is binned with the same supervised algorithm used for the
    final BinningMap (univariate mode), then
    ``IV = sum((pos_dist - neg_dist) * ln(pos_dist / neg_dist))`` over bins.

    Args:
        X: Feature values.
        y: Binary target (1 = churn).
        kind: Feature type; inferred from the dtype when omitted.
        binner: Configured Binner whose parameters are used. Default Binner().

    Returns:
        Dict containing 'iv' (float) and 'woe_table' (pd.DataFrame). A
        feature with fewer than two distinct values has IV 0 and an empty
        table.

    Raises:
        BinningConstraintError: the feature cannot be split into enough bins.
    """
    if kind is None:
        kind = (
            FeatureType.NUMERIC
            if pd.api.types.is_numeric_dtype(X) and not pd.api.types.is_bool_dtype(X)
            else FeatureType.CATEGORICAL
        )
    binner = binner or Binner()

    try:
        binning = binner.fit_feature(X, y, kind)
    except DegenerateFeatureError as e:
        logger.info("IV of degenerate feature set to 0: %s", e.message)
        return {"iv": 0.0, "woe_table": pd.DataFrame()}

    return {"iv": binning.iv, "woe_table": binning.stats()}
