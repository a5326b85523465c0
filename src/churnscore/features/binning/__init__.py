from .base import BaseBinner, Segment  # noqa: F401
from .binner import Binner  # noqa: F401
from .binning_map import Bin, BinningMap, FeatureBinning  # noqa: F401
from .supervised import CategoricalChiMergeBinner, ChiMergeBinner  # noqa: F401

__all__ = [
    "BaseBinner",
    "Segment",
    "Binner",
    "Bin",
    "BinningMap",
    "FeatureBinning",
    "ChiMergeBinner",
    "CategoricalChiMergeBinner",
]
