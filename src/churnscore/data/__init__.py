from .loader import DataLoader  # noqa: F401
from .schema import FeatureSchema, FeatureType  # noqa: F401
from .splitter import DataSplitter  # noqa: F401

__all__ = ["DataLoader", "DataSplitter", "FeatureSchema", "FeatureType"]
