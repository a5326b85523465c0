"""Feature selection module."""

from churnscore.features.selection.iv_selector import IVSelector
from churnscore.features.selection.refiner import SignificanceRefiner

__all__ = ["IVSelector", "SignificanceRefiner"]
