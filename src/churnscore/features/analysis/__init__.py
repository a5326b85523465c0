from .iv_calculator import calculate_iv  # noqa: F401
from .woe_calculator import WOETransformer, calculate_woe  # noqa: F401

__all__ = ["calculate_iv", "calculate_woe", "WOETransformer"]
