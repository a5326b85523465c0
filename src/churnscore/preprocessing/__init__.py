from .outliers import OutlierCapper, cap_outliers, tukey_fences  # noqa: F401

__all__ = ["OutlierCapper", "cap_outliers", "tukey_fences"]
