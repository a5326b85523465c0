from .decorators import requires_fit  # noqa: F401

__all__ = ["requires_fit"]
