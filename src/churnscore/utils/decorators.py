"""
Guards shared by the fit/transform style components.
"""

from functools import wraps
from typing import Callable, TypeVar

F = TypeVar("F", bound=Callable)


def requires_fit(attr_name: str = "is_fitted_", action: str = "fit") -> Callable[[F], F]:
    """
    Ensure a component has learned its state before it is applied.

    Parameters
    ----------
    attr_name : str
        Boolean attribute flagging the fitted state. Default "is_fitted_".
    action : str
        Method name suggested in the error message. Default "fit".

    Raises
    ------
    ValueError
        When the flag is missing or false, e.g.
        ``"OutlierCapper is not fitted. Call fit() first."``

    Examples
    --------
    >>> class Refiner:
    ...     is_fitted_ = False
    ...
    ...     @requires_fit()
    ...     def report(self):
    ...         return "history"
    """

    def decorator(method: F) -> F:
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            if not getattr(self, attr_name, False):
                class_name = self.__class__.__name__
                raise ValueError(f"{class_name} is not fitted. Call {action}() first.")
            return method(self, *args, **kwargs)

        return wrapper  # type: ignore

    return decorator
