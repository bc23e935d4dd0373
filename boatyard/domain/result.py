"""
Result type returned by every public service operation.

Callers branch on ``ok`` before touching ``value``. Domain errors never
escape a service; infrastructure faults (database unreachable etc.) do.
"""
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .exceptions import DomainError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service call: either a value or an error message."""
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        return cls(ok=False, error=error.message, code=error.code)

    def unwrap(self) -> T:
        """Return the value or raise if the result is a failure."""
        if not self.ok:
            raise ValueError(f"Called unwrap() on a failed result: {self.error}")
        return self.value

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "error": self.error, "code": self.code}


def returns_result(func: Callable[..., Any]) -> Callable[..., Result]:
    """
    Wrap a service method so domain errors become failed Results.

    The wrapped function returns its value normally and raises DomainError
    subclasses on failure.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            return Result.success(func(*args, **kwargs))
        except DomainError as e:
            logger.warning(f"{func.__qualname__} rejected [{e.code}]: {e.message}")
            return Result.failure(e)

    return wrapper
