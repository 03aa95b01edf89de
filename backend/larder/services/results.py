# Overview: Success/Failure values returned by every public service operation.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from .errors import BusinessRuleError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    ok = True
    error = None


@dataclass(frozen=True)
class Failure:
    error: BusinessRuleError

    ok = False
    value = None

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


Result = Union[Success[Any], Failure]


def capture(func: Callable[[], T]) -> Result:
    """
    Run a service operation and fold business-rule errors into a Failure.

    Anything that is not a BusinessRuleError (storage faults, programming
    errors) propagates.
    """
    try:
        return Success(func())
    except BusinessRuleError as exc:
        return Failure(exc)
