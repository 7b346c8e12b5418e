"""Typed results returned by the public service surface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .exceptions import PyEVChargingError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    error: PyEVChargingError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def error_code(self) -> str | None:
        return self.error.error_code

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
