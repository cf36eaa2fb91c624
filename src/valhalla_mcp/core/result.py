from __future__ import annotations

import typing as t
from dataclasses import dataclass

from .errors import StandardError

T = t.TypeVar("T")


@dataclass(frozen=True)
class Ok(t.Generic[T]):
    value: T
    cached: bool = False

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: StandardError

    @property
    def ok(self) -> bool:
        return False


Result = t.Union[Ok[T], Err]
