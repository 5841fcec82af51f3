"""
Tagged stage results and call deadlines.

Components return ``Ok(value)`` or ``Err(kind, message)`` instead of raising
across component boundaries. Only configuration problems are exceptions.
"""
import time
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from designchain.core.exceptions import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


class Deadline:
    """Monotonic time budget shared by every remote call of one invocation"""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds

    @classmethod
    def after(cls, seconds: Optional[float]) -> Optional["Deadline"]:
        """Deadline expiring ``seconds`` from now, or None when unbounded"""
        if seconds is None:
            return None
        return cls(seconds)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def bound(self, timeout: Optional[float]) -> Optional[float]:
        """The smaller of ``timeout`` and the time left"""
        remaining = self.remaining()
        if timeout is None:
            return remaining
        return min(timeout, remaining)
