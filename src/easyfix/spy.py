"""
Call bookkeeping for wrapped methods.

CallLog is the stub/spy surface a WrapperHandle exposes for assertions:
how many times the method was called and with what. Arguments are kept as
the caller passed them (callback removed), not copied or canonicalized.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from unittest import mock


@dataclass(frozen=True)
class RecordedCall:
    """
    One call as seen by the wrapper.

    Attributes:
        ordinal: 1-based position of the call
        args: Positional arguments (callback removed)
        kwargs: Keyword arguments (callback removed)
    """

    ordinal: int
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)

    @property
    def call(self) -> Any:
        """The call as a ``unittest.mock.call`` for comparisons."""
        return mock.call(*self.args, **self.kwargs)

    def matches(self, *args: Any, **kwargs: Any) -> bool:
        """Whether this call started with ``args`` and included ``kwargs``.

        Distinct cyclic values can't be compared with ``==``; they never match.
        """
        try:
            if self.args[: len(args)] != args:
                return False
            return all(
                key in self.kwargs and self.kwargs[key] == value
                for key, value in kwargs.items()
            )
        except RecursionError:
            return False


class CallLog:
    """Ordered record of calls made through one wrapper."""

    def __init__(self) -> None:
        self._calls: list[RecordedCall] = []

    def record_call(self, args: tuple[Any, ...], kwargs: dict[str, Any] | None = None) -> RecordedCall:
        """Append a call and return it with its ordinal assigned."""
        recorded = RecordedCall(
            ordinal=len(self._calls) + 1,
            args=tuple(args),
            kwargs=dict(kwargs or {}),
        )
        self._calls.append(recorded)
        return recorded

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def called(self) -> bool:
        return bool(self._calls)

    @property
    def calls(self) -> list[RecordedCall]:
        return list(self._calls)

    @property
    def call_args_list(self) -> list[Any]:
        """Calls as ``unittest.mock.call`` objects, like Mock.call_args_list."""
        return [recorded.call for recorded in self._calls]

    def get_call(self, index: int) -> RecordedCall:
        """Return the call at a 0-based index (negative indexes allowed)."""
        return self._calls[index]

    def matching_calls(self, predicate: Callable[[RecordedCall], bool]) -> list[RecordedCall]:
        """Calls for which ``predicate`` returns true."""
        return [recorded for recorded in self._calls if predicate(recorded)]

    def with_args(self, *args: Any, **kwargs: Any) -> list[RecordedCall]:
        """Calls whose leading arguments equal ``args`` and include ``kwargs``."""
        return self.matching_calls(lambda recorded: recorded.matches(*args, **kwargs))
