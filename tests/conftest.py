"""
Pytest configuration and fixtures for easyfix tests.

This module provides shared fixtures used across unit and integration
tests, including a small callback-style target whose methods complete on a
later turn of the asyncio event loop.
"""

import asyncio
import tempfile
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Generator

import pytest


class Counter:
    """Callback-style target with observable side effects."""

    def __init__(self) -> None:
        self.state = 0
        self.invocations = 0

    def inc_state_next_tick(self, state_arg: dict[str, Any], callback: Callable[..., Any]) -> None:
        """Set state from the argument, then increment it on the next loop turn."""
        self.invocations += 1
        self.state = state_arg["val"]

        def finish() -> None:
            self.state += 1
            callback(None, self.state)

        asyncio.get_running_loop().call_soon(finish)

    def fail_next_tick(self, reason: str, callback: Callable[..., Any]) -> None:
        """Complete with a ValueError on the next loop turn."""
        self.invocations += 1
        asyncio.get_running_loop().call_soon(callback, ValueError(reason), None)

    def echo_later(self, value: Any, delay: float, callback: Callable[..., Any]) -> None:
        """Complete with ``value`` after ``delay`` seconds."""
        self.invocations += 1
        asyncio.get_running_loop().call_later(delay, callback, None, value)

    def cycle_next_tick(self, label: str, callback: Callable[..., Any]) -> None:
        """Complete with a dict that contains itself."""
        self.invocations += 1
        result: dict[str, Any] = {"label": label}
        result["self"] = result
        asyncio.get_running_loop().call_soon(callback, None, result)

    def echo_now(self, value: Any, callback: Callable[..., Any]) -> None:
        """Complete synchronously."""
        self.invocations += 1
        callback(None, value)

    def reset_state(self) -> None:
        self.state = 0


async def call_and_wait(method: Callable[..., Any], *args: Any, **kwargs: Any) -> tuple[Any, Any]:
    """Call a callback-style method and wait for ``(error, result)``."""
    future = asyncio.get_running_loop().create_future()

    def callback(error: Any, result: Any) -> None:
        future.set_result((error, result))

    if "callback" in kwargs:
        kwargs["callback"] = callback
        method(*args, **kwargs)
    else:
        method(*args, callback, **kwargs)
    return await future


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fixture_dir(temp_dir: Path) -> Path:
    """Fixture directory inside the temporary directory (not yet created)."""
    return temp_dir / "fixtures"


@pytest.fixture
def counter() -> Counter:
    """A fresh callback-style target."""
    return Counter()


@pytest.fixture
def counter_cls() -> type[Counter]:
    """The Counter class, for class-level wrapping."""
    return Counter


@pytest.fixture
def wait_for() -> Callable[..., Awaitable[tuple[Any, Any]]]:
    """Coroutine function that calls a method and awaits its callback."""
    return call_and_wait


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep EASYFIX_* variables from the outer environment out of tests."""
    for var in ("EASYFIX_MODE", "EASYFIX_DIR", "EASYFIX_PREFIX"):
        monkeypatch.delenv(var, raising=False)
