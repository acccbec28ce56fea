"""
easyfix - Capture and replay fixtures for callback-style async methods.

Wrap a method that completes through ``callback(error, result)`` and pick a
mode per test run:
- live: call the real implementation
- capture: call it and save each call's outcome to the fixture directory
- replay: skip it and answer every call from the saved fixtures

Example usage:
    from easyfix import wrap_async_method

    stub = wrap_async_method(client, "fetch", mode="replay", dir="tests/fixtures")
    client.fetch({"id": 1}, on_done)
    assert stub.call_count == 1
    stub.restore()
"""

__version__ = "0.1.0"
__author__ = "easyfix Contributors"

from easyfix.codec import canonicalize, materialize
from easyfix.errors import (
    CapturedError,
    CodecError,
    ConfigurationError,
    EasyfixError,
    FixtureNotFoundError,
    FixtureWriteError,
    InvalidModeError,
    MissingCallbackError,
    MissingFixtureDirError,
    WrapperRestoredError,
)
from easyfix.interceptor import WrapperHandle, wrap_async_method
from easyfix.schema import FixtureMode, FixtureRecord, WrapConfig, load_config
from easyfix.store import FixtureStore

__all__ = [
    "__version__",
    "__author__",
    "CapturedError",
    "CodecError",
    "ConfigurationError",
    "EasyfixError",
    "FixtureMode",
    "FixtureNotFoundError",
    "FixtureRecord",
    "FixtureStore",
    "FixtureWriteError",
    "InvalidModeError",
    "MissingCallbackError",
    "MissingFixtureDirError",
    "WrapConfig",
    "WrapperHandle",
    "WrapperRestoredError",
    "canonicalize",
    "load_config",
    "materialize",
    "wrap_async_method",
]
