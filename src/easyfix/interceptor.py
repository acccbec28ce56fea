"""
Method interception for easyfix.

wrap_async_method() swaps a callback-style method on a target object for a
wrapper that records every call and then, depending on the mode:

    live     calls the original unchanged
    capture  calls the original and persists (args, error, result) per call
    replay   answers from persisted records without calling the original

Calls are matched to records by ordinal only: the Nth call made through a
wrapper in replay mode gets the record of the Nth call captured under the
same fixture name. Arguments may therefore differ between runs (timestamps,
random ids) as long as the call sequence is the same.

Example:
    handle = wrap_async_method(client, "fetch", mode="replay", dir="fixtures")
    try:
        client.fetch({"id": 1}, on_done)
    finally:
        handle.restore()
"""

import asyncio
import functools
import inspect
import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar
from unittest import mock

from easyfix.codec import canonicalize
from easyfix.errors import (
    CodecError,
    FixtureError,
    FixtureWriteError,
    InvalidTargetError,
    MissingCallbackError,
    WrapperRestoredError,
)
from easyfix.log import get_logger
from easyfix.schema import FixtureMode, FixtureRecord, Outcome, WrapConfig, resolve_config
from easyfix.spy import CallLog, RecordedCall
from easyfix.store import FixtureStore, args_hash

logger = get_logger(__name__)

Callback = Callable[..., Any]

# Handles currently writing or reading fixtures, for name clash warnings
_ACTIVE_HANDLES: "weakref.WeakSet[WrapperHandle]" = weakref.WeakSet()


# =============================================================================
# Invocations
# =============================================================================


@dataclass(frozen=True)
class Invocation:
    """
    One call made through a wrapper.

    Attributes:
        ordinal: 1-based position of the call within its wrapper
        args: Positional arguments with the callback removed
        kwargs: Keyword arguments with the callback removed
        callback: The caller's completion callback, if one was passed
        callback_in_kwargs: Whether the callback was passed as callback=...
    """

    ordinal: int
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    callback: Callback | None = None
    callback_in_kwargs: bool = False

    def call_through(self, method: Callable[..., Any], callback: Callback) -> Any:
        """Call ``method`` with this invocation's arguments and ``callback``."""
        if self.callback_in_kwargs:
            return method(*self.args, **self.kwargs, callback=callback)
        return method(*self.args, callback, **self.kwargs)


def split_callback(
    args: tuple[Any, ...], kwargs: Mapping[str, Any]
) -> tuple[tuple[Any, ...], dict[str, Any], Callback | None, bool]:
    """
    Separate the completion callback from the other arguments.

    The callback is ``callback=`` when given as a keyword, otherwise the
    trailing positional argument if it is callable.

    Returns:
        (args, kwargs, callback, callback_in_kwargs)
    """
    kwargs = dict(kwargs)
    if callable(kwargs.get("callback")):
        callback = kwargs.pop("callback")
        return tuple(args), kwargs, callback, True
    if args and callable(args[-1]):
        return tuple(args[:-1]), kwargs, args[-1], False
    return tuple(args), kwargs, None, False


def schedule(callback: Callback, *args: Any) -> None:
    """Call ``callback`` on the next turn of the running event loop.

    Without a running loop there is no later turn to defer to, so the
    callback runs immediately.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback(*args)
        return
    loop.call_soon(callback, *args)


def describe_target(target: Any) -> str:
    """Name used for a target in fixture names and messages."""
    if inspect.ismodule(target):
        return target.__name__
    if inspect.isclass(target):
        return target.__qualname__
    return type(target).__qualname__


# =============================================================================
# Mode Dispatch
# =============================================================================


class Dispatch(ABC):
    """
    Per-mode behavior of a wrapper.

    Selected once when the wrapper is created and fixed for its lifetime.
    """

    mode: ClassVar[FixtureMode]

    def __init__(self, handle: "WrapperHandle") -> None:
        self.handle = handle

    @abstractmethod
    def __call__(
        self,
        invocation: Invocation,
        raw_args: tuple[Any, ...],
        raw_kwargs: dict[str, Any],
    ) -> Any:
        """Handle one call; returns whatever the original would return."""
        ...


class LiveDispatch(Dispatch):
    """Pass every call straight through."""

    mode = FixtureMode.LIVE

    def __call__(self, invocation, raw_args, raw_kwargs):
        return self.handle.original(*raw_args, **raw_kwargs)


class CaptureDispatch(Dispatch):
    """Call through and persist each outcome before the caller sees it."""

    mode = FixtureMode.CAPTURE

    def __call__(self, invocation, raw_args, raw_kwargs):
        handle = self.handle
        callback = invocation.callback
        canonical_args = canonicalize(list(invocation.args))
        canonical_kwargs = canonicalize(invocation.kwargs)

        def on_complete(error: Any = None, result: Any = None) -> None:
            record = FixtureRecord(
                name=handle.fixture_name,
                ordinal=invocation.ordinal,
                args=canonical_args,
                kwargs=canonical_kwargs,
                outcome=Outcome.from_callback(error, result),
                args_hash=args_hash(canonical_args, canonical_kwargs),
            )
            try:
                handle.store.put(handle.fixture_name, invocation.ordinal, record)
            except FixtureWriteError as e:
                logger.error(f"Capture of {handle.fixture_name} #{invocation.ordinal} failed: {e.message}")
                callback(e, None)
                return

            logger.debug(f"Captured {handle.fixture_name} #{invocation.ordinal} ({record.outcome.kind.value})")
            callback(error, result)

        return invocation.call_through(handle.original, on_complete)


class ReplayDispatch(Dispatch):
    """Answer from the fixture store; the original is never called."""

    mode = FixtureMode.REPLAY

    def __call__(self, invocation, raw_args, raw_kwargs):
        handle = self.handle
        try:
            record = handle.store.get(handle.fixture_name, invocation.ordinal)
            error, result = record.outcome.to_callback_args()
        except (FixtureError, CodecError) as e:
            logger.warning(f"Replay of {handle.fixture_name} #{invocation.ordinal} failed: {e.message}")
            error, result = e, None
        else:
            logger.debug(f"Replayed {handle.fixture_name} #{invocation.ordinal}")

        schedule(invocation.callback, error, result)
        return None


_DISPATCH: dict[FixtureMode, type[Dispatch]] = {
    dispatch.mode: dispatch for dispatch in (LiveDispatch, CaptureDispatch, ReplayDispatch)
}


# =============================================================================
# Wrapper Handle
# =============================================================================


class WrapperHandle:
    """
    An active interception of ``target.method_name``.

    The handle doubles as a spy: call_count, calls, with_args() and
    matching_calls() report what went through the wrapper. restore() puts
    the original back; it may be called once.

    Usage:
        with wrap_async_method(api, "fetch", mode="capture", dir=d) as stub:
            api.fetch("a", on_done)
            assert stub.call_count == 1

    Attributes:
        target: Object whose attribute was replaced
        method_name: Name of the replaced attribute
        config: Validated configuration
        original: The method as it was before wrapping
        fixture_name: Key scoping this wrapper's records in the store
        store: Fixture store (None in live mode)
        call_log: Calls made through the wrapper
    """

    def __init__(self, target: Any, method_name: str, config: WrapConfig) -> None:
        original = getattr(target, method_name, None)
        if not callable(original):
            raise InvalidTargetError(
                target=describe_target(target),
                method_name=method_name,
            )

        self.target = target
        self.method_name = method_name
        self.config = config
        self.original = original
        self.fixture_name = config.prefix or f"{describe_target(target)}.{method_name}"
        self.store = FixtureStore(config.dir) if config.mode.uses_fixtures else None
        self.call_log = CallLog()
        self._dispatch = _DISPATCH[config.mode](self)
        self._restored = False

        self._patcher = mock.patch.object(target, method_name, self._make_wrapper())
        self._patcher.start()
        self._claim_fixture_name()
        logger.debug(f"Wrapped {self.fixture_name} in {config.mode.value} mode")

    def _claim_fixture_name(self) -> None:
        """Warn when another active handle already uses this fixture's files."""
        if self.store is None:
            return
        for other in list(_ACTIVE_HANDLES):
            if other.fixture_name == self.fixture_name and other.store.base_dir == self.store.base_dir:
                logger.warning(
                    f"Fixture name {self.fixture_name} is already in use in {self.store.base_dir}; "
                    "pass prefix=... to keep the records apart"
                )
                break
        _ACTIVE_HANDLES.add(self)

    def _make_wrapper(self) -> Any:
        handle = self

        @functools.wraps(self.original)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return handle._invoke(args, kwargs)

        wrapper.easyfix_handle = handle

        # Keep static/class methods unbound when the wrapper sits on a class
        raw = inspect.getattr_static(self.target, self.method_name, None)
        if inspect.isclass(self.target) and isinstance(raw, (staticmethod, classmethod)):
            return staticmethod(wrapper)
        return wrapper

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        if self._restored:
            logger.warning(f"{self.fixture_name} called through a restored wrapper")
            return self.original(*args, **kwargs)

        call_args, call_kwargs, callback, in_kwargs = split_callback(args, kwargs)
        if callback is None and self.mode.uses_fixtures:
            raise MissingCallbackError(fixture_name=self.fixture_name, mode=self.mode.value)

        recorded = self.call_log.record_call(call_args, call_kwargs)
        invocation = Invocation(
            ordinal=recorded.ordinal,
            args=call_args,
            kwargs=call_kwargs,
            callback=callback,
            callback_in_kwargs=in_kwargs,
        )
        return self._dispatch(invocation, args, kwargs)

    @property
    def mode(self) -> FixtureMode:
        return self.config.mode

    @property
    def active(self) -> bool:
        """Whether the wrapper is still installed."""
        return not self._restored

    def restore(self) -> None:
        """
        Put the original method back on the target.

        Raises:
            WrapperRestoredError: If the handle was already restored
        """
        if self._restored:
            raise WrapperRestoredError(fixture_name=self.fixture_name)
        self._patcher.stop()
        self._restored = True
        _ACTIVE_HANDLES.discard(self)
        logger.debug(f"Restored {self.fixture_name}")

    def __enter__(self) -> "WrapperHandle":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        if not self._restored:
            self.restore()

    def __repr__(self) -> str:
        state = "active" if self.active else "restored"
        return f"<WrapperHandle {self.fixture_name} mode={self.mode.value} {state}>"

    # -------------------------------------------------------------------------
    # Spy surface
    # -------------------------------------------------------------------------

    @property
    def call_count(self) -> int:
        return self.call_log.call_count

    @property
    def called(self) -> bool:
        return self.call_log.called

    @property
    def calls(self) -> list[RecordedCall]:
        return self.call_log.calls

    @property
    def call_args_list(self) -> list[Any]:
        return self.call_log.call_args_list

    def get_call(self, index: int) -> RecordedCall:
        return self.call_log.get_call(index)

    def matching_calls(self, predicate: Callable[[RecordedCall], bool]) -> list[RecordedCall]:
        return self.call_log.matching_calls(predicate)

    def with_args(self, *args: Any, **kwargs: Any) -> list[RecordedCall]:
        return self.call_log.with_args(*args, **kwargs)


def wrap_async_method(
    target: Any,
    method_name: str,
    config: WrapConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> WrapperHandle:
    """
    Intercept a callback-style method.

    Args:
        target: Object, class or module owning the method
        method_name: Attribute to replace; it must be callable and take a
            completion callback ``callback(error, result)`` as its last
            positional argument or as ``callback=``
        config: WrapConfig or mapping with mode, dir and prefix
        **options: Overrides for keys in ``config``

    Returns:
        WrapperHandle for assertions and restore()

    Raises:
        InvalidModeError: If mode is not live, capture or replay
        MissingFixtureDirError: If capture/replay has no fixture directory
        InvalidTargetError: If ``target.method_name`` is not callable
    """
    return WrapperHandle(target, method_name, resolve_config(config, **options))
