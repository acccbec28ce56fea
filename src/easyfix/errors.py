"""
Exception hierarchy for easyfix.

All easyfix exceptions inherit from EasyfixError, allowing callers to catch
all easyfix-specific exceptions with a single except clause.

Exception Categories:
    - ConfigurationError: Invalid wrap configuration (raised from wrap time)
    - FixtureError: Fixture store lookups and writes
    - CodecError: Canonical form could not be materialized
    - WrapperError: Misuse of a wrapper handle

Replay-time failures (FixtureNotFoundError in particular) are delivered
through the wrapped method's callback as the ``error`` argument rather than
raised, so calling code handles them on its normal error path.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_CONFIG_INVALID_MODE = 1001
ERROR_CONFIG_MISSING_DIR = 1002
ERROR_CONFIG_INVALID_TARGET = 1003
ERROR_CONFIG_LOAD_FAILED = 1004

# Fixture errors: 2xxx
ERROR_FIXTURE_NOT_FOUND = 2001
ERROR_FIXTURE_READ = 2002
ERROR_FIXTURE_WRITE = 2003
ERROR_FIXTURE_CORRUPT = 2004

# Codec errors: 3xxx
ERROR_CODEC_INVALID_FORM = 3001

# Wrapper errors: 4xxx
ERROR_WRAPPER_RESTORED = 4001
ERROR_WRAPPER_MISSING_CALLBACK = 4002

# Replayed errors: 5xxx
ERROR_CAPTURED = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class EasyfixError(Exception):
    """
    Base exception for all easyfix errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationError(EasyfixError):
    """
    Raised when a wrapper cannot be created from the given configuration.

    Always raised synchronously from wrap_async_method, before the target
    is touched.

    Attributes:
        option: Name of the offending option (if applicable)
    """

    option: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["option"] = self.option


@dataclass
class InvalidModeError(ConfigurationError):
    """Raised when mode is not one of live, capture or replay."""

    mode: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid fixture mode: {self.mode!r}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID_MODE
        if not self.suggestion:
            self.suggestion = "Use one of 'live', 'capture' or 'replay'"
        if self.option is None:
            self.option = "mode"
        super().__post_init__()
        self.context["mode"] = self.mode


@dataclass
class MissingFixtureDirError(ConfigurationError):
    """Raised when capture or replay mode is requested without a dir."""

    mode: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Mode {self.mode!r} requires a fixture directory"
        if self.code == 0:
            self.code = ERROR_CONFIG_MISSING_DIR
        if not self.suggestion:
            self.suggestion = "Pass dir=... or set EASYFIX_DIR"
        if self.option is None:
            self.option = "dir"
        super().__post_init__()
        self.context["mode"] = self.mode


@dataclass
class InvalidTargetError(ConfigurationError):
    """Raised when the named attribute is missing or not callable."""

    target: str = ""
    method_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.target}.{self.method_name} is not a callable method"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID_TARGET
        super().__post_init__()
        self.context.update({
            "target": self.target,
            "method_name": self.method_name,
        })


@dataclass
class ConfigLoadError(ConfigurationError):
    """Raised when a configuration file cannot be read or parsed."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load config {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_LOAD_FAILED
        super().__post_init__()
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Fixture Errors
# =============================================================================


@dataclass
class FixtureError(EasyfixError):
    """
    Base class for fixture store errors.

    Attributes:
        name: Fixture name (method identity) being accessed
        ordinal: Call ordinal being accessed
        path: Location of the fixture file
    """

    name: str = ""
    ordinal: int = 0
    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "name": self.name,
            "ordinal": self.ordinal,
            "path": self.path,
        })


@dataclass
class FixtureNotFoundError(FixtureError):
    """Raised when replay asks for an ordinal that was never captured."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No fixture for {self.name} call #{self.ordinal}"
        if self.code == 0:
            self.code = ERROR_FIXTURE_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Re-run the test in capture mode to record this call"
        super().__post_init__()


@dataclass
class FixtureReadError(FixtureError):
    """Raised when a fixture file exists but cannot be read."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to read fixture {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_FIXTURE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class FixtureWriteError(FixtureError):
    """Raised when a captured call cannot be persisted."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write fixture {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_FIXTURE_WRITE
        if not self.suggestion:
            self.suggestion = "Check that the fixture directory is writable"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class FixtureCorruptError(FixtureError):
    """Raised when a fixture file does not match the record schema."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Corrupt fixture {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_FIXTURE_CORRUPT
        if not self.suggestion:
            self.suggestion = "Delete the file and re-capture"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Codec Errors
# =============================================================================


@dataclass
class CodecError(EasyfixError):
    """Raised when a canonical form cannot be materialized."""

    node: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot materialize node: {self.node}"
        if self.code == 0:
            self.code = ERROR_CODEC_INVALID_FORM
        self.context["node"] = self.node


# =============================================================================
# Wrapper Errors
# =============================================================================


@dataclass
class WrapperError(EasyfixError):
    """
    Base class for wrapper handle misuse.

    Attributes:
        fixture_name: Identity of the wrapped method
    """

    fixture_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["fixture_name"] = self.fixture_name


@dataclass
class WrapperRestoredError(WrapperError):
    """Raised when restore() is called on an already restored handle."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Wrapper for {self.fixture_name} was already restored"
        if self.code == 0:
            self.code = ERROR_WRAPPER_RESTORED
        super().__post_init__()


@dataclass
class MissingCallbackError(WrapperError):
    """Raised when capture or replay is invoked without a callback."""

    mode: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.fixture_name} called without a callback in {self.mode} mode"
        if self.code == 0:
            self.code = ERROR_WRAPPER_MISSING_CALLBACK
        if not self.suggestion:
            self.suggestion = "Pass the completion callback last or as callback=..."
        super().__post_init__()
        self.context["mode"] = self.mode


# =============================================================================
# Replayed Errors
# =============================================================================


@dataclass
class CapturedError(EasyfixError):
    """
    Stand-in for a captured exception whose type cannot be imported on replay.

    Attributes:
        error_type: ``module:qualname`` of the original exception class
    """

    error_type: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_CAPTURED
        self.context["error_type"] = self.error_type
