"""
Schema definitions for easyfix.

This module defines the Pydantic models used throughout easyfix:
- WrapConfig: How a wrapped method behaves (mode, fixture dir, fixture name)
- FixtureRecord/Outcome: The durable form of one captured call
- FixtureSummary: Listing entry used by the store and the CLI

Design Decisions:
    - Models are immutable (frozen=True) and reject unknown keys
    - A record holds either an error outcome or a result outcome, never both
    - Canonical values (see easyfix.codec) are stored as plain JSON data
"""

import os
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from easyfix.codec import canonicalize, materialize
from easyfix.errors import (
    ConfigLoadError,
    ConfigurationError,
    InvalidModeError,
    MissingFixtureDirError,
)

RECORD_VERSION = 1

ENV_MODE = "EASYFIX_MODE"
ENV_DIR = "EASYFIX_DIR"
ENV_PREFIX = "EASYFIX_PREFIX"


# =============================================================================
# Enums
# =============================================================================


class FixtureMode(str, Enum):
    """How a wrapped method treats its calls."""

    LIVE = "live"
    CAPTURE = "capture"
    REPLAY = "replay"

    @property
    def uses_fixtures(self) -> bool:
        """Whether this mode reads or writes the fixture store."""
        return self is not FixtureMode.LIVE


class OutcomeKind(str, Enum):
    """Which side of ``callback(error, result)`` a call completed with."""

    ERROR = "error"
    RESULT = "result"


# =============================================================================
# Configuration
# =============================================================================


class WrapConfig(BaseModel):
    """
    Configuration for a single wrapped method.

    Attributes:
        mode: live, capture or replay
        dir: Fixture directory (required for capture and replay)
        prefix: Fixture name override; defaults to "<target>.<method>"
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: FixtureMode = Field(
        default=FixtureMode.LIVE,
        description="Fixture mode",
    )
    dir: Path | None = Field(
        default=None,
        description="Fixture directory",
    )
    prefix: str | None = Field(
        default=None,
        description="Fixture name override",
        min_length=1,
    )

    @model_validator(mode="after")
    def require_dir_for_fixture_io(self) -> "WrapConfig":
        """Capture and replay both need somewhere to keep fixtures."""
        if self.mode.uses_fixtures and self.dir is None:
            raise PydanticCustomError(
                "missing_dir",
                "mode {mode} requires a fixture directory",
                {"mode": self.mode.value},
            )
        return self


def build_config(data: Mapping[str, Any]) -> WrapConfig:
    """
    Validate raw options into a WrapConfig.

    Args:
        data: Option mapping (mode, dir, prefix)

    Returns:
        Validated WrapConfig

    Raises:
        InvalidModeError: If mode is not live, capture or replay
        MissingFixtureDirError: If capture/replay is requested without dir
        ConfigurationError: For any other invalid option
    """
    try:
        return WrapConfig.model_validate(dict(data))
    except ValidationError as e:
        raise _config_error(e, data) from e


def _config_error(exc: ValidationError, data: Mapping[str, Any]) -> ConfigurationError:
    """Translate the first pydantic error into our error hierarchy."""
    first = exc.errors()[0]
    loc = first.get("loc", ())
    mode = data.get("mode")
    mode_text = mode.value if isinstance(mode, FixtureMode) else str(mode)

    if loc and loc[0] == "mode":
        return InvalidModeError(mode=mode_text)
    if first.get("type") == "missing_dir":
        return MissingFixtureDirError(mode=mode_text)
    option = str(loc[0]) if loc else None
    return ConfigurationError(
        message=f"Invalid option {option}: {first.get('msg', '')}",
        option=option,
    )


def resolve_config(
    config: WrapConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> WrapConfig:
    """
    Combine a config, keyword overrides and the environment.

    A WrapConfig without overrides is used as-is. Otherwise keys come from
    ``options``, then ``config``, then EASYFIX_* environment variables.
    """
    if isinstance(config, WrapConfig):
        if not options:
            return config
        data = config.model_dump()
    else:
        data = {**config_from_env(), **dict(config or {})}
    data.update(options)
    return build_config(data)


def config_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Read wrap options from the environment.

    Only variables that are set (and non-empty) are returned, so the result
    can be layered under explicit options.
    """
    env = os.environ if environ is None else environ
    options: dict[str, Any] = {}
    for key, var in (("mode", ENV_MODE), ("dir", ENV_DIR), ("prefix", ENV_PREFIX)):
        value = env.get(var)
        if value:
            options[key] = value
    return options


def load_config(path: Path | str) -> WrapConfig:
    """
    Load a wrap configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated WrapConfig

    Raises:
        ConfigLoadError: If the file can't be read or isn't a YAML mapping
        ConfigurationError: If the options don't validate
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(path=str(path), underlying_error=str(e)) from e

    if not isinstance(data, dict):
        raise ConfigLoadError(path=str(path), underlying_error="expected a mapping")

    return build_config(data)


# =============================================================================
# Fixture Records
# =============================================================================


class Outcome(BaseModel):
    """
    How one call completed.

    Attributes:
        kind: error or result
        value: Canonical form of the error or the result
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: OutcomeKind = Field(..., description="Which callback argument was set")
    value: Any = Field(default=None, description="Canonical error or result")

    @classmethod
    def from_callback(cls, error: Any, result: Any) -> "Outcome":
        """Build an outcome from ``callback(error, result)`` arguments."""
        if error is not None:
            return cls(kind=OutcomeKind.ERROR, value=canonicalize(error))
        return cls(kind=OutcomeKind.RESULT, value=canonicalize(result))

    def to_callback_args(self) -> tuple[Any, Any]:
        """Materialize back into ``(error, result)``."""
        value = materialize(self.value)
        if self.kind is OutcomeKind.ERROR:
            return value, None
        return None, value


class FixtureRecord(BaseModel):
    """
    The persisted form of one captured call.

    Attributes:
        version: Record format version
        name: Fixture name (method identity)
        ordinal: 1-based position of the call within its wrapper
        args: Canonical positional arguments (callback removed)
        kwargs: Canonical keyword arguments (callback removed)
        outcome: How the call completed
        recorded_at: Capture time
        args_hash: SHA256 of the canonical arguments, checked on read
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = Field(default=RECORD_VERSION, description="Record format version")
    name: str = Field(..., description="Fixture name", min_length=1)
    ordinal: int = Field(..., description="Call ordinal", ge=1)
    args: Any = Field(default_factory=list, description="Canonical positional args")
    kwargs: Any = Field(default_factory=dict, description="Canonical keyword args")
    outcome: Outcome = Field(..., description="Error or result")
    recorded_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Capture time",
    )
    args_hash: str = Field(default="", description="SHA256 of canonical args")


class FixtureSummary(BaseModel):
    """One row of a fixture listing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    ordinal: int
    path: Path
    size_bytes: int
    kind: OutcomeKind | None = None
    recorded_at: datetime | None = None
