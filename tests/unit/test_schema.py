"""
Unit tests for schema models and configuration loading.

Tests cover:
- WrapConfig validation
- Option layering (keywords, mappings, environment)
- YAML config files
- Outcome and FixtureRecord models
"""

from datetime import datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from easyfix.errors import (
    ConfigLoadError,
    ConfigurationError,
    InvalidModeError,
    MissingFixtureDirError,
)
from easyfix.schema import (
    FixtureMode,
    FixtureRecord,
    Outcome,
    OutcomeKind,
    WrapConfig,
    build_config,
    config_from_env,
    load_config,
    resolve_config,
)


class TestFixtureMode:
    """Tests for FixtureMode enum."""

    def test_values(self) -> None:
        """Modes are addressed by lowercase name."""
        assert FixtureMode("live") is FixtureMode.LIVE
        assert FixtureMode("capture") is FixtureMode.CAPTURE
        assert FixtureMode("replay") is FixtureMode.REPLAY

    def test_uses_fixtures(self) -> None:
        """Only live mode skips the store."""
        assert not FixtureMode.LIVE.uses_fixtures
        assert FixtureMode.CAPTURE.uses_fixtures
        assert FixtureMode.REPLAY.uses_fixtures


class TestWrapConfig:
    """Tests for WrapConfig model."""

    def test_defaults(self) -> None:
        """Default config is live with no dir."""
        config = WrapConfig()
        assert config.mode is FixtureMode.LIVE
        assert config.dir is None
        assert config.prefix is None

    def test_dir_coerced_to_path(self) -> None:
        """String directories become Paths."""
        config = WrapConfig(mode="capture", dir="tests/fixtures")
        assert config.dir == Path("tests/fixtures")

    def test_frozen(self) -> None:
        """Configs are immutable."""
        config = WrapConfig()
        with pytest.raises(ValidationError):
            config.mode = FixtureMode.REPLAY

    def test_unknown_key_rejected(self) -> None:
        """Typos in option names are errors."""
        with pytest.raises(ValidationError):
            WrapConfig(mode="live", directory="x")

    def test_fixture_modes_need_dir(self) -> None:
        """Capture without dir fails validation."""
        with pytest.raises(ValidationError):
            WrapConfig(mode="capture")


class TestBuildConfig:
    """Tests for translating validation failures."""

    def test_invalid_mode(self) -> None:
        """Bad mode raises InvalidModeError."""
        with pytest.raises(InvalidModeError) as exc_info:
            build_config({"mode": "record"})
        assert exc_info.value.mode == "record"

    def test_missing_dir(self) -> None:
        """Fixture mode without dir raises MissingFixtureDirError."""
        with pytest.raises(MissingFixtureDirError) as exc_info:
            build_config({"mode": "replay"})
        assert exc_info.value.mode == "replay"

    def test_other_option(self) -> None:
        """Other problems surface as ConfigurationError naming the option."""
        with pytest.raises(ConfigurationError) as exc_info:
            build_config({"mode": "live", "prefix": ""})
        assert exc_info.value.option == "prefix"

    def test_unknown_option(self) -> None:
        """Unknown keys name themselves."""
        with pytest.raises(ConfigurationError) as exc_info:
            build_config({"colour": "red"})
        assert exc_info.value.option == "colour"


class TestResolveConfig:
    """Tests for option layering."""

    def test_keywords_only(self) -> None:
        """Keyword options alone build a config."""
        config = resolve_config(mode="capture", dir="f")
        assert config.mode is FixtureMode.CAPTURE

    def test_config_object_used_as_is(self) -> None:
        """A WrapConfig without overrides is returned unchanged."""
        config = WrapConfig(mode="replay", dir="f")
        assert resolve_config(config) is config

    def test_keywords_override_config(self) -> None:
        """Keyword options win over the config."""
        config = resolve_config(WrapConfig(mode="replay", dir="f"), mode="live")
        assert config.mode is FixtureMode.LIVE
        assert config.dir == Path("f")

    def test_mapping_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Mapping keys win over EASYFIX_* variables."""
        monkeypatch.setenv("EASYFIX_MODE", "replay")
        monkeypatch.setenv("EASYFIX_DIR", "from-env")

        config = resolve_config({"mode": "capture"})

        assert config.mode is FixtureMode.CAPTURE
        assert config.dir == Path("from-env")

    def test_environment_ignored_for_config_object(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An explicit WrapConfig is not mixed with the environment."""
        monkeypatch.setenv("EASYFIX_PREFIX", "from-env")

        config = resolve_config(WrapConfig(), mode="live")

        assert config.prefix is None


class TestConfigFromEnv:
    """Tests for reading the environment."""

    def test_reads_set_variables(self) -> None:
        """Set variables map onto option names."""
        env = {"EASYFIX_MODE": "capture", "EASYFIX_DIR": "d", "EASYFIX_PREFIX": "p"}
        assert config_from_env(env) == {"mode": "capture", "dir": "d", "prefix": "p"}

    def test_skips_empty_variables(self) -> None:
        """Empty variables count as unset."""
        assert config_from_env({"EASYFIX_MODE": "", "OTHER": "x"}) == {}


class TestLoadConfig:
    """Tests for YAML config files."""

    def test_load(self, temp_dir: Path) -> None:
        """Load a valid YAML file."""
        path = temp_dir / "easyfix.yaml"
        path.write_text("mode: replay\ndir: tests/fixtures\nprefix: api\n")

        config = load_config(path)

        assert config.mode is FixtureMode.REPLAY
        assert config.dir == Path("tests/fixtures")
        assert config.prefix == "api"

    def test_empty_file_is_live(self, temp_dir: Path) -> None:
        """An empty file gives the defaults."""
        path = temp_dir / "easyfix.yaml"
        path.write_text("")
        assert load_config(path).mode is FixtureMode.LIVE

    def test_missing_file(self, temp_dir: Path) -> None:
        """Missing files raise ConfigLoadError."""
        with pytest.raises(ConfigLoadError):
            load_config(temp_dir / "nope.yaml")

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        """Unparseable YAML raises ConfigLoadError."""
        path = temp_dir / "easyfix.yaml"
        path.write_text("mode: [unclosed\n")
        with pytest.raises(ConfigLoadError):
            load_config(path)

    def test_not_a_mapping(self, temp_dir: Path) -> None:
        """A YAML list is not a config."""
        path = temp_dir / "easyfix.yaml"
        path.write_text("- live\n- replay\n")
        with pytest.raises(ConfigLoadError) as exc_info:
            load_config(path)
        assert "mapping" in exc_info.value.message

    def test_invalid_mode_in_file(self, temp_dir: Path) -> None:
        """File contents are validated like keyword options."""
        path = temp_dir / "easyfix.yaml"
        path.write_text("mode: rewind\n")
        with pytest.raises(InvalidModeError):
            load_config(path)


class TestOutcome:
    """Tests for Outcome model."""

    def test_result(self) -> None:
        """No error means a result outcome."""
        outcome = Outcome.from_callback(None, {"val": 1})

        assert outcome.kind is OutcomeKind.RESULT
        assert outcome.to_callback_args() == (None, {"val": 1})

    def test_error_wins(self) -> None:
        """An error outcome drops any result passed alongside it."""
        outcome = Outcome.from_callback(KeyError("k"), "ignored")
        error, result = outcome.to_callback_args()

        assert outcome.kind is OutcomeKind.ERROR
        assert isinstance(error, KeyError)
        assert error.args == ("k",)
        assert result is None

    def test_none_result(self) -> None:
        """A callback with neither argument set is a None result."""
        outcome = Outcome.from_callback(None, None)
        assert outcome.kind is OutcomeKind.RESULT
        assert outcome.value is None


class TestFixtureRecord:
    """Tests for FixtureRecord model."""

    def test_defaults(self) -> None:
        """Version and timestamp are filled in."""
        record = FixtureRecord(
            name="Client.fetch",
            ordinal=1,
            outcome=Outcome(kind=OutcomeKind.RESULT, value=1),
        )
        assert record.version == 1
        assert isinstance(record.recorded_at, datetime)
        assert record.args == []
        assert record.kwargs == {}

    def test_ordinal_starts_at_one(self) -> None:
        """Ordinal 0 is invalid."""
        with pytest.raises(ValidationError):
            FixtureRecord(
                name="Client.fetch",
                ordinal=0,
                outcome=Outcome(kind=OutcomeKind.RESULT),
            )

    def test_json_round_trip(self) -> None:
        """Records survive JSON serialization."""
        record = FixtureRecord(
            name="Client.fetch",
            ordinal=2,
            args={"$id": 0, "$list": ["a"]},
            outcome=Outcome(kind=OutcomeKind.ERROR, value={"$id": 0, "$error": "builtins:ValueError"}),
        )
        restored = FixtureRecord.model_validate_json(record.model_dump_json())
        assert restored == record
