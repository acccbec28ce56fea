"""
Filesystem storage for easyfix.

One JSON document per captured call, keyed by fixture name (the wrapped
method's identity) and call ordinal:

    <dir>/<name>-<ordinal>.json

Design Principles:
    - Overwrite on capture: re-capturing a call replaces its record
    - Integrity: args_hash lets a read detect hand-edited arguments
    - Plain files: fixtures diff and review like any other test data
"""

import hashlib
import json
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from easyfix.errors import (
    FixtureCorruptError,
    FixtureNotFoundError,
    FixtureReadError,
    FixtureWriteError,
)
from easyfix.log import get_logger
from easyfix.schema import FixtureRecord, FixtureSummary

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
_FILE_PATTERN = re.compile(r"^(?P<name>.+)-(?P<ordinal>[0-9]+)\.json$")


def compute_hash(data: Any) -> str:
    """Compute SHA256 hash of data."""
    if data is None:
        return ""
    if isinstance(data, str):
        content = data.encode("utf-8")
    elif isinstance(data, bytes):
        content = data
    else:
        content = json.dumps(data, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def args_hash(args: Any, kwargs: Any) -> str:
    """Hash the canonical arguments of a record."""
    return compute_hash({"args": args, "kwargs": kwargs})


def safe_name(name: str) -> str:
    """Make a fixture name usable as a file name."""
    return _UNSAFE_CHARS.sub("_", name)


class FixtureStore:
    """
    Directory of fixture records.

    Usage:
        store = FixtureStore("tests/fixtures")
        store.put("Client.fetch", 1, record)
        record = store.get("Client.fetch", 1)

    Attributes:
        base_dir: Root directory; created on first write
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def __repr__(self) -> str:
        return f"FixtureStore({str(self.base_dir)!r})"

    def path_for(self, name: str, ordinal: int) -> Path:
        """Location of the record for one call."""
        return self.base_dir / f"{safe_name(name)}-{ordinal}.json"

    def put(self, name: str, ordinal: int, record: FixtureRecord) -> Path:
        """
        Persist a record, replacing any earlier one at the same key.

        Args:
            name: Fixture name
            ordinal: Call ordinal
            record: Record to write

        Returns:
            Path of the written file

        Raises:
            FixtureWriteError: If the record can't be serialized or written
        """
        path = self.path_for(name, ordinal)
        try:
            payload = record.model_dump_json(indent=2)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload + "\n", encoding="utf-8")
        except (OSError, ValueError, TypeError) as e:
            raise FixtureWriteError(
                name=name,
                ordinal=ordinal,
                path=str(path),
                underlying_error=str(e),
            ) from e

        logger.debug(f"Saved fixture {path}")
        return path

    def get(self, name: str, ordinal: int) -> FixtureRecord:
        """
        Load the record for one call.

        Args:
            name: Fixture name
            ordinal: Call ordinal

        Returns:
            The stored FixtureRecord

        Raises:
            FixtureNotFoundError: If nothing was captured for this key
            FixtureReadError: If the file can't be read
            FixtureCorruptError: If the file isn't a valid record
        """
        path = self.path_for(name, ordinal)
        if not path.exists():
            raise FixtureNotFoundError(name=name, ordinal=ordinal, path=str(path))
        return self.load(path, name=name, ordinal=ordinal)

    def load(self, path: Path, name: str = "", ordinal: int = 0) -> FixtureRecord:
        """Read and validate a record file."""
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise FixtureReadError(
                name=name, ordinal=ordinal, path=str(path), underlying_error=str(e)
            ) from e

        try:
            record = FixtureRecord.model_validate_json(raw)
        except ValidationError as e:
            raise FixtureCorruptError(
                name=name, ordinal=ordinal, path=str(path), underlying_error=str(e)
            ) from e

        if record.args_hash and record.args_hash != args_hash(record.args, record.kwargs):
            raise FixtureCorruptError(
                name=name or record.name,
                ordinal=ordinal or record.ordinal,
                path=str(path),
                underlying_error="args_hash does not match stored arguments",
            )
        return record

    def _files(self, name: str | None = None) -> list[tuple[str, int, Path]]:
        """Record files as (name, ordinal, path), ordered by name then ordinal."""
        if not self.base_dir.is_dir():
            return []

        wanted = safe_name(name) if name is not None else None
        found = []
        for path in self.base_dir.glob("*.json"):
            match = _FILE_PATTERN.match(path.name)
            if match is None:
                continue
            if wanted is not None and match["name"] != wanted:
                continue
            found.append((match["name"], int(match["ordinal"]), path))
        return sorted(found, key=lambda item: (item[0], item[1]))

    def list_fixtures(self, name: str | None = None) -> list[FixtureSummary]:
        """
        List stored records.

        Unreadable records are still listed, without kind/recorded_at.

        Args:
            name: Only list records for this fixture name

        Returns:
            Summaries ordered by name then ordinal
        """
        summaries = []
        for file_name, ordinal, path in self._files(name):
            kind = None
            recorded_at = None
            try:
                record = self.load(path, name=file_name, ordinal=ordinal)
                kind = record.outcome.kind
                recorded_at = record.recorded_at
            except (FixtureReadError, FixtureCorruptError) as e:
                logger.warning(f"Skipping details for {path}: {e.message}")

            summaries.append(FixtureSummary(
                name=file_name,
                ordinal=ordinal,
                path=path,
                size_bytes=path.stat().st_size,
                kind=kind,
                recorded_at=recorded_at,
            ))
        return summaries

    def verify(self, name: str | None = None) -> dict[str, Any]:
        """
        Check every stored record.

        Each record must load, match its file's name and ordinal, and each
        fixture name's ordinals must run 1..N without gaps.

        Returns:
            Dictionary with verification results:
                - valid: Whether all checks passed
                - errors: List of any issues found
                - stats: Record count per fixture name
        """
        errors: list[str] = []
        ordinals: dict[str, list[int]] = {}

        for file_name, ordinal, path in self._files(name):
            ordinals.setdefault(file_name, []).append(ordinal)
            try:
                record = self.load(path, name=file_name, ordinal=ordinal)
            except (FixtureReadError, FixtureCorruptError) as e:
                errors.append(f"{path.name}: {e.message}")
                continue

            if record.ordinal != ordinal:
                errors.append(
                    f"{path.name}: stored ordinal {record.ordinal} does not match file"
                )
            if safe_name(record.name) != file_name:
                errors.append(
                    f"{path.name}: stored name {record.name!r} does not match file"
                )

        for file_name, found in ordinals.items():
            expected = list(range(1, len(found) + 1))
            if found != expected:
                missing = sorted(set(range(1, max(found) + 1)) - set(found))
                errors.append(f"{file_name}: missing ordinals {missing}")

        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "stats": {fixture: len(found) for fixture, found in ordinals.items()},
        }

    def clear(self, name: str | None = None) -> int:
        """
        Delete stored records.

        Args:
            name: Only delete records for this fixture name

        Returns:
            Number of files deleted
        """
        deleted = 0
        for _, _, path in self._files(name):
            path.unlink()
            deleted += 1
            logger.debug(f"Deleted fixture {path}")

        logger.info(f"Cleared {deleted} fixtures from {self.base_dir}")
        return deleted
