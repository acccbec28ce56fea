"""
Canonical form for fixture values.

canonicalize() turns an arbitrary Python object graph into JSON-compatible
data; materialize() turns it back. Mutable containers and objects get an
arena index (``"$id"``) the first time they are seen, and every later visit
is written as ``{"$ref": index}``. That keeps self-referential arguments
finite on disk and lets materialize() rebuild the same cyclic shape.

Node forms:
    scalars                 None, bool, int, str, finite float as-is
    {"$float": "nan"}       non-finite floats
    {"$id", "$dict"}        dict with str keys
    {"$id", "$pairs"}       dict with other keys, as [key, value] pairs
    {"$id", "$list"}        list
    {"$id", "$set"}         set
    {"$tuple"}              tuple
    {"$frozenset"}          frozenset
    {"$bytes"}              base64
    {"$datetime"}           ISO 8601
    {"$date"}               ISO 8601
    {"$path"}               str(path)
    {"$enum", "value"}      Enum member by value
    {"$id", "$model", ...}  pydantic model: class, fields
    {"$id", "$error", ...}  exception: class, args, attributes, message
    {"$id", "$object", ...} object with __dict__: class, attributes
    {"$repr"}               anything else; materializes to the repr string
    {"$ref"}                back-reference to an earlier "$id"
"""

import base64
import dataclasses
import importlib
import math
import types
from datetime import date, datetime
from enum import Enum
from pathlib import Path, PurePath
from typing import Any

from pydantic import BaseModel

from easyfix.errors import CapturedError, CodecError
from easyfix.log import get_logger

logger = get_logger(__name__)

_SCALARS = (str, int, bool, type(None))


def canonicalize(value: Any) -> Any:
    """Convert a value into its JSON-compatible canonical form."""
    return _Encoder().encode(value)


def materialize(form: Any) -> Any:
    """
    Rebuild a value from its canonical form.

    Raises:
        CodecError: If the form references an unknown index or is malformed
    """
    try:
        return _Decoder().decode(form)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise CodecError(node=type(e).__name__,
                         message=f"Malformed canonical form: {e}") from e


def class_path(cls: type) -> str:
    """Return the ``module:qualname`` locator for a class."""
    return f"{cls.__module__}:{cls.__qualname__}"


def locate_class(path: str) -> type | None:
    """Import a class from a ``module:qualname`` locator, or return None."""
    module_name, _, qualname = path.partition(":")
    if not qualname or "<locals>" in qualname:
        return None
    try:
        obj: Any = importlib.import_module(module_name)
        for part in qualname.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError):
        logger.debug(f"Cannot locate class {path}")
        return None
    return obj if isinstance(obj, type) else None


class _Encoder:
    """Single-use encoder holding the identity -> index arena."""

    def __init__(self) -> None:
        self._ids: dict[int, int] = {}
        # Keep visited objects alive so their ids can't be reused mid-walk
        self._seen: list[Any] = []

    def encode(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return {"$enum": class_path(type(value)), "value": self.encode(value.value)}
        if isinstance(value, _SCALARS):
            return value
        if isinstance(value, float):
            if math.isfinite(value):
                return value
            return {"$float": repr(value)}
        if isinstance(value, (bytes, bytearray)):
            return {"$bytes": base64.b64encode(bytes(value)).decode("ascii")}
        if isinstance(value, datetime):
            return {"$datetime": value.isoformat()}
        if isinstance(value, date):
            return {"$date": value.isoformat()}
        if isinstance(value, PurePath):
            return {"$path": str(value)}
        if isinstance(value, tuple):
            return {"$tuple": [self.encode(item) for item in value]}
        if isinstance(value, frozenset):
            return {"$frozenset": [self.encode(item) for item in value]}
        if isinstance(value, (type, types.ModuleType)) or (
            callable(value) and not isinstance(value, BaseException)
        ):
            return {"$repr": repr(value)}

        key = id(value)
        if key in self._ids:
            return {"$ref": self._ids[key]}
        index = self._ids[key] = len(self._seen)
        self._seen.append(value)

        if isinstance(value, BaseModel):
            return {
                "$id": index,
                "$model": class_path(type(value)),
                "fields": {
                    name: self.encode(getattr(value, name))
                    for name in type(value).model_fields
                },
            }
        if isinstance(value, dict):
            if all(isinstance(k, str) for k in value):
                return {"$id": index, "$dict": {k: self.encode(v) for k, v in value.items()}}
            return {
                "$id": index,
                "$pairs": [[self.encode(k), self.encode(v)] for k, v in value.items()],
            }
        if isinstance(value, list):
            return {"$id": index, "$list": [self.encode(item) for item in value]}
        if isinstance(value, set):
            return {"$id": index, "$set": [self.encode(item) for item in value]}
        if isinstance(value, BaseException):
            return {
                "$id": index,
                "$error": class_path(type(value)),
                "message": str(value),
                "args": [self.encode(arg) for arg in value.args],
                "attrs": {k: self.encode(v) for k, v in vars(value).items()},
            }
        if hasattr(value, "__dict__"):
            return {
                "$id": index,
                "$object": class_path(type(value)),
                "attrs": {k: self.encode(v) for k, v in vars(value).items()},
            }
        return {"$id": index, "$repr": repr(value)}


class _Decoder:
    """Single-use decoder holding the index -> object arena."""

    def __init__(self) -> None:
        self._arena: dict[int, Any] = {}

    def _register(self, node: dict[str, Any], value: Any) -> Any:
        if "$id" in node:
            self._arena[node["$id"]] = value
        return value

    def decode(self, node: Any) -> Any:
        if isinstance(node, list):
            # Bare lists only appear inside hand-written fixtures
            return [self.decode(item) for item in node]
        if not isinstance(node, dict):
            return node

        if "$ref" in node:
            try:
                return self._arena[node["$ref"]]
            except KeyError:
                raise CodecError(node=f"$ref {node['$ref']}",
                                 message=f"Unresolved back-reference {node['$ref']}") from None
        if "$dict" in node:
            out: dict[Any, Any] = self._register(node, {})
            for key, item in node["$dict"].items():
                out[key] = self.decode(item)
            return out
        if "$pairs" in node:
            out = self._register(node, {})
            for key, item in node["$pairs"]:
                out[self.decode(key)] = self.decode(item)
            return out
        if "$list" in node:
            items: list[Any] = self._register(node, [])
            items.extend(self.decode(item) for item in node["$list"])
            return items
        if "$set" in node:
            members: set[Any] = self._register(node, set())
            members.update(self.decode(item) for item in node["$set"])
            return members
        if "$tuple" in node:
            return tuple(self.decode(item) for item in node["$tuple"])
        if "$frozenset" in node:
            return frozenset(self.decode(item) for item in node["$frozenset"])
        if "$float" in node:
            return float(node["$float"])
        if "$bytes" in node:
            return base64.b64decode(node["$bytes"])
        if "$datetime" in node:
            return datetime.fromisoformat(node["$datetime"])
        if "$date" in node:
            return date.fromisoformat(node["$date"])
        if "$path" in node:
            return Path(node["$path"])
        if "$enum" in node:
            return self._decode_enum(node)
        if "$model" in node:
            return self._decode_model(node)
        if "$error" in node:
            return self._decode_error(node)
        if "$object" in node:
            return self._decode_object(node)
        if "$repr" in node:
            return self._register(node, node["$repr"])

        # Plain mappings only appear inside hand-written fixtures
        return {key: self.decode(item) for key, item in node.items()}

    def _decode_enum(self, node: dict[str, Any]) -> Any:
        value = self.decode(node["value"])
        cls = locate_class(node["$enum"])
        if cls is None or not issubclass(cls, Enum):
            return value
        try:
            return cls(value)
        except ValueError:
            return value

    def _decode_model(self, node: dict[str, Any]) -> Any:
        cls = locate_class(node["$model"])
        if cls is None or not issubclass(cls, BaseModel):
            model: Any = types.SimpleNamespace()
        else:
            model = cls.model_construct()
        self._register(node, model)

        fields = node["fields"]
        for name, item in fields.items():
            object.__setattr__(model, name, self.decode(item))
        if isinstance(model, BaseModel):
            object.__setattr__(model, "__pydantic_fields_set__", set(fields))
        return model

    def _decode_error(self, node: dict[str, Any]) -> BaseException:
        cls = locate_class(node["$error"])
        error: BaseException | None = None
        if cls is not None and issubclass(cls, BaseException):
            try:
                error = cls.__new__(cls)
            except TypeError:
                logger.debug(f"Cannot allocate {node['$error']}")

        if error is None:
            error = CapturedError(message=node.get("message", ""), error_type=node["$error"])
            reserved = {f.name for f in dataclasses.fields(CapturedError)}
        else:
            reserved = set()
        self._register(node, error)

        # Decode everything even for stand-ins so later $refs resolve
        error.args = tuple(self.decode(arg) for arg in node.get("args", []))
        for key, item in node.get("attrs", {}).items():
            value = self.decode(item)
            if key not in reserved:
                setattr(error, key, value)
        return error

    def _decode_object(self, node: dict[str, Any]) -> Any:
        cls = locate_class(node["$object"])
        if cls is None:
            obj: Any = types.SimpleNamespace()
        else:
            try:
                obj = cls.__new__(cls)
            except TypeError as e:
                raise CodecError(node=node["$object"],
                                 message=f"Cannot allocate {node['$object']}: {e}") from e
        self._register(node, obj)
        attrs = vars(obj)
        for key, item in node.get("attrs", {}).items():
            attrs[key] = self.decode(item)
        return obj
