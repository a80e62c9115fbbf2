from __future__ import annotations

import dataclasses
import enum
import json
from typing import Any, Dict, Optional

import yaml

from eso.eso_datatypes import DocumentRange, StepResult
from eso.eso_errors import (
    EsoRuntimeError, ParseError,
    serialize_error, serialize_parse_error, serialize_runtime_error,
)


# --------------------------
# Helpers
# --------------------------

def _to_builtin(obj: Any) -> Any:
    """Recursively convert engine values (dataclasses, enums, errors) to plain data."""
    if isinstance(obj, ParseError):
        return serialize_parse_error(obj)
    if isinstance(obj, EsoRuntimeError):
        return serialize_runtime_error(obj)
    if isinstance(obj, BaseException):
        return serialize_error(obj)
    if isinstance(obj, DocumentRange):
        return obj.to_dict()
    if isinstance(obj, enum.Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: _to_builtin(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, dict):
        return {_key(k): _to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_to_builtin(x) for x in obj]
    return obj


def _key(k: Any) -> Any:
    # JSON object keys must be strings; bowl and tape ids are ints
    return str(k) if isinstance(k, int) and not isinstance(k, bool) else k


# --------------------------
# Public API
# --------------------------

def serialize(value: Any, *, fmt: str = "json", pretty: bool = True) -> str:
    """
    Convert a result, error or display state into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = _to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(data: bytes | bytearray | str, *, fmt: str = "json") -> Any:
    """Parse text produced by `serialize` back into plain Python data."""
    text = data.decode('utf-8', errors='replace') if isinstance(data, (bytes, bytearray)) else data
    f = (fmt or '').lower()
    if f == 'json':
        return json.loads(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


# --------------------------
# Transport messages
# --------------------------

def ack_message(kind: str, error: Optional[BaseException] = None) -> Dict[str, Any]:
    """Acknowledges a request such as "init", "prepare" or "pause"."""
    msg: Dict[str, Any] = {"type": "ack", "data": kind}
    if error is not None:
        msg["error"] = _to_builtin(error)
    return msg


def result_message(result: StepResult) -> Dict[str, Any]:
    """A step result; a runtime error travels alongside the result it interrupted."""
    data = _to_builtin(result)
    error = data.pop("error", None)
    msg: Dict[str, Any] = {"type": "result", "data": data}
    if error is not None:
        msg["error"] = error
    return msg


def error_message(error: BaseException) -> Dict[str, Any]:
    """An unexpected failure, reported with its traceback."""
    return {"type": "error", "error": serialize_error(error)}


__all__ = [
    "serialize",
    "deserialize",
    "ack_message",
    "result_message",
    "error_message",
]
