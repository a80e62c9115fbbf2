"""
Error types shared by the language engines and the execution controller.
"""
import traceback
from typing import Any, Dict, Optional

from eso.eso_datatypes import DocumentRange


class ParseError(Exception):
    """Raised when a program is syntactically invalid. Always carries a location."""
    def __init__(self, message: str, doc_range: DocumentRange):
        super().__init__(message)
        self.message = message
        self.range = doc_range

    def format_error(self, source: Optional[str] = None) -> str:
        """Formats the error with a 1-indexed line/col and, if given, the source around it."""
        line = self.range.start_line + 1
        col = self.range.start_col + 1 if self.range.start_col is not None else None
        col_info = f", col {col}" if col is not None else ""
        msg = f"ParseError: {self.message} (line {line}{col_info})"
        if source is not None:
            ctx = source_context(source, self.range)
            if ctx:
                msg = f"{msg}\n{ctx}"
        return msg


class EsoRuntimeError(Exception):
    """Raised inside a step when the user's program does something illegal."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def format_error(self) -> str:
        return f"RuntimeError: {self.message}"


class UnexpectedError(Exception):
    """Indicates a bug in an engine or in the controller."""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(f"Something unexpected occurred: {detail}" if detail else "Something unexpected occurred")


class ControllerError(Exception):
    """Raised when the controller is driven from a state that does not allow the call."""
    pass


def is_parse_error(error: Any) -> bool:
    return isinstance(error, ParseError) or getattr(error, "name", None) == "ParseError"


def is_runtime_error(error: Any) -> bool:
    return isinstance(error, EsoRuntimeError) or getattr(error, "name", None) == "RuntimeError"


def source_context(source: str, doc_range: DocumentRange, radius: int = 2) -> str:
    """
    Show the lines around `doc_range`, numbered from 1, and underline the
    range's columns on its first line. Ranges past the end of `source` give "".
    """
    lines = source.splitlines()
    row = doc_range.start_line
    if not 0 <= row < len(lines):
        return ""
    shown = range(max(0, row - radius), min(len(lines), row + radius + 1))
    width = len(str(shown[-1] + 1))
    out = []
    for idx in shown:
        marker = ">" if idx == row else " "
        out.append(f"{marker} {idx + 1:>{width}} | {lines[idx]}")
    if doc_range.start_col is not None:
        first = doc_range.start_col
        last = doc_range.end_col if doc_range.end_col is not None else len(lines[row])
        underline = " " * first + "^" * max(last - first, 1)
        out.insert(row - shown[0] + 1, f"  {'':>{width}} | {underline}")
    return "\n".join(out)


# --- Plain-object forms, as sent across a transport boundary ---

def serialize_parse_error(error: ParseError) -> Dict[str, Any]:
    return {"name": "ParseError", "message": error.message, "range": error.range.to_dict()}


def serialize_runtime_error(error: EsoRuntimeError) -> Dict[str, Any]:
    return {"name": "RuntimeError", "message": error.message}


def serialize_error(error: BaseException) -> Dict[str, Any]:
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return {"name": type(error).__name__, "message": str(error), "stack": stack}
