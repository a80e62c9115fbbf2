"""
Defines the value types exchanged between language engines, the execution
controller and its host.

Everything here is an immutable snapshot: engines build a fresh StepResult
for every step, and the controller derives a paused copy with `mark_paused`
instead of mutating the engine's result.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from eso.eso_errors import EsoRuntimeError


@dataclass(frozen=True)
class DocumentRange:
    """
    A zero-indexed range of source text.

    A missing `start_col` means "from the start of the line" and a missing
    `end_col` means "to the end of the line". `end_line` defaults to `start_line`.
    """
    start_line: int
    start_col: Optional[int] = None
    end_line: Optional[int] = None
    end_col: Optional[int] = None

    @classmethod
    def cell(cls, line: int, col: int) -> 'DocumentRange':
        """Range covering the single character at (line, col)."""
        return cls(start_line=line, start_col=col, end_col=col + 1)

    def to_dict(self) -> Dict[str, int]:
        out = {"startLine": self.start_line}
        if self.start_col is not None:
            out["startCol"] = self.start_col
        if self.end_line is not None:
            out["endLine"] = self.end_line
        if self.end_col is not None:
            out["endCol"] = self.end_col
        return out


@dataclass(frozen=True)
class DocumentEdit:
    """Replace `range` of the source with `text`. An empty range inserts."""
    range: DocumentRange
    text: str


Signal = Literal['paused']


@dataclass(frozen=True)
class StepResult:
    """The snapshot returned by one unit of execution."""
    display_state: Any
    next_location: Optional[DocumentRange]
    output: Optional[str] = None
    source_edits: Optional[List[DocumentEdit]] = None
    signal: Optional[Signal] = None
    error: Optional['EsoRuntimeError'] = None

    @property
    def finished(self) -> bool:
        return self.next_location is None

    def mark_paused(self) -> 'StepResult':
        return dataclasses.replace(self, signal='paused')
