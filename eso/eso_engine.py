"""
The contract every language engine satisfies.

A concrete engine implements the underscore hooks; the public methods below
are the only surface the execution controller uses. Parse failures come back
from `validate_code`/`prepare` as values, and runtime failures come back from
`execute_step` inside the StepResult, so neither crosses the engine boundary
as an exception.
"""
import os
import sys
from abc import ABC, abstractmethod
from typing import Any, Optional

from eso.eso_datatypes import DocumentRange, StepResult
from eso.eso_errors import EsoRuntimeError, ParseError


class LanguageEngine(ABC):
    """The required base class for every language implementation."""

    #: Registry key, e.g. "chef"
    name: str = ""

    def __init__(self):
        self.state = self._fresh_state()

    def validate_code(self, code: str) -> Optional[ParseError]:
        """Check the syntax of `code`. Returns the ParseError, if any."""
        try:
            self._parse(code)
        except ParseError as e:
            return e
        return None

    def prepare(self, code: str, user_input: str = "") -> Optional[ParseError]:
        """Load code and user input and get ready for `execute_step`."""
        try:
            program = self._parse(code)
        except ParseError as e:
            self._dbg("prepare rejected:", e.message)
            return e
        self.state = self._fresh_state()
        self._load(program, user_input)
        return None

    def execute_step(self) -> StepResult:
        """Perform a single step of execution."""
        try:
            return self._step()
        except EsoRuntimeError as e:
            self._dbg("runtime error:", e.message)
            return StepResult(
                display_state=self._display_state(),
                next_location=self._current_location(),
                error=e,
            )

    def reset_state(self) -> None:
        """Drop the loaded program and all runtime state."""
        self.state = self._fresh_state()

    # --- Hooks for concrete engines ---

    @abstractmethod
    def _fresh_state(self) -> Any:
        """Build the default (pre-prepare) execution state."""
        raise NotImplementedError

    @abstractmethod
    def _parse(self, code: str) -> Any:
        """Parse code into a program. Raises ParseError."""
        raise NotImplementedError

    @abstractmethod
    def _load(self, program: Any, user_input: str) -> None:
        """Install a parsed program into the freshly reset state."""
        raise NotImplementedError

    @abstractmethod
    def _step(self) -> StepResult:
        """Execute one step. May raise EsoRuntimeError."""
        raise NotImplementedError

    @abstractmethod
    def _display_state(self) -> Any:
        raise NotImplementedError

    @abstractmethod
    def _current_location(self) -> Optional[DocumentRange]:
        """Location of the instruction the program counter points at."""
        raise NotImplementedError

    def _dbg(self, *parts):
        if os.environ.get("ESO_DEBUG"):
            print("[DBG]", f"{self.name}:", *parts, file=sys.stderr)
