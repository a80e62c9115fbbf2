"""
A barebones stream over the user input string, consumed by the engines'
input instructions.
"""
import re

from eso.eso_errors import EsoRuntimeError

_NON_DIGIT = re.compile(r"[^0-9]")


class InputStream:
    def __init__(self, text: str = ""):
        self._text = text

    @property
    def remaining(self) -> str:
        return self._text

    def get_number(self) -> int:
        """Consume leading whitespace and then an unsigned integer."""
        self._text = self._text.lstrip()
        if self._text == "":
            raise EsoRuntimeError("Unexpected end of input")
        m = _NON_DIGIT.search(self._text)
        posn = m.start() if m else len(self._text)
        if posn == 0:
            raise EsoRuntimeError(f"Unexpected input character: '{self._text[0]}'")
        num_str, self._text = self._text[:posn], self._text[posn:]
        return int(num_str, 10)

    def get_char(self) -> int:
        """Consume one character and return its code, or -1 at end of input."""
        if self._text == "":
            return -1
        ch, self._text = self._text[0], self._text[1:]
        return ord(ch)
