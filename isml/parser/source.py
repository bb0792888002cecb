"""
Source Reader for ISML templates.

Wraps the raw template text and tracks offset, line and column while the
lexer walks over it.
"""

from dataclasses import dataclass
from typing import Optional

from isml.parser.exceptions import InvalidSourceError


@dataclass(frozen=True)
class Position:
    """A point in the source: 0-based offset, 1-based line and column."""
    offset: int = 0
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class SourceSpan:
    """
    A half-open region of the source text.

    Zero-length spans mark synthetic recovery points (for example the
    detection point of an auto-closed element).
    """
    start_offset: int
    end_offset: int
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def between(cls, start: Position, end: Position) -> 'SourceSpan':
        return cls(
            start.offset, end.offset,
            start.line, start.column,
            end.line, end.column
        )

    @classmethod
    def at(cls, point: Position) -> 'SourceSpan':
        return cls.between(point, point)

    @property
    def start(self) -> Position:
        return Position(self.start_offset, self.start_line, self.start_column)

    @property
    def end(self) -> Position:
        return Position(self.end_offset, self.end_line, self.end_column)

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset

    @property
    def is_empty(self) -> bool:
        return self.start_offset == self.end_offset

    def contains(self, other: 'SourceSpan') -> bool:
        """Check if other lies fully inside this span."""
        return self.start_offset <= other.start_offset and other.end_offset <= self.end_offset

    def to_dict(self) -> dict:
        return {
            'start_offset': self.start_offset,
            'end_offset': self.end_offset,
            'start_line': self.start_line,
            'start_column': self.start_column,
            'end_line': self.end_line,
            'end_column': self.end_column,
        }

    def __str__(self):
        return f"{self.start_line}:{self.start_column}"


class SourceReader:
    """
    Character cursor over an in-memory template.

    Both "\\n" and "\\r\\n" count as a single line break. Reading past the
    end never fails; peek() and advance() return None instead.
    """

    def __init__(self, text: str):
        if text is None:
            raise InvalidSourceError("Template source is required")
        if not isinstance(text, str):
            raise InvalidSourceError(
                f"Template source must be a string, got {type(text).__name__}"
            )
        self.text = text
        self._length = len(text)
        self._offset = 0
        self._line = 1
        self._column = 1

    def peek(self, offset: int = 0) -> Optional[str]:
        """Return the character offset positions ahead, or None past the end."""
        index = self._offset + offset
        if index >= self._length:
            return None
        return self.text[index]

    def advance(self) -> Optional[str]:
        """Consume and return the current character."""
        if self._offset >= self._length:
            return None

        char = self.text[self._offset]
        self._offset += 1

        if char == '\n':
            self._line += 1
            self._column = 1
        else:
            self._column += 1

        return char

    def advance_by(self, count: int) -> str:
        """Consume up to count characters and return them."""
        start = self._offset
        for _ in range(count):
            if self.advance() is None:
                break
        return self.text[start:self._offset]

    def startswith(self, literal: str, ignore_case: bool = False) -> bool:
        chunk = self.text[self._offset:self._offset + len(literal)]
        if ignore_case:
            return chunk.lower() == literal.lower()
        return chunk == literal

    def position(self) -> Position:
        return Position(self._offset, self._line, self._column)

    def slice(self, start: int, end: Optional[int] = None) -> str:
        return self.text[start:end]

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def at_end(self) -> bool:
        return self._offset >= self._length

    def __len__(self):
        return self._length
