"""
Addressing model for the paper machine.

Positions are plain integer coordinates on an unbounded sheet. A Word
is a *relative* address: an offset from the cursor plus a length along
the row. It only means something once it is resolved against the
cursor of a particular Machine at the moment of access, so the same
Word can point at different cells as execution moves the cursor.

    cursor ──┐
             v
    ... [ ][ ][c][ ][ ][ ] ...     Word((-2, -1), 3) read at c
    ... [x][x][x][ ][ ][ ] ...  <- is the row above, starting two left
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Tuple, Union


@dataclass(frozen=True)
class Pos:
    """Integer coordinate on the sheet. x grows right, y grows down."""
    x: int
    y: int

    def next(self) -> Pos:
        """One column to the right."""
        return Pos(self.x + 1, self.y)

    def down(self) -> Pos:
        """Column 0 of the next row (carriage return + line feed)."""
        return Pos(0, self.y + 1)

    def moved(self, dx: int, dy: int) -> Pos:
        return Pos(self.x + dx, self.y + dy)

    def __add__(self, other: Pos) -> Pos:
        return Pos(self.x + other.x, self.y + other.y)

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


ORIGIN = Pos(0, 0)


@dataclass(frozen=True)
class Word:
    """A cursor-relative run of ``length`` cells along one row."""
    offset: Pos
    length: int

    def __post_init__(self):
        if self.length < 0:
            raise ValueError(f"Word length must be non-negative, got {self.length}")

    @classmethod
    def of(cls, x: int, y: int, length: int) -> Word:
        return cls(Pos(x, y), length)

    def resolve(self, cursor: Pos) -> Pos:
        """Absolute position of the first cell for the given cursor."""
        return self.offset + cursor

    def positions(self, cursor: Pos) -> Iterator[Pos]:
        """Absolute positions covered by this word, left to right."""
        start = self.resolve(cursor)
        for i in range(self.length):
            yield Pos(start.x + i, start.y)

    def __str__(self) -> str:
        return f"({self.offset.x}, {self.offset.y}, {self.length})"


WordLike = Union[Word, Tuple[int, int, int]]


def as_word(value: WordLike) -> Word:
    """Accept a Word or an ``(x, y, length)`` tuple."""
    if isinstance(value, Word):
        return value
    x, y, length = value
    return Word.of(int(x), int(y), int(length))
