"""
Sparse character memory - the "paper" itself.

The sheet is unbounded in every direction, so cells live in a dict
keyed by position rather than in a flat array. Reading a position that
was never written returns a blank without creating a cell; writing is
the only way the sheet grows, and nothing is ever erased.

Rendering (``render``) crops to the bounding box of populated cells.
It exists for inspection only and plays no part in execution.
"""

from typing import Dict, Iterator, Optional, Tuple

from .addressing import Pos

BLANK = " "


class Cell:
    """One character slot on the sheet."""

    __slots__ = ('value',)

    def __init__(self, value: str = BLANK):
        self.value = value

    def read(self) -> str:
        return self.value

    def write(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class Memory:
    """Position → Cell mapping with blank-by-default reads."""

    def __init__(self):
        self._cells: Dict[Pos, Cell] = {}

    # --- Core read/write ---

    def get(self, pos: Pos) -> str:
        """Character at ``pos``; blank if the cell was never written."""
        cell = self._cells.get(pos)
        if cell is None:
            return BLANK
        return cell.read()

    def set(self, pos: Pos, value: str):
        """Create or overwrite the cell at ``pos``."""
        if len(value) != 1:
            raise ValueError(f"A cell holds exactly one character, got {value!r}")
        cell = self._cells.get(pos)
        if cell is None:
            cell = self._cells[pos] = Cell()
        cell.write(value)

    # --- Inspection ---

    def __contains__(self, pos: Pos) -> bool:
        return pos in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Pos]:
        return iter(self._cells)

    def snapshot(self) -> Dict[Pos, str]:
        """Plain copy of the populated cells."""
        return {pos: cell.read() for pos, cell in self._cells.items()}

    def bounds(self) -> Optional[Tuple[Pos, Pos]]:
        """(top-left, bottom-right) of populated cells, inclusive; None if empty."""
        if not self._cells:
            return None
        xs = [p.x for p in self._cells]
        ys = [p.y for p in self._cells]
        return Pos(min(xs), min(ys)), Pos(max(xs), max(ys))

    def render(self) -> str:
        """Text picture of the bounding box, one newline-terminated line per row."""
        box = self.bounds()
        if box is None:
            return ""
        top_left, bottom_right = box
        lines = []
        for y in range(top_left.y, bottom_right.y + 1):
            row = "".join(self.get(Pos(x, y))
                          for x in range(top_left.x, bottom_right.x + 1))
            lines.append(row + "\n")
        return "".join(lines)
