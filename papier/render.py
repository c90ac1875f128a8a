"""
Rendering papers for people.

A finished run leaves a tree of papers: the root machine's sheet plus,
recursively, every sheet a Call worked on. ``collect_papers`` flattens
that tree depth first (the order you would stack the sheets when
handing in the work). ``render_paper`` gives plain text; ``paper_panel``
gives a rich Panel with the cursor, the circled result and the words
the current instruction touches highlighted.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Set

from rich.panel import Panel
from rich.text import Text

from .addressing import Pos, Word
from .machine import Machine

CURSOR_STYLE = "black on yellow"
HIGHLIGHT_STYLE = "black on cyan"
CIRCLE_STYLE = "bold reverse"


def collect_papers(root: Machine) -> List[Machine]:
    """Root first, then each finished paper and its own papers, depth first."""
    papers = [root]
    for paper in root.finished_papers:
        papers.extend(collect_papers(paper))
    return papers


def render_paper(vm: Machine, mark_circle: bool = True) -> str:
    """Plain text of a paper; the circled word is underlined with ``~``."""
    text = vm.render()
    circled = vm.circled_position()
    bounds = vm.memory.bounds()
    if not mark_circle or circled is None or bounds is None:
        return text

    top_left, _ = bounds
    lines = text.splitlines()
    row = circled.y - top_left.y
    if not 0 <= row < len(lines):
        return text
    start = circled.x - top_left.x
    marker = " " * max(start, 0) + "~" * (vm.circled.length + min(start, 0))
    lines.insert(row + 1, marker.rstrip())
    return "\n".join(lines) + "\n"


def _word_cells(words: Iterable[Word], origin: Pos) -> Set[Pos]:
    cells: Set[Pos] = set()
    for word in words:
        cells.update(word.positions(origin))
    return cells


def paper_text(vm: Machine, highlight: Iterable[Word] = (),
               highlight_origin: Optional[Pos] = None,
               show_cursor: bool = True) -> Text:
    """Styled text of a paper.

    ``highlight`` words are resolved against ``highlight_origin`` (the
    cursor the instruction ran from), defaulting to the current cursor.
    The drawn area grows to include the cursor so it is always visible.
    """
    cells = set(vm.memory)
    if show_cursor:
        cells.add(vm.cursor)
    if not cells:
        return Text("")

    min_x = min(p.x for p in cells)
    max_x = max(p.x for p in cells)
    min_y = min(p.y for p in cells)
    max_y = max(p.y for p in cells)

    marked = _word_cells(highlight, highlight_origin or vm.cursor)
    circled = _word_cells([vm.circled], vm.cursor) if vm.circled else set()

    text = Text()
    for y in range(min_y, max_y + 1):
        for x in range(min_x, max_x + 1):
            pos = Pos(x, y)
            style = ""
            if pos in circled:
                style = CIRCLE_STYLE
            elif show_cursor and pos == vm.cursor:
                style = CURSOR_STYLE
            elif pos in marked:
                style = HIGHLIGHT_STYLE
            text.append(vm.memory.get(pos), style=style)
        if y != max_y:
            text.append("\n")
    return text


def paper_panel(vm: Machine, title: Optional[str] = None,
                highlight: Iterable[Word] = (),
                highlight_origin: Optional[Pos] = None) -> Panel:
    """A paper in a box, titled with the instruction it just ran."""
    if title is None:
        instr = vm.current_instruction
        title = str(instr) if instr is not None else "(not started)"
    subtitle = f"cursor {vm.cursor}  ip {vm.ip}"
    if vm.finished:
        subtitle += f"  result {vm.result(str).strip()!r}"
    body = paper_text(vm, highlight, highlight_origin, show_cursor=not vm.finished)
    # Instruction text may contain brackets, so keep it out of markup parsing
    return Panel(body, title=Text(title), subtitle=Text(subtitle))
