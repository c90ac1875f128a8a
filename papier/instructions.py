"""
Instruction set of the paper machine.

A closed set of immutable dataclasses, one per operation. The Machine
dispatches on the class; nothing here knows how to execute itself.
Builder functions at the bottom (``write``, ``copy``, ``call`` ...)
accept ``(x, y, length)`` tuples wherever a Word is expected, which is
how program listings in ``programs.py`` are written.

    Instruction      Operands                         Effect
    ───────────────  ───────────────────────────────  ─────────────────────────────
    Write            value                            write characters at cursor
    Copy             Word                             re-write raw characters
    TrimmedCopy      Word                             re-write minus whitespace
    Add / Sub / Mod  Word, Word                       float op, fixed-width result
    Jump             offset                           ip += offset
    JumpRelIf        Word, Ordering, float, offset    compare word with literal
    JumpRelCmp       Word, Word, Ordering, offset     compare two words
    JumpRelIfStr     Word, str, offset                compare raw characters
    MoveCursor       dx, dy                           move cursor, no writing
    Call             program, [Word]                  run program on a fresh paper
    Circle           Word                             mark result, finish
    BreakPoint       -                                pause free-running drivers
    Stop             -                                fatal halt
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .addressing import Word, WordLike, as_word
from .conversion import Value, to_chars

# Single-precision machine epsilon, applied to double arithmetic
EQUALITY_EPSILON = 2.0 ** -23


class Ordering(Enum):
    LESS = "Less"
    EQUAL = "Equal"
    GREATER = "Greater"

    @classmethod
    def compare(cls, a: float, b: float) -> Optional[Ordering]:
        """Ordering of ``a`` relative to ``b``; None when either is NaN."""
        if a < b:
            return cls.LESS
        if a > b:
            return cls.GREATER
        if a == b:
            return cls.EQUAL
        return None

    def holds(self, a: float, b: float) -> bool:
        """True when ``a`` stands in this ordering to ``b``.

        EQUAL also accepts values within EQUALITY_EPSILON of each other,
        since formatting and re-parsing may drift the last bits.
        """
        if Ordering.compare(a, b) is self:
            return True
        return self is Ordering.EQUAL and abs(a - b) < EQUALITY_EPSILON

    def __str__(self) -> str:
        return self.value


# ──────────────────────────────────────────────
# Base instruction
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    """Base class for all instructions."""

    @property
    def mnemonic(self) -> str:
        return type(self).__name__

    def words(self) -> Tuple[Word, ...]:
        """Words this instruction reads or marks (for highlighting)."""
        return ()


# ──────────────────────────────────────────────
# Data movement
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Write(Instruction):
    value: Value = ""

    @property
    def chars(self) -> str:
        return to_chars(self.value)

    def __str__(self) -> str:
        return f"Write `{self.chars.replace(chr(10), '')}'"


@dataclass(frozen=True)
class Copy(Instruction):
    source: Word = field(default_factory=lambda: Word.of(0, 0, 0))

    def words(self) -> Tuple[Word, ...]:
        return (self.source,)

    def __str__(self) -> str:
        return f"Copy {self.source}"


@dataclass(frozen=True)
class TrimmedCopy(Copy):
    def __str__(self) -> str:
        return f"TrimmedCopy {self.source}"


@dataclass(frozen=True)
class MoveCursor(Instruction):
    dx: int = 0
    dy: int = 0

    def __str__(self) -> str:
        return f"MoveCursor {self.dx} {self.dy}"


# ──────────────────────────────────────────────
# Arithmetic
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class BinaryOp(Instruction):
    a: Word = field(default_factory=lambda: Word.of(0, 0, 0))
    b: Word = field(default_factory=lambda: Word.of(0, 0, 0))

    def words(self) -> Tuple[Word, ...]:
        return (self.a, self.b)

    def __str__(self) -> str:
        return f"{self.mnemonic} {self.a} {self.b}"


@dataclass(frozen=True)
class Add(BinaryOp):
    pass


@dataclass(frozen=True)
class Sub(BinaryOp):
    pass


@dataclass(frozen=True)
class Mod(BinaryOp):
    pass


# ──────────────────────────────────────────────
# Control flow
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Jump(Instruction):
    offset: int = 1

    def __str__(self) -> str:
        return f"Jump {self.offset}"


@dataclass(frozen=True)
class JumpRelIf(Instruction):
    word: Word = field(default_factory=lambda: Word.of(0, 0, 0))
    ordering: Ordering = Ordering.EQUAL
    value: float = 0.0
    offset: int = 1

    def words(self) -> Tuple[Word, ...]:
        return (self.word,)

    def __str__(self) -> str:
        return f"JumpRelIf {self.word} {self.ordering} {self.value} {self.offset}"


@dataclass(frozen=True)
class JumpRelCmp(Instruction):
    a: Word = field(default_factory=lambda: Word.of(0, 0, 0))
    b: Word = field(default_factory=lambda: Word.of(0, 0, 0))
    ordering: Ordering = Ordering.EQUAL
    offset: int = 1

    def words(self) -> Tuple[Word, ...]:
        return (self.a, self.b)

    def __str__(self) -> str:
        return f"JumpRelCmp {self.a} {self.b} {self.ordering} {self.offset}"


@dataclass(frozen=True)
class JumpRelIfStr(Instruction):
    word: Word = field(default_factory=lambda: Word.of(0, 0, 0))
    text: str = ""
    offset: int = 1

    def words(self) -> Tuple[Word, ...]:
        return (self.word,)

    def __str__(self) -> str:
        return f"JumpRelIfStr {self.word} `{self.text}' {self.offset}"


@dataclass(frozen=True)
class Call(Instruction):
    program: Tuple[Instruction, ...] = ()
    args: Tuple[Word, ...] = ()

    def words(self) -> Tuple[Word, ...]:
        return self.args

    def __str__(self) -> str:
        args = ", ".join(str(w) for w in self.args)
        return f"Call prog[{len(self.program)}]({args})"


@dataclass(frozen=True)
class Circle(Instruction):
    word: Word = field(default_factory=lambda: Word.of(0, 0, 0))

    def words(self) -> Tuple[Word, ...]:
        return (self.word,)

    def __str__(self) -> str:
        return f"Circle {self.word}"


@dataclass(frozen=True)
class BreakPoint(Instruction):
    def __str__(self) -> str:
        return "BreakPoint"


@dataclass(frozen=True)
class Stop(Instruction):
    def __str__(self) -> str:
        return "STOP"


Program = List[Instruction]


# ──────────────────────────────────────────────
# Builders
# ──────────────────────────────────────────────

def write(value: Value) -> Write:
    # Convert once here so unwritable values fail while building the program
    to_chars(value)
    if isinstance(value, list):
        value = tuple(value)
    return Write(value)


def copy(word: WordLike) -> Copy:
    return Copy(as_word(word))


def copy_trimmed(word: WordLike) -> TrimmedCopy:
    return TrimmedCopy(as_word(word))


def add(a: WordLike, b: WordLike) -> Add:
    return Add(as_word(a), as_word(b))


def sub(a: WordLike, b: WordLike) -> Sub:
    return Sub(as_word(a), as_word(b))


def modulo(a: WordLike, b: WordLike) -> Mod:
    return Mod(as_word(a), as_word(b))


def jump(offset: int) -> Jump:
    return Jump(offset)


def jump_rel_if(word: WordLike, ordering: Ordering, value: float, offset: int) -> JumpRelIf:
    return JumpRelIf(as_word(word), ordering, float(value), offset)


def jump_rel_cmp(a: WordLike, b: WordLike, ordering: Ordering, offset: int) -> JumpRelCmp:
    return JumpRelCmp(as_word(a), as_word(b), ordering, offset)


def jump_rel_if_str(word: WordLike, text: Union[str, Sequence[str]], offset: int) -> JumpRelIfStr:
    return JumpRelIfStr(as_word(word), "".join(text), offset)


def move_cursor(dx: int, dy: int) -> MoveCursor:
    return MoveCursor(dx, dy)


def call(program: Iterable[Instruction], args: Iterable[WordLike]) -> Call:
    return Call(tuple(program), tuple(as_word(a) for a in args))


def circle(word: WordLike) -> Circle:
    return Circle(as_word(word))


def break_point() -> BreakPoint:
    return BreakPoint()


def stop() -> Stop:
    return Stop()


def listing(program: Sequence[Instruction], indent: int = 0) -> str:
    """Numbered listing of a program, nested Call bodies indented beneath."""
    lines = []
    prefix = "    " * indent
    for index, instr in enumerate(program):
        lines.append(f"{prefix}{index:4d}  {instr}")
        if isinstance(instr, Call):
            lines.append(listing(instr.program, indent + 1))
    return "\n".join(line for line in lines if line)
