"""
Stack compiler - a friendlier way to write paper programs.

Stack programs are written as *lines*. Every operand is a Slot: a field
position counted in whole fields (x) and rows (y) instead of raw
columns, so ``Slot(1, -1)`` means "the field to the right, one row up".
Each line compiles to its instructions followed by a newline Write, so
every line of the program produces one row of the paper.

    ┌───────────────┐    ┌─────────────────┐    ┌───────────────────┐
    │ StackInstr    │───>│ compile_stacker │───>│ List[Instruction] │──> Machine
    │ lines         │    │ (slot → Word)   │    │                   │
    └───────────────┘    └─────────────────┘    └───────────────────┘

The compiler only builds instruction values; it never touches a Machine.

Jump offsets count compiled instructions, so the newline appended at
the end of every line counts too: jumping back past the start of a line
lands on the previous line's newline, which is usually what you want.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Sequence

from .addressing import Word
from .conversion import CHARS_PER_FLOAT
from . import instructions as ins
from .instructions import Instruction, Ordering

CPF = CHARS_PER_FLOAT
BLANK_FIELD = " " * CPF


@dataclass(frozen=True)
class Slot:
    """Field-granular cursor-relative address."""
    x: int
    y: int

    def to_word(self) -> Word:
        return Word.of(self.x * CPF, self.y, CPF)


# ──────────────────────────────────────────────
# Stack instructions
# ──────────────────────────────────────────────

@dataclass
class StackInstr:
    """Base class for stack instructions."""


@dataclass
class Text(StackInstr):
    """A label, padded or cut to exactly one field."""
    text: str = ""

    @property
    def field_text(self) -> str:
        return self.text[:CPF].ljust(CPF)


@dataclass
class Value(StackInstr):
    value: float = 0.0


@dataclass
class Copy(StackInstr):
    slot: Slot = field(default_factory=lambda: Slot(0, 0))


@dataclass
class Add(StackInstr):
    a: Slot = field(default_factory=lambda: Slot(0, 0))
    b: Slot = field(default_factory=lambda: Slot(0, 0))


@dataclass
class Sub(Add):
    pass


@dataclass
class Mod(Add):
    pass


@dataclass
class Jump(StackInstr):
    offset: int = 1


@dataclass
class JumpRelIf(StackInstr):
    slot: Slot = field(default_factory=lambda: Slot(0, 0))
    ordering: Ordering = Ordering.EQUAL
    value: float = 0.0
    offset: int = 1


@dataclass
class JumpEmpty(StackInstr):
    """Jump when the slot holds nothing at all."""
    slot: Slot = field(default_factory=lambda: Slot(0, 0))
    offset: int = 1


@dataclass
class JumpRelCmp(StackInstr):
    a: Slot = field(default_factory=lambda: Slot(0, 0))
    b: Slot = field(default_factory=lambda: Slot(0, 0))
    ordering: Ordering = Ordering.EQUAL
    offset: int = 1


@dataclass
class Ret(StackInstr):
    slot: Slot = field(default_factory=lambda: Slot(0, 0))


@dataclass
class Break(StackInstr):
    pass


@dataclass
class Call(StackInstr):
    """Run ``substack`` on a fresh paper with the ``inputs`` fields as arguments."""
    substack: List[List[StackInstr]] = field(default_factory=list)
    inputs: List[Slot] = field(default_factory=list)


class StackCompileError(Exception):
    def __init__(self, message: str, line: int, index: int):
        self.line = line
        self.index = index
        super().__init__(f"Stack compile error at line {line}, instruction {index}: {message}")


# ──────────────────────────────────────────────
# Compiler
# ──────────────────────────────────────────────

def compile_stacker(lines: Sequence[Sequence[StackInstr]]) -> List[Instruction]:
    """Lower stack lines to machine instructions."""
    program: List[Instruction] = []
    for line_num, line in enumerate(lines):
        for index, instr in enumerate(line):
            program.append(_lower(instr, line_num, index))
        program.append(ins.write("\n"))
    return program


def _lower(instr: StackInstr, line: int, index: int) -> Instruction:
    if isinstance(instr, Text):
        return ins.write(instr.field_text)
    if isinstance(instr, Value):
        return ins.write(instr.value)
    if isinstance(instr, Copy):
        return ins.copy(instr.slot.to_word())
    if isinstance(instr, Sub):
        return ins.sub(instr.a.to_word(), instr.b.to_word())
    if isinstance(instr, Mod):
        return ins.modulo(instr.a.to_word(), instr.b.to_word())
    if isinstance(instr, Add):
        return ins.add(instr.a.to_word(), instr.b.to_word())
    if isinstance(instr, Jump):
        return ins.jump(instr.offset)
    if isinstance(instr, JumpRelIf):
        return ins.jump_rel_if(instr.slot.to_word(), instr.ordering, instr.value, instr.offset)
    if isinstance(instr, JumpRelCmp):
        return ins.jump_rel_cmp(instr.a.to_word(), instr.b.to_word(),
                                instr.ordering, instr.offset)
    if isinstance(instr, JumpEmpty):
        return ins.jump_rel_if_str(instr.slot.to_word(), BLANK_FIELD, instr.offset)
    if isinstance(instr, Ret):
        return ins.circle(instr.slot.to_word())
    if isinstance(instr, Break):
        return ins.break_point()
    if isinstance(instr, Call):
        body = [ins.write("\n")] + compile_stacker(instr.substack)
        return ins.call(body, [slot.to_word() for slot in instr.inputs])
    raise StackCompileError(f"unsupported instruction {instr!r}", line, index)


# ──────────────────────────────────────────────
# Stack programs
# ──────────────────────────────────────────────

def gcd() -> List[List[StackInstr]]:
    """GCD by repeated subtraction of the smaller from the larger.

    Expects the two numbers two rows up (the line before the labels).
    """
    return [
        [Text("a"), Text("b")],
        [Copy(Slot(0, -2)), Copy(Slot(0, -2))],
        [
            JumpRelCmp(Slot(0, -1), Slot(1, -1), Ordering.EQUAL, 8),
            JumpRelCmp(Slot(0, -1), Slot(1, -1), Ordering.LESS, 4),
            # a > b: (a - b, b)
            Sub(Slot(0, -1), Slot(1, -1)),
            Copy(Slot(0, -1)),
            Jump(-5),
            # a < b: (a, b - a)
            Copy(Slot(0, -1)),
            Sub(Slot(0, -1), Slot(-1, -1)),
            Jump(-8),
            Break(),
            Ret(Slot(0, -1)),
        ],
    ]


def gcd_main(a: float, b: float) -> List[List[StackInstr]]:
    return [[Value(a), Value(b)]] + gcd()


def sum_of(values: Sequence[float]) -> List[List[StackInstr]]:
    """Add a row of numbers in a nested call and return the total."""
    count = len(values)
    adder: List[List[StackInstr]] = [[Copy(Slot(0, -1))]]
    for i in range(1, count):
        adder.append([Add(Slot(0, -1), Slot(i, -1 - i))])
    adder[-1].append(Ret(Slot(-1, 0)))
    return [
        [Value(v) for v in values],
        [Call(substack=adder, inputs=[Slot(i, -1) for i in range(count)])],
        [Ret(Slot(0, -1))],
    ]
