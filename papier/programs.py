"""
Paper programs - algorithms written out as instruction lists.

Every number occupies one field of CPF (= CHARS_PER_FLOAT) columns, so
offsets below are mostly multiples of CPF. Offsets are relative to the
cursor *at the moment the instruction runs*; the comments show the
sheet layout each program builds.

PROGRAMS is the registry used by the CLI: name → builder, argument
count (-1 = any number, at least one) and a description.
"""

from typing import Callable, Dict, List, Sequence

from .conversion import CHARS_PER_FLOAT
from .convenience import call_static
from .instructions import (
    Instruction, Ordering, add, break_point, call, circle, copy, jump,
    jump_rel_cmp, jump_rel_if, jump_rel_if_str, modulo, move_cursor, sub, write,
)
from . import stacker

CPF = CHARS_PER_FLOAT


# ──────────────────────────────────────────────
# Greatest common divisor
# ──────────────────────────────────────────────
#
#          b         a         t        <- header row
#   98765432   1234567                  <- inputs copied down
#   98765432   1234567  98765432        <- t := b
#   ...                                 <- b := a % b, a := t, repeat

def gcd_main(a: float, b: float) -> List[Instruction]:
    return [
        write(a),
        write(b),
        call(gcd(), [(-CPF * 2, 0, CPF), (-CPF, 0, CPF)]),
        circle((-CPF, 0, CPF)),
    ]


def _gcd_loop(remainder: Instruction) -> List[Instruction]:
    return [
        write("\n         b"),
        write("         a"),
        write("         t\n"),
        copy((0, -2, CPF)),
        copy((0, -2, CPF)),
        # :start
        # t := b
        copy((-2 * CPF, 0, CPF)),
        write("\n"),
        # b := a % b
        remainder,
        jump_rel_if((-CPF, 0, CPF), Ordering.EQUAL, 0., 3),
        # a := t
        copy((CPF, -1, CPF)),
        # jump to start
        jump(-5),
        break_point(),
        circle((CPF, -1, CPF)),
    ]


def gcd() -> List[Instruction]:
    """Euclid with the Mod instruction doing each remainder in one step."""
    return _gcd_loop(modulo((CPF, -1, CPF), (0, -1, CPF)))


def gcd_with_mod() -> List[Instruction]:
    """Euclid with every remainder worked out on its own paper by modulo_prog."""
    return _gcd_loop(call(modulo_prog(), [(CPF, -1, CPF), (0, -1, CPF)]))


# ──────────────────────────────────────────────
# Remainder by repeated subtraction
# ──────────────────────────────────────────────
#
#      1234      56            <- arguments a, b
#      1234 %    56
#      1234 -    56 =   1178
#      1178 -    56 =   1122
#      ...
#        42 -    56 =    -14   <- went negative: circle 42

def modulo_prog() -> List[Instruction]:
    return [
        write("\n"),
        copy((0, -1, CPF)),
        write(" % "),
        copy((-3, -1, CPF)),
        write("\n"),
        copy((0, -2, CPF)),
        write(" - "),
        copy((-3, -2, CPF)),
        write(" = "),
        sub((-(CPF * 2 + 6), 0, CPF), (-(CPF + 3), 0, CPF)),
        # a < b: a is already the remainder
        jump_rel_if((-CPF, 0, CPF), Ordering.LESS, 0., 11),
        # :again
        write("\n"),
        copy((CPF * 2 + 6, -1, CPF)),
        write(" - "),
        copy((0, -1, CPF)),
        write(" = "),
        sub((-(CPF * 2 + 6), 0, CPF), (-(CPF + 3), 0, CPF)),
        jump_rel_if((-CPF, 0, CPF), Ordering.GREATER, 0., -6),
        jump_rel_if((-CPF, 0, CPF), Ordering.EQUAL, 0., 2),
        circle((-CPF, -1, CPF)),
        circle((-CPF, 0, CPF)),
        write("\n"),
        circle((0, -1, CPF)),
    ]


# ──────────────────────────────────────────────
# Sequences and tables (no result; run free, pause at breakpoints)
# ──────────────────────────────────────────────

def fibonacci() -> List[Instruction]:
    """One Fibonacci number per row, forever (until a number no longer fits)."""
    return [
        write(1.),
        move_cursor(-CPF, 1),
        write(1.),
        move_cursor(-CPF, 1),
        add((0, -1, CPF), (0, -2, CPF)),
        move_cursor(-CPF, 1),
        jump(-2),
        break_point(),
    ]


def pascals_triangle() -> List[Instruction]:
    """Row n holds entry k at column (2k - n) * CPF; breakpoint after each row.

    An entry exists where the last column of its field is written, since
    numbers are right-justified.
    """
    return [
        write(1.),
        # :row  back to the start of the last entry, then scan left to the edge
        move_cursor(-CPF, 0),
        move_cursor(-2 * CPF, 0),
        jump_rel_if_str((CPF - 1, 0, 1), " ", 2),
        jump(-2),
        move_cursor(CPF, 1),
        write(1.),
        # :entry
        move_cursor(CPF, 0),
        jump_rel_if_str((2 * CPF - 1, -1, 1), " ", 3),
        add((-CPF, -1, CPF), (CPF, -1, CPF)),
        jump(-3),
        write(1.),
        break_point(),
        jump(-12),
    ]


def _transposition_pass() -> List[Instruction]:
    # Cursor at field j of the new row; the row above is the previous pass
    return [
        jump_rel_if_str((CPF - 1, -1, 1), " ", 10),          # no field j: done
        jump_rel_if_str((2 * CPF - 1, -1, 1), " ", 8),       # no field j+1: copy j
        jump_rel_cmp((0, -1, CPF), (CPF, -1, CPF), Ordering.GREATER, 4),
        copy((0, -1, CPF)),
        copy((0, -1, CPF)),
        jump(-5),
        # :swap
        copy((CPF, -1, CPF)),
        copy((-CPF, -1, CPF)),
        jump(-8),
        # :single
        copy((0, -1, CPF)),
    ]


def sort() -> List[Instruction]:
    """Odd-even transposition sort of the numbers on the row above.

    Each new row is one pass: even passes compare fields (0,1), (2,3) ...,
    odd passes carry field 0 down and compare (1,2), (3,4) ... n passes
    sort n numbers. Breakpoint after every pass.
    """
    return [
        write("\n"),
        *_transposition_pass(),
        break_point(),
        write("\n"),
        copy((0, -1, CPF)),
        *_transposition_pass(),
        break_point(),
        jump(-25),
    ]


def sort_main(values: Sequence[float]) -> List[Instruction]:
    return [write(float(v)) for v in values] + sort()


# ──────────────────────────────────────────────
# Registry
# ──────────────────────────────────────────────

PROGRAMS: Dict[str, Dict] = {
    "gcd": {
        "build": lambda a, b: gcd_main(a, b),
        "args": 2,
        "description": "Euclid's algorithm using the Mod instruction",
    },
    "gcd-mod": {
        "build": lambda a, b: call_static(gcd_with_mod(), [a, b], CPF),
        "args": 2,
        "description": "Euclid's algorithm, each remainder on its own paper",
    },
    "modulo": {
        "build": lambda a, b: call_static(modulo_prog(), [a, b], CPF),
        "args": 2,
        "description": "a % b by repeated subtraction",
    },
    "fibonacci": {
        "build": lambda: fibonacci(),
        "args": 0,
        "description": "Fibonacci numbers, one per row (runs until overflow)",
    },
    "pascal": {
        "build": lambda: pascals_triangle(),
        "args": 0,
        "description": "Pascal's triangle, breakpoint after each row",
    },
    "sort": {
        "build": lambda *values: sort_main(values),
        "args": -1,
        "description": "Odd-even transposition sort, breakpoint after each pass",
    },
    "stack-gcd": {
        "build": lambda a, b: stacker.compile_stacker(stacker.gcd_main(a, b)),
        "args": 2,
        "description": "Subtraction GCD written for the stack compiler",
    },
    "stack-sum": {
        "build": lambda *values: stacker.compile_stacker(stacker.sum_of(values)),
        "args": -1,
        "description": "Sum of a row of numbers in a nested call, via the stack compiler",
    },
}


def build_program(name: str, args: Sequence[float]) -> List[Instruction]:
    """Look up ``name`` in PROGRAMS and build it with ``args``."""
    try:
        profile = PROGRAMS[name]
    except KeyError:
        raise KeyError(f"Unknown program '{name}'. Known: {', '.join(PROGRAMS)}") from None
    expected = profile["args"]
    if expected == -1 and not args:
        raise ValueError(f"{name} needs at least one number")
    if expected != -1 and len(args) != expected:
        raise ValueError(f"{name} takes {expected} numbers, got {len(args)}")
    builder: Callable[..., List[Instruction]] = profile["build"]
    return builder(*[float(a) for a in args])
