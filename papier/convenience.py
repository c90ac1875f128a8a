"""
Helpers for wrapping a program so it can be run on its own.
"""

from typing import List, Sequence

from .conversion import Value, to_chars
from .instructions import Instruction, call, circle, write


def call_static(program: Sequence[Instruction], inputs: Sequence[Value],
                return_size: int) -> List[Instruction]:
    """Build a main program that writes ``inputs``, calls ``program`` on them
    and circles the ``return_size`` characters the call writes back.

    Inputs are written side by side on row 0; each argument word covers
    exactly one input, addressed back from the cursor after the last one.
    """
    main: List[Instruction] = []
    spans = []
    x = 0
    for value in inputs:
        length = len(to_chars(value))
        spans.append((x, length))
        x += length
        main.append(write(value))

    total = x
    args = [(start - total, 0, length) for start, length in spans]
    main.append(call(program, args))
    main.append(circle((-return_size, 0, return_size)))
    return main
