"""
Papier - a pen-and-paper computer
=================================
A tiny virtual machine whose memory is an unbounded sheet of character
cells. Numbers are written as fixed-width text, every operand is a Word
addressed relative to the cursor, and a Call works on a fresh sheet of
its own, so a finished run leaves a stack of papers showing every step
of the computation the way you would do it by hand.

Architecture:
    ┌─────────────┐    ┌───────────────┐    ┌──────────────┐    ┌────────────┐
    │ stacker     │───>│ instructions  │───>│   Machine    │───>│  render /  │
    │ (slot lines)│    │ (program list)│    │ (step / run) │    │  stepper   │
    └─────────────┘    └───────────────┘    └──────────────┘    └────────────┘
                              ^                   │
                       programs.py                └─ Memory (Pos -> Cell)

    - addressing.py:   Pos and cursor-relative Word
    - memory.py:       sparse grid of single-character cells
    - conversion.py:   fixed-width number <-> text (CHARS_PER_FLOAT columns)
    - instructions.py: frozen instruction values, builders, listing
    - machine.py:      execution engine and nested-call stepping
    - programs.py:     ready-made programs and the PROGRAMS registry
    - stacker.py:      slot-addressed compiler down to instructions
    - render.py:       plain text and rich panels of papers
    - stepper.py:      single-step / free-run driver
"""

__version__ = "0.2.0"

from typing import Optional, Sequence

from .addressing import ORIGIN, Pos, Word
from .conversion import CHARS_PER_FLOAT, ConversionError, format_number, from_chars, to_chars
from .instructions import EQUALITY_EPSILON, Instruction, Ordering, listing
from .machine import (
    AlreadyFinishedError, FatalHalt, Machine, MachineError, OutOfBoundsError,
    StepLimitExceeded, StepResult, StepState, StepStatus,
)
from .memory import Memory
from .programs import PROGRAMS, build_program
from .convenience import call_static


def run_program(name: str, args: Sequence[float] = (), *,
                max_steps: Optional[int] = 1_000_000,
                keep_finished: bool = True) -> Machine:
    """Build a registered program, run it to completion and return the machine.

    Raises KeyError / ValueError for an unknown name or wrong arguments,
    StepLimitExceeded when it does not finish within ``max_steps``.
    """
    vm = Machine(build_program(name, args), keep_finished=keep_finished)
    return vm.run(max_steps)
