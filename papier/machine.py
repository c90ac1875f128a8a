"""
Paper Machine - execution engine and subroutine stepping protocol.

A Machine owns one sheet of paper (Memory), one cursor, one program and
one instruction pointer. It advances one transition per ``step()``:

  1. If a Call is in progress, step the child instead. While the child
     is running its result is passed straight through and this machine
     stays suspended. When the child finishes, its circled word is read
     from the child's paper, written at our cursor, the child is moved
     to ``finished_papers`` and execution continues with our next
     instruction in the same step.
  2. Otherwise fetch the instruction at ip, dispatch it, advance ip.

Call spawns a brand-new Machine with an empty paper, writes the argument
words into it left to right, and returns immediately; nothing executes
in the child until the next step. Because a child is just another
Machine, calls nest to any depth and every level can be observed one
instruction at a time:

    Machine (gcd_main)          suspended
      └── subroutine (gcd)      suspended
            └── subroutine (modulo)   <- step() lands here

Circle marks the result word and ends the machine. Stepping a finished
machine raises AlreadyFinishedError.

Termination reasons:
  - Finished:         Circle executed at this level
  - FatalHalt:        Stop instruction executed
  - OutOfBoundsError: ip left the program
  - ConversionError:  numeric read of an unparsable field (recoverable)
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .addressing import ORIGIN, Pos, Word, WordLike, as_word
from .conversion import Value, from_chars, to_chars, trimmed
from .instructions import (
    Add, BreakPoint, Call, Circle, Copy, Instruction, Jump, JumpRelCmp,
    JumpRelIf, JumpRelIfStr, Mod, MoveCursor, Stop, Sub, TrimmedCopy, Write,
)
from .memory import BLANK, Memory

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class MachineError(Exception):
    """A fault that ends execution of a Machine."""
    def __init__(self, message: str, ip: Optional[int] = None,
                 instruction: Optional[Instruction] = None):
        self.ip = ip
        self.instruction = instruction
        if ip is not None:
            message = f"{message} (ip={ip})"
        super().__init__(message)


class FatalHalt(MachineError):
    """The program executed a Stop instruction."""


class OutOfBoundsError(MachineError):
    """The instruction pointer left the program."""


class AlreadyFinishedError(MachineError):
    """step() was called on a machine that already circled its result."""


class StepLimitExceeded(MachineError):
    """run() gave up after its step budget."""


# ──────────────────────────────────────────────
# Step results
# ──────────────────────────────────────────────

class StepStatus(Enum):
    RUNNING = 'RUNNING'
    FINISHED = 'FINISHED'


@dataclass(frozen=True)
class StepState:
    """What a step just did: the instruction and the cursor it ran from."""
    instruction: Instruction
    cursor: Pos


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    state: Optional[StepState] = None

    @classmethod
    def running(cls, state: StepState) -> StepResult:
        return cls(StepStatus.RUNNING, state)

    @classmethod
    def finished(cls) -> StepResult:
        return cls(StepStatus.FINISHED)

    @property
    def is_finished(self) -> bool:
        return self.status is StepStatus.FINISHED

    @property
    def is_breakpoint(self) -> bool:
        return self.state is not None and isinstance(self.state.instruction, BreakPoint)


# ──────────────────────────────────────────────
# Machine
# ──────────────────────────────────────────────

class Machine:
    """One sheet of paper plus the program working on it.

    Usage:
        vm = Machine(call_static(gcd_with_mod(), [98765432.0, 1234567.0], 10))
        vm.run()
        vm.result(float)          # 1.0
        print(vm.render())

    ``keep_finished=False`` drops finished children instead of archiving
    them in ``finished_papers``; children inherit the setting.
    """

    def __init__(self, program: Sequence[Instruction], keep_finished: bool = True):
        self.memory = Memory()
        self.program: List[Instruction] = list(program)
        self.keep_finished = keep_finished

        self._cursor: Pos = ORIGIN
        self._ip: int = 0
        self._circled: Optional[Word] = None

        self.subroutine: Optional[Machine] = None
        self.finished_papers: List[Machine] = []
        self.last_state: Optional[StepState] = None
        self.steps = 0

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Introspection
    # ══════════════════════════════════════════════

    @property
    def cursor(self) -> Pos:
        return self._cursor

    @property
    def ip(self) -> int:
        return self._ip

    @property
    def circled(self) -> Optional[Word]:
        return self._circled

    @property
    def finished(self) -> bool:
        return self._circled is not None

    @property
    def current_instruction(self) -> Optional[Instruction]:
        """Instruction most recently processed at this level."""
        return self.last_state.instruction if self.last_state else None

    @property
    def next_instruction(self) -> Optional[Instruction]:
        if 0 <= self._ip < len(self.program):
            return self.program[self._ip]
        return None

    def circled_position(self) -> Optional[Pos]:
        """Absolute position of the circled word's first cell."""
        if self._circled is None:
            return None
        return self._circled.resolve(self._cursor)

    def lowest_subroutine(self) -> Machine:
        """The deepest machine in the active call chain (self if none)."""
        vm = self
        while vm.subroutine is not None:
            vm = vm.subroutine
        return vm

    def depth(self) -> int:
        """Number of active nested calls below this machine."""
        count = 0
        vm = self.subroutine
        while vm is not None:
            count += 1
            vm = vm.subroutine
        return count

    def render(self) -> str:
        return self.memory.render()

    # ══════════════════════════════════════════════
    # Paper access
    # ══════════════════════════════════════════════

    def read(self, word: WordLike, kind: type = str):
        """Read a word relative to the *current* cursor, converted to ``kind``."""
        word = as_word(word)
        chars = "".join(self.memory.get(pos) for pos in word.positions(self._cursor))
        return from_chars(chars, kind)

    def write(self, value: Value):
        """Write characters at the cursor.

        Newline → column 0 of the next row. Blank → move right without
        touching the cell. Anything else → set the cell, move right.
        """
        for c in to_chars(value):
            if c == "\n":
                self._cursor = self._cursor.down()
            elif c == BLANK:
                self._cursor = self._cursor.next()
            else:
                self.memory.set(self._cursor, c)
                self._cursor = self._cursor.next()

    def result(self, kind: type = str):
        """Circled word converted to ``kind``; None until the machine finishes."""
        if self._circled is None:
            return None
        return self.read(self._circled, kind)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> StepResult:
        """Execute one transition. See the module docstring for the protocol."""
        if self._circled is not None:
            raise AlreadyFinishedError("Machine already finished", self._ip)

        if self.subroutine is not None:
            result = self.subroutine.step()
            if not result.is_finished:
                return result
            self._merge_subroutine()

        if not 0 <= self._ip < len(self.program):
            raise OutOfBoundsError(
                f"Instruction pointer outside program of {len(self.program)} instructions",
                self._ip)

        instruction = self.program[self._ip]
        state = StepState(instruction, self._cursor)
        self.last_state = state
        self.steps += 1

        handler = self._dispatch.get(type(instruction))
        if handler is None:
            raise MachineError(f"Unknown instruction {instruction!r}", self._ip, instruction)
        advance = handler(instruction)
        self._ip += advance

        if self._circled is not None:
            return StepResult.finished()
        return StepResult.running(state)

    def run(self, max_steps: Optional[int] = None) -> Machine:
        """Step until Finished. ``max_steps`` bounds the number of steps."""
        taken = 0
        while not self.step().is_finished:
            taken += 1
            if max_steps is not None and taken >= max_steps:
                raise StepLimitExceeded(f"No result after {taken} steps", self._ip)
        if log.isEnabledFor(logging.DEBUG):
            log.debug("Finished after %d steps, result %r\n%s",
                      taken + 1, self.result(), self.render())
        return self

    def _merge_subroutine(self):
        child = self.subroutine
        chars = child.read(child.circled, str)
        log.debug("Call returned %r to %s", chars, self._cursor)
        self.write(chars)
        if self.keep_finished:
            self.finished_papers.append(child)
        self.subroutine = None

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(instruction) -> ip advance

    def _build_dispatch(self) -> Dict[type, Callable[[Instruction], int]]:
        return {
            # ── Data movement ──
            Write:        self._op_write,
            Copy:         self._op_copy,
            TrimmedCopy:  self._op_trimmed_copy,
            MoveCursor:   self._op_move_cursor,

            # ── Arithmetic ──
            Add:          self._op_arith,
            Sub:          self._op_arith,
            Mod:          self._op_arith,

            # ── Control flow ──
            Jump:         self._op_jump,
            JumpRelIf:    self._op_jump_rel_if,
            JumpRelCmp:   self._op_jump_rel_cmp,
            JumpRelIfStr: self._op_jump_rel_if_str,
            Call:         self._op_call,
            Circle:       self._op_circle,
            BreakPoint:   self._op_breakpoint,
            Stop:         self._op_stop,
        }

    def _op_write(self, instr: Write) -> int:
        self.write(instr.chars)
        return 1

    def _op_copy(self, instr: Copy) -> int:
        self.write(self.read(instr.source, str))
        return 1

    def _op_trimmed_copy(self, instr: TrimmedCopy) -> int:
        self.write(trimmed(self.read(instr.source, str)))
        return 1

    def _op_move_cursor(self, instr: MoveCursor) -> int:
        self._cursor = self._cursor.moved(instr.dx, instr.dy)
        return 1

    def _op_arith(self, instr) -> int:
        a = self.read(instr.a, float)
        b = self.read(instr.b, float)
        if isinstance(instr, Add):
            value = a + b
        elif isinstance(instr, Sub):
            value = a - b
        else:
            # Truncated remainder (sign of the dividend); x % 0 and inf % x are NaN
            value = math.nan if b == 0 or math.isinf(a) else math.fmod(a, b)
        self.write(value)
        return 1

    def _op_jump(self, instr: Jump) -> int:
        return instr.offset

    def _op_jump_rel_if(self, instr: JumpRelIf) -> int:
        value = self.read(instr.word, float)
        return instr.offset if instr.ordering.holds(value, instr.value) else 1

    def _op_jump_rel_cmp(self, instr: JumpRelCmp) -> int:
        a = self.read(instr.a, float)
        b = self.read(instr.b, float)
        return instr.offset if instr.ordering.holds(a, b) else 1

    def _op_jump_rel_if_str(self, instr: JumpRelIfStr) -> int:
        return instr.offset if self.read(instr.word, str) == instr.text else 1

    def _op_call(self, instr: Call) -> int:
        child = Machine(instr.program, keep_finished=self.keep_finished)
        for arg in instr.args:
            child.write(self.read(arg, str))
        log.debug("Call prog[%d] with %d args from %s",
                  len(instr.program), len(instr.args), self._cursor)
        self.subroutine = child
        return 1

    def _op_circle(self, instr: Circle) -> int:
        self._circled = instr.word
        log.debug("Circled %s at %s", instr.word, self._cursor)
        return 0

    def _op_breakpoint(self, instr: BreakPoint) -> int:
        return 1

    def _op_stop(self, instr: Stop) -> int:
        log.warning("STOP reached at ip=%d", self._ip)
        raise FatalHalt("Program reached STOP", self._ip, instr)


__all__ = [
    'Machine', 'StepResult', 'StepState', 'StepStatus',
    'MachineError', 'FatalHalt', 'OutOfBoundsError', 'AlreadyFinishedError',
    'StepLimitExceeded',
]
