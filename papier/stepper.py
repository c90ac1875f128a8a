"""
Stepping driver for watching a Machine work.

Wraps a root Machine and remembers, after every step, which paper the
instruction ran on, the instruction itself and the cursor it ran from.
That is what a viewer needs to draw the paper with the touched words
highlighted. Free-running mode keeps stepping until a BreakPoint or the
end of the program, the way a debugger's "continue" does.

    stepper = Stepper(fibonacci())
    stepper.run_free(max_steps=100)     # StopReason.BREAK or TIMEOUT
    console.print(stepper.view())
"""

from __future__ import annotations
import logging
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from rich.panel import Panel

from .addressing import Pos, Word
from .instructions import Instruction
from .machine import Machine, StepResult
from .render import paper_panel

log = logging.getLogger(__name__)


class StopReason(Enum):
    DONE = 'DONE'          # root machine circled its result
    BREAK = 'BREAK'        # a BreakPoint was stepped over
    TIMEOUT = 'TIMEOUT'    # step budget used up


class Stepper:
    """Step a Machine and keep track of where the last step happened."""

    def __init__(self, target: Union[Machine, Sequence[Instruction]], trace: bool = False):
        self.machine = target if isinstance(target, Machine) else Machine(target)
        self.free_running = False
        self.steps = 0
        self.last_result: Optional[StepResult] = None
        self.active: Machine = self.machine

        self._trace = trace
        self.trace_output: List[str] = []

    # ══════════════════════════════════════════════
    # State
    # ══════════════════════════════════════════════

    @property
    def finished(self) -> bool:
        return self.machine.finished

    @property
    def current_instruction(self) -> Optional[Instruction]:
        """Instruction executed by the last step, on whichever paper."""
        return self.active.current_instruction

    @property
    def last_cursor(self) -> Optional[Pos]:
        """Cursor the last instruction ran from."""
        state = self.active.last_state
        return state.cursor if state else None

    def highlight_words(self) -> List[Word]:
        instr = self.current_instruction
        return list(instr.words()) if instr is not None else []

    # ══════════════════════════════════════════════
    # Driving
    # ══════════════════════════════════════════════

    def advance(self) -> StepResult:
        """Step the root machine once."""
        before = self._chain_steps()
        result = self.machine.step()
        self.steps += 1
        self.last_result = result
        self.active = self._stepped_machine(before)

        if self._trace:
            self.trace_output.append(
                f"{self.steps:6d} d{self.machine.depth()} "
                f"{self.last_cursor!s:>12} {self.current_instruction}")
        return result

    def toggle_free_running(self) -> bool:
        self.free_running = not self.free_running
        return self.free_running

    def tick(self) -> Optional[StepResult]:
        """One step of free-running mode; does nothing unless it is on.

        Free running switches itself off after a BreakPoint or once the
        root machine has finished, so a viewer calling ``tick`` once per
        frame pauses there until the user switches it back on.
        """
        if not self.free_running:
            return None
        if self.finished:
            self.free_running = False
            return None
        result = self.advance()
        if result.is_breakpoint or self.finished:
            self.free_running = False
        return result

    def run_free(self, max_steps: Optional[int] = None) -> StopReason:
        """Switch free running on and tick until it stops or ``max_steps`` is used."""
        self.free_running = True
        taken = 0
        while self.free_running:
            if max_steps is not None and taken >= max_steps:
                self.free_running = False
                return StopReason.TIMEOUT
            self.tick()
            taken += 1
        if self.finished:
            return StopReason.DONE
        log.debug("Breakpoint after %d steps", self.steps)
        return StopReason.BREAK

    def _chain_steps(self) -> List[Tuple[Machine, int]]:
        chain = []
        vm = self.machine
        while vm is not None:
            chain.append((vm, vm.steps))
            vm = vm.subroutine
        return chain

    def _stepped_machine(self, before: List[Tuple[Machine, int]]) -> Machine:
        # Deepest machine of the old chain that is still attached and whose
        # own step count moved. A child finishing this step is detached, and
        # a child spawned this step was never in the old chain, so in both
        # cases the parent that ran its instruction is picked.
        stepped = self.machine
        parent = None
        for vm, steps in before:
            if parent is not None and parent.subroutine is not vm:
                break
            if vm.steps != steps:
                stepped = vm
            parent = vm
        return stepped

    # ══════════════════════════════════════════════
    # Viewing
    # ══════════════════════════════════════════════

    def view(self) -> Panel:
        """The paper the last step ran on, with its operands highlighted."""
        depth = 0
        vm = self.machine
        while vm is not self.active and vm.subroutine is not None:
            vm = vm.subroutine
            depth += 1
        instr = self.current_instruction
        title = str(instr) if instr is not None else "(not started)"
        if depth:
            title = f"call depth {depth} | {title}"
        return paper_panel(self.active, title=title, highlight=self.highlight_words(),
                           highlight_origin=self.last_cursor)
