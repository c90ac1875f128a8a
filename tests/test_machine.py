"""
Tests for the execution engine.

Tests cover:
  - Each instruction's effect on paper, cursor and ip
  - Comparison jumps and the equality tolerance
  - Call isolation and the child stepping protocol
  - Termination: Circle, Stop, running off the program
  - Error propagation out of nested calls
"""

import logging
import math

import pytest

from papier.addressing import Pos, Word
from papier.conversion import ConversionError
from papier.instructions import (
    EQUALITY_EPSILON, Ordering, add, break_point, call, circle, copy, copy_trimmed,
    jump, jump_rel_cmp, jump_rel_if, jump_rel_if_str, listing, modulo, move_cursor,
    stop, sub, write,
)
from papier.machine import (
    AlreadyFinishedError, FatalHalt, Machine, MachineError, OutOfBoundsError,
    StepLimitExceeded, StepStatus,
)

F = 10


def _run(program, max_steps=1000) -> Machine:
    return Machine(program).run(max_steps)


def _binary(op, a, b, kind=float):
    """Write a and b, apply op to them, return the result as ``kind``."""
    vm = _run([write(a), write(b), op((-2 * F, 0, F), (-F, 0, F)), circle((-F, 0, F))])
    return vm.result(kind)


# ─── Data movement ─────────────────────

class TestDataMovement:
    def test_copy_rewrites_raw_characters(self):
        vm = _run([write("ab cd\n"), copy((0, -1, 5)), circle((-5, 0, 5))])
        assert vm.result() == "ab cd"
        assert vm.cursor == Pos(5, 1)

    def test_trimmed_copy_drops_whitespace(self):
        vm = _run([write(12.0), write("\n"), copy_trimmed((0, -1, F)), circle((-2, 0, 2))])
        assert vm.result() == "12"
        assert vm.cursor == Pos(2, 1)

    def test_move_cursor_writes_nothing(self):
        vm = _run([move_cursor(3, -2), circle((0, 0, 0))])
        assert vm.cursor == Pos(3, -2)
        assert len(vm.memory) == 0

    def test_read_uses_current_cursor(self):
        vm = Machine([])
        vm.write("xyz")
        assert vm.read((-3, 0, 3)) == "xyz"
        vm.write("\n")
        assert vm.read((0, -1, 3)) == "xyz"


# ─── Arithmetic ─────────────────────

class TestArithmetic:
    def test_add(self):
        assert _binary(add, 2.0, 3.5) == 5.5

    def test_sub(self):
        assert _binary(sub, 2.0, 3.5) == -1.5

    def test_mod(self):
        assert _binary(modulo, 1234.0, 56.0) == 2.0

    def test_mod_keeps_dividend_sign(self):
        assert _binary(modulo, -7.0, 3.0) == -1.0

    def test_mod_by_zero_is_nan(self):
        assert math.isnan(_binary(modulo, 5.0, 0.0))

    def test_mod_of_infinity_is_nan(self):
        assert math.isnan(_binary(modulo, math.inf, 3.0))
        assert math.isnan(_binary(modulo, -math.inf, 3.0))

    def test_mod_by_infinity_keeps_dividend(self):
        assert _binary(modulo, 5.0, math.inf) == 5.0

    def test_result_written_at_cursor(self):
        vm = _run([write(1.0), write(2.0), add((-2 * F, 0, F), (-F, 0, F)), circle((-F, 0, F))])
        assert vm.render() == "1         2         3\n"

    def test_non_numeric_operand(self):
        vm = Machine([write("hello     "), write(1.0), add((-2 * F, 0, F), (-F, 0, F))])
        vm.step()
        vm.step()
        with pytest.raises(ConversionError):
            vm.step()

    def test_overflow_is_conversion_error(self):
        vm = Machine([write(9999999999.0), write(9999999999.0),
                      add((-2 * F, 0, F), (-F, 0, F))])
        vm.step()
        vm.step()
        with pytest.raises(ConversionError):
            vm.step()


# ─── Control flow ─────────────────────

class TestJumps:
    def test_unconditional_jump_skips(self):
        vm = _run([jump(2), write("skipped"), write("ran"), circle((-3, 0, 3))])
        assert vm.result() == "ran"

    def test_backward_jump_loops(self):
        # Count to three by adding one each pass
        vm = _run([
            write(0.0),
            write(1.0),
            write("\n"),
            add((0, -1, F), (F, -1, F)),
            copy((0, -1, F)),
            write("\n"),
            jump_rel_if((0, -1, F), Ordering.LESS, 3.0, -3),
            circle((0, -1, F)),
        ])
        assert vm.result(float) == 3.0

    @pytest.mark.parametrize("ordering,value,taken", [
        (Ordering.LESS, 6.0, True),
        (Ordering.LESS, 5.0, False),
        (Ordering.GREATER, 4.0, True),
        (Ordering.GREATER, 5.0, False),
        (Ordering.EQUAL, 5.0, True),
        (Ordering.EQUAL, 5.5, False),
    ])
    def test_jump_rel_if(self, ordering, value, taken):
        vm = _run([
            write(5.0),
            jump_rel_if((-F, 0, F), ordering, value, 3),
            write("n"),
            circle((-1, 0, 1)),
            write("y"),
            circle((-1, 0, 1)),
        ])
        assert vm.result() == ("y" if taken else "n")

    def test_jump_rel_cmp(self):
        vm = _run([
            write(1.0),
            write(2.0),
            jump_rel_cmp((-2 * F, 0, F), (-F, 0, F), Ordering.LESS, 3),
            write("n"),
            circle((-1, 0, 1)),
            write("y"),
            circle((-1, 0, 1)),
        ])
        assert vm.result() == "y"

    def test_jump_rel_if_str_compares_raw_characters(self):
        vm = _run([
            write("ok"),
            jump_rel_if_str((-2, 0, 2), "ok", 2),
            stop(),
            circle((-2, 0, 2)),
        ])
        assert vm.result() == "ok"

    def test_blank_string_match(self):
        vm = _run([jump_rel_if_str((0, 5, 3), "   ", 2), stop(), circle((0, 0, 0))])
        assert vm.finished


class TestEquality:
    def test_tolerance_within_epsilon(self):
        assert Ordering.EQUAL.holds(1.0, 1.0 + EQUALITY_EPSILON / 2)

    def test_no_tolerance_at_epsilon(self):
        assert not Ordering.EQUAL.holds(1.0, 1.0 + EQUALITY_EPSILON * 2)

    def test_nan_never_ordered(self):
        assert Ordering.compare(math.nan, 1.0) is None
        for ordering in Ordering:
            assert not ordering.holds(math.nan, 1.0)

    def test_jump_rel_if_equal_within_tolerance(self):
        # Rounded to "1.00000006" on paper, still within tolerance of 1
        near_one = 1.0 + EQUALITY_EPSILON / 2
        vm = _run([
            write(near_one),
            jump_rel_if((-F, 0, F), Ordering.EQUAL, 1.0, 3),
            write("n"),
            circle((-1, 0, 1)),
            write("y"),
            circle((-1, 0, 1)),
        ])
        assert vm.result() == "y"

    def test_jump_rel_cmp_equal_within_tolerance(self):
        vm = _run([
            write("1.00000006"),
            write(1.0),
            jump_rel_cmp((-2 * F, 0, F), (-F, 0, F), Ordering.EQUAL, 3),
            write("n"),
            circle((-1, 0, 1)),
            write("y"),
            circle((-1, 0, 1)),
        ])
        assert vm.result() == "y"

    def test_strict_orderings_ignore_tolerance(self):
        assert Ordering.LESS.holds(1.0, 1.0 + EQUALITY_EPSILON / 2)
        assert not Ordering.GREATER.holds(1.0, 1.0 + EQUALITY_EPSILON / 2)


# ─── Calls ─────────────────────

class TestCall:
    def _double(self):
        """Child program: add the argument to itself."""
        return [add((-F, 0, F), (-F, 0, F)), circle((-F, 0, F))]

    def test_call_returns_result_at_cursor(self):
        vm = _run([write(21.0), call(self._double(), [(-F, 0, F)]), circle((-F, 0, F))])
        assert vm.result(float) == 42.0
        assert vm.render() == "21        42\n"

    def test_child_has_fresh_paper(self):
        vm = _run([write("parent"), write(7.0), call(self._double(), [(-F, 0, F)]),
                   circle((-F, 0, F))])
        child = vm.finished_papers[0]
        assert child.render() == "7        14\n"
        assert "p" not in child.render()

    def test_call_step_only_spawns(self):
        vm = Machine([write(1.0), call(self._double(), [(-F, 0, F)]), circle((-F, 0, F))])
        vm.step()
        result = vm.step()
        assert result.status is StepStatus.RUNNING
        assert vm.subroutine is not None
        assert vm.subroutine.steps == 0
        assert vm.subroutine.memory.snapshot()[Pos(9, 0)] == "1"
        assert vm.depth() == 1

    def test_parent_suspended_while_child_runs(self):
        vm = Machine([write(1.0), call(self._double(), [(-F, 0, F)]), circle((-F, 0, F))])
        vm.step()
        vm.step()
        result = vm.step()
        assert result.state.instruction == add((-F, 0, F), (-F, 0, F))
        assert vm.ip == 2
        assert vm.lowest_subroutine() is vm.subroutine

    def test_child_finish_continues_with_parent(self):
        vm = Machine([write(1.0), call(self._double(), [(-F, 0, F)]), circle((-F, 0, F))])
        for _ in range(3):
            vm.step()
        # Child circles: merge, then the parent's circle runs in the same step
        result = vm.step()
        assert result.is_finished
        assert vm.subroutine is None
        assert vm.result(float) == 2.0

    def test_nested_calls(self):
        inner = self._double()
        middle = [call(inner, [(-F, 0, F)]), circle((-F, 0, F))]
        vm = _run([write(3.0), call(middle, [(-F, 0, F)]), circle((-F, 0, F))])
        assert vm.result(float) == 6.0
        assert len(vm.finished_papers) == 1
        assert len(vm.finished_papers[0].finished_papers) == 1

    def test_keep_finished_off(self):
        vm = Machine([write(3.0), call(self._double(), [(-F, 0, F)]), circle((-F, 0, F))],
                     keep_finished=False)
        vm.run()
        assert vm.result(float) == 6.0
        assert vm.finished_papers == []

    def test_multiple_arguments_written_in_order(self):
        child = [sub((-2 * F, 0, F), (-F, 0, F)), circle((-F, 0, F))]
        vm = _run([write(10.0), write(4.0),
                   call(child, [(-2 * F, 0, F), (-F, 0, F)]), circle((-F, 0, F))])
        assert vm.result(float) == 6.0

    def test_child_error_propagates(self):
        vm = Machine([call([stop()], []), circle((0, 0, 0))])
        vm.step()
        with pytest.raises(FatalHalt):
            vm.step()


# ─── Termination ─────────────────────

class TestTermination:
    def test_result_none_before_finish(self):
        vm = Machine([write("x"), circle((-1, 0, 1))])
        assert vm.result() is None
        vm.step()
        assert vm.result() is None
        assert vm.step().is_finished
        assert vm.result() == "x"

    def test_circle_does_not_advance(self):
        vm = _run([write("x"), circle((-1, 0, 1))])
        assert vm.ip == 1
        assert vm.circled == Word.of(-1, 0, 1)
        assert vm.circled_position() == Pos(0, 0)

    def test_step_after_finish(self):
        vm = _run([circle((0, 0, 0))])
        with pytest.raises(AlreadyFinishedError):
            vm.step()

    def test_stop_is_fatal(self, caplog):
        vm = Machine([write("x"), stop()])
        vm.step()
        with caplog.at_level(logging.WARNING, logger="papier"):
            with pytest.raises(FatalHalt) as exc:
                vm.step()
        assert exc.value.ip == 1
        assert "STOP" in caplog.text

    def test_running_off_the_end(self):
        with pytest.raises(OutOfBoundsError):
            _run([write("x")])

    def test_jump_before_start(self):
        with pytest.raises(OutOfBoundsError) as exc:
            _run([jump(-1)])
        assert exc.value.ip == -1

    def test_step_limit(self):
        with pytest.raises(StepLimitExceeded):
            _run([jump(0)], max_steps=50)

    def test_errors_share_a_base(self):
        for cls in (FatalHalt, OutOfBoundsError, AlreadyFinishedError, StepLimitExceeded):
            assert issubclass(cls, MachineError)

    def test_breakpoint_only_reported(self):
        vm = Machine([break_point(), circle((0, 0, 0))])
        assert vm.step().is_breakpoint
        assert vm.step().is_finished


class TestListing:
    def test_nested_listing(self):
        text = listing([write(1.0), call([circle((0, 0, 0))], [(-F, 0, F)])])
        lines = text.splitlines()
        assert lines[0] == "   0  Write `         1'"
        assert lines[1] == "   1  Call prog[1]((-10, 0, 10))"
        assert lines[2] == "       0  Circle (0, 0, 0)"
