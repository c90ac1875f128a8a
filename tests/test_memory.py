"""
Tests for positions, relative words and the sparse paper.

Tests cover:
  - Word resolution against different cursors
  - Blank-by-default reads that never create cells
  - Rendering crops to the populated bounding box
  - The write/cursor contract (newline, blank skip)
"""

import pytest

from papier.addressing import ORIGIN, Pos, Word, as_word
from papier.instructions import move_cursor, write
from papier.machine import Machine
from papier.memory import BLANK, Memory


# ─── Addressing ─────────────────────

class TestWord:
    def test_resolve_is_relative_to_cursor(self):
        word = Word.of(-2, -1, 3)
        assert word.resolve(Pos(5, 5)) == Pos(3, 4)
        assert word.resolve(ORIGIN) == Pos(-2, -1)

    def test_positions_run_along_the_row(self):
        cells = list(Word.of(1, 0, 3).positions(Pos(0, 2)))
        assert cells == [Pos(1, 2), Pos(2, 2), Pos(3, 2)]

    def test_zero_length_word_covers_nothing(self):
        assert list(Word.of(0, 0, 0).positions(ORIGIN)) == []

    def test_negative_length_rejected(self):
        with pytest.raises(ValueError):
            Word.of(0, 0, -1)

    def test_tuple_coercion(self):
        assert as_word((-10, 0, 10)) == Word.of(-10, 0, 10)
        word = Word.of(1, 2, 3)
        assert as_word(word) is word

    def test_str_format(self):
        assert str(Word.of(-10, 1, 10)) == "(-10, 1, 10)"

    def test_down_returns_to_column_zero(self):
        assert Pos(7, 3).down() == Pos(0, 4)


# ─── Memory ─────────────────────

class TestMemory:
    def test_unwritten_cell_reads_blank(self):
        mem = Memory()
        assert mem.get(Pos(100, -100)) == BLANK
        assert Pos(100, -100) not in mem
        assert len(mem) == 0

    def test_set_then_get(self):
        mem = Memory()
        mem.set(Pos(-3, 2), "x")
        assert mem.get(Pos(-3, 2)) == "x"
        assert mem.snapshot() == {Pos(-3, 2): "x"}

    def test_overwrite(self):
        mem = Memory()
        mem.set(ORIGIN, "a")
        mem.set(ORIGIN, "b")
        assert mem.get(ORIGIN) == "b"
        assert len(mem) == 1

    def test_cell_holds_exactly_one_character(self):
        mem = Memory()
        with pytest.raises(ValueError):
            mem.set(ORIGIN, "ab")
        with pytest.raises(ValueError):
            mem.set(ORIGIN, "")

    def test_empty_render(self):
        assert Memory().render() == ""
        assert Memory().bounds() is None

    def test_render_crops_to_bounds(self):
        mem = Memory()
        mem.set(Pos(-1, -1), "a")
        mem.set(Pos(1, 0), "b")
        assert mem.bounds() == (Pos(-1, -1), Pos(1, 0))
        assert mem.render() == "a  \n  b\n"


# ─── Write contract ─────────────────────

class TestWriteContract:
    def test_newline_moves_to_next_row_column_zero(self):
        vm = Machine([])
        vm.write("ab\ncd")
        assert vm.cursor == Pos(2, 1)
        assert vm.memory.snapshot() == {
            Pos(0, 0): "a", Pos(1, 0): "b", Pos(0, 1): "c", Pos(1, 1): "d",
        }

    def test_blank_skips_without_creating_cell(self):
        vm = Machine([])
        vm.write(" x")
        assert Pos(0, 0) not in vm.memory
        assert vm.memory.get(Pos(1, 0)) == "x"
        assert vm.cursor == Pos(2, 0)

    def test_blank_does_not_erase(self):
        vm = Machine([write("abc"), move_cursor(-3, 0), write(" Z")])
        for _ in range(3):
            vm.step()
        assert vm.read((-2, 0, 3)) == "aZc"

    def test_number_written_right_justified(self):
        vm = Machine([])
        vm.write(42.0)
        assert vm.cursor == Pos(10, 0)
        assert vm.read((-10, 0, 10)) == "        42"
        assert vm.read((-10, 0, 10), float) == 42.0

    def test_character_list_written(self):
        vm = Machine([])
        vm.write(["h", "i"])
        assert vm.read((-2, 0, 2), list) == ["h", "i"]
