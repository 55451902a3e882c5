"""Tests for bytecode decoding, basic blocks and per-method coverage."""

from __future__ import annotations

import pytest

from aggrecov.analysis.classfile import ACC_SYNTHETIC, MethodInfo
from aggrecov.analysis.counters import Counter, CounterEntity, CoverageStatus
from aggrecov.analysis.probes import (
    Flow,
    analyze_method,
    block_leaders,
    decode,
    is_analyzed,
)
from aggrecov.core.errors import ClassFormatError
from tests.conftest import BRANCH_CODE, BRANCH_LINES

TABLESWITCH_CODE = bytes(
    [0xAA, 0, 0, 0]
    + [0, 0, 0, 24]  # default -> 24
    + [0, 0, 0, 0]  # low
    + [0, 0, 0, 1]  # high
    + [0, 0, 0, 24]  # case 0 -> 24
    + [0, 0, 0, 25]  # case 1 -> 25
    + [0x03, 0xAC]
)

LOOKUPSWITCH_CODE = bytes(
    [0x1B, 0xAB, 0, 0]
    + [0, 0, 0, 19]  # default -> 20
    + [0, 0, 0, 1]  # npairs
    + [0, 0, 0, 5, 0, 0, 0, 20]  # match 5 -> 21
    + [0x03, 0xAC]
)


def _method(code: bytes, lines=BRANCH_LINES, name: str = "m", access: int = 0x0001) -> MethodInfo:
    return MethodInfo(access=access, name=name, desc="(I)I", code=code, line_numbers=lines)


class TestDecode:
    """Instruction decoding."""

    def test_conditional_jump_has_absolute_target(self) -> None:
        """ifeq offsets are resolved relative to the instruction."""
        insns = decode(BRANCH_CODE)

        assert [i.offset for i in insns] == [0, 1, 4, 5, 6, 7]
        assert insns[1].flow is Flow.CONDITIONAL
        assert insns[1].targets == (6,)
        assert insns[3].flow is Flow.EXIT

    def test_tableswitch_is_padded_and_targets_deduplicated(self) -> None:
        """tableswitch operands start at the next 4-byte boundary."""
        insns = decode(TABLESWITCH_CODE)

        assert [i.offset for i in insns] == [0, 24, 25]
        assert insns[0].flow is Flow.SWITCH
        assert insns[0].targets == (24, 25)

    def test_lookupswitch_after_other_instruction(self) -> None:
        """Padding is computed from the start of the code array."""
        insns = decode(LOOKUPSWITCH_CODE)

        assert [i.offset for i in insns] == [0, 1, 20, 21]
        assert insns[1].targets == (20, 21)

    def test_wide_forms(self) -> None:
        """wide iinc takes 6 bytes, other wide forms 4."""
        code = bytes([0xC4, 0x84, 0, 1, 0, 1, 0xC4, 0x15, 0, 1, 0xB1])

        assert [i.offset for i in decode(code)] == [0, 6, 10]

    @pytest.mark.parametrize(
        "code",
        [
            bytes([0x99, 0x00]),
            bytes([0x10]),
            bytes([0xAA, 0, 0]),
        ],
    )
    def test_truncated_code_raises(self, code: bytes) -> None:
        """Truncated instructions are a class format error."""
        with pytest.raises(ClassFormatError):
            decode(code)


class TestBlocks:
    """Basic block splitting."""

    def test_blocks_split_at_targets_and_after_transfers(self) -> None:
        assert block_leaders(decode(BRANCH_CODE)) == [0, 4, 6]

    def test_handler_starts_block(self) -> None:
        """Exception handler entries begin a new block."""
        code = bytes([0x04, 0x57, 0x04, 0x57, 0xB1])  # iconst_1 pop iconst_1 pop return

        assert block_leaders(decode(code), handlers=[2]) == [0, 2]

    def test_straight_line_code_is_one_block(self) -> None:
        assert block_leaders(decode(bytes([0x04, 0x57, 0xB1]))) == [0]

    def test_empty_code_has_no_blocks(self) -> None:
        assert block_leaders([]) == []


class TestIsAnalyzed:
    """Which methods receive probes."""

    def test_synthetic_method_skipped(self) -> None:
        assert not is_analyzed(_method(BRANCH_CODE, name="access$000", access=ACC_SYNTHETIC))

    def test_synthetic_lambda_kept(self) -> None:
        assert is_analyzed(_method(BRANCH_CODE, name="lambda$run$0", access=ACC_SYNTHETIC))

    def test_method_without_code_skipped(self) -> None:
        assert not is_analyzed(MethodInfo(access=0x0401, name="run", desc="()V"))


class TestAnalyzeMethod:
    """Counters derived from probes."""

    def test_no_execution_data_marks_everything_missed(self) -> None:
        coverage, used = analyze_method(_method(BRANCH_CODE), None, 0)

        assert used == 3
        assert coverage.counter(CounterEntity.INSTRUCTION) == Counter(6, 0)
        assert coverage.counter(CounterEntity.BRANCH) == Counter(2, 0)
        assert coverage.counter(CounterEntity.LINE) == Counter(3, 0)
        assert coverage.counter(CounterEntity.COMPLEXITY) == Counter(2, 0)
        assert coverage.counter(CounterEntity.METHOD) == Counter(1, 0)

    def test_one_branch_taken(self) -> None:
        """Jump not taken: fall-through block ran, target block did not."""
        coverage, _ = analyze_method(_method(BRANCH_CODE), (True, True, False), 0)

        assert coverage.counter(CounterEntity.INSTRUCTION) == Counter(2, 4)
        assert coverage.counter(CounterEntity.BRANCH) == Counter(1, 1)
        assert coverage.counter(CounterEntity.LINE) == Counter(1, 2)
        assert coverage.counter(CounterEntity.COMPLEXITY) == Counter(1, 1)
        assert coverage.counter(CounterEntity.METHOD) == Counter(0, 1)
        assert coverage.lines[10].status is CoverageStatus.PARTLY_COVERED
        assert coverage.lines[12].status is CoverageStatus.NOT_COVERED

    def test_all_blocks_executed(self) -> None:
        coverage, _ = analyze_method(_method(BRANCH_CODE), (True, True, True), 0)

        assert coverage.counter(CounterEntity.BRANCH) == Counter(0, 2)
        assert coverage.counter(CounterEntity.COMPLEXITY) == Counter(0, 2)
        assert coverage.lines[10].status is CoverageStatus.FULLY_COVERED

    def test_probes_offset_by_first_probe(self) -> None:
        """A method reads its probes starting at its own first index."""
        probes = (False, False, True, True, True)

        coverage, _ = analyze_method(_method(BRANCH_CODE), probes, 2)

        assert coverage.counter(CounterEntity.INSTRUCTION) == Counter(0, 6)

    def test_short_probe_array_counts_missing_as_not_executed(self) -> None:
        coverage, _ = analyze_method(_method(BRANCH_CODE), (True,), 0)

        assert coverage.counter(CounterEntity.INSTRUCTION) == Counter(4, 2)

    def test_method_without_line_table_has_no_lines(self) -> None:
        coverage, _ = analyze_method(_method(BRANCH_CODE, lines=()), None, 0)

        assert coverage.lines == {}
        assert coverage.first_line == -1
        assert coverage.counter(CounterEntity.LINE) == Counter(0, 0)

    def test_switch_branches_per_distinct_target(self) -> None:
        """A switch with two distinct targets has two branches."""
        coverage, used = analyze_method(_method(TABLESWITCH_CODE, lines=()), (True, True, False), 0)

        assert used == 3
        assert coverage.counter(CounterEntity.BRANCH) == Counter(1, 1)
