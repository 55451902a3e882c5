"""Bytecode control flow and probe mapping.

Each method body is split into basic blocks and every block owns one probe.
Probes are numbered across the class: methods in class file order, blocks in
offset order within a method. A block whose probe is set counts all of its
instructions as covered.

A branch of a conditional jump or switch is covered when the jump itself and
the block it leads to were both executed.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto

from aggrecov.analysis.classfile import ClassInfo, MethodInfo
from aggrecov.analysis.counters import COVERED_ONE, EMPTY, MISSED_ONE, Counter, CounterEntity
from aggrecov.analysis.coverage import LineCoverage, MethodCoverage, line_counter
from aggrecov.core.errors import ClassFormatError

LAMBDA_PREFIX = "lambda$"


class Flow(Enum):
    NEXT = auto()
    CONDITIONAL = auto()
    GOTO = auto()
    SWITCH = auto()
    EXIT = auto()
    SUBROUTINE = auto()


@dataclass(frozen=True, slots=True)
class Instruction:
    offset: int
    opcode: int
    flow: Flow = Flow.NEXT
    targets: tuple[int, ...] = ()


_SIZE_2 = frozenset([0x10, 0x12, *range(0x15, 0x1A), *range(0x36, 0x3B), 0xA9, 0xBC])
_SIZE_3 = frozenset([0x11, 0x13, 0x14, 0x84, *range(0xB2, 0xB9), 0xBB, 0xBD, 0xC0, 0xC1])
_CONDITIONAL = frozenset([*range(0x99, 0xA7), 0xC6, 0xC7])
_EXITS = frozenset([*range(0xAC, 0xB2), 0xBF])
_GOTO, _JSR, _RET = 0xA7, 0xA8, 0xA9
_GOTO_W, _JSR_W = 0xC8, 0xC9
_TABLESWITCH, _LOOKUPSWITCH = 0xAA, 0xAB
_WIDE, _IINC = 0xC4, 0x84

_S2 = struct.Struct(">h")
_S4 = struct.Struct(">i")


def _s2(code: bytes, pos: int) -> int:
    return int(_S2.unpack_from(code, pos)[0])


def _s4(code: bytes, pos: int) -> int:
    return int(_S4.unpack_from(code, pos)[0])


def decode(code: bytes) -> list[Instruction]:
    """Decode bytecode into instructions with their control flow.

    Raises:
        ClassFormatError: On a truncated instruction or unknown layout.
    """
    out: list[Instruction] = []
    pos = 0
    end = len(code)
    try:
        while pos < end:
            op = code[pos]
            if op in _CONDITIONAL:
                out.append(Instruction(pos, op, Flow.CONDITIONAL, (pos + _s2(code, pos + 1),)))
                size = 3
            elif op == _GOTO:
                out.append(Instruction(pos, op, Flow.GOTO, (pos + _s2(code, pos + 1),)))
                size = 3
            elif op == _GOTO_W:
                out.append(Instruction(pos, op, Flow.GOTO, (pos + _s4(code, pos + 1),)))
                size = 5
            elif op in (_JSR, _JSR_W):
                size = 3 if op == _JSR else 5
                delta = _s2(code, pos + 1) if op == _JSR else _s4(code, pos + 1)
                out.append(Instruction(pos, op, Flow.SUBROUTINE, (pos + delta,)))
            elif op in (_TABLESWITCH, _LOOKUPSWITCH):
                base = pos + 1 + (-(pos + 1) % 4)
                default = pos + _s4(code, base)
                if op == _TABLESWITCH:
                    low, high = _s4(code, base + 4), _s4(code, base + 8)
                    count = high - low + 1
                    cases = [pos + _s4(code, base + 12 + 4 * i) for i in range(count)]
                    size = base + 12 + 4 * count - pos
                else:
                    count = _s4(code, base + 4)
                    cases = [pos + _s4(code, base + 12 + 8 * i) for i in range(count)]
                    size = base + 8 + 8 * count - pos
                if count < 0:
                    raise ClassFormatError.malformed(f"negative switch size at {pos}")
                # Distinct targets, default first
                targets = tuple(dict.fromkeys([default, *cases]))
                out.append(Instruction(pos, op, Flow.SWITCH, targets))
            elif op == _WIDE:
                size = 6 if code[pos + 1] == _IINC else 4
                out.append(Instruction(pos, op))
            elif op in _EXITS or op == _RET:
                out.append(Instruction(pos, op, Flow.EXIT))
                size = 2 if op == _RET else 1
            else:
                if op in _SIZE_2:
                    size = 2
                elif op in _SIZE_3:
                    size = 3
                elif op in (0xB9, 0xBA):
                    size = 5
                elif op == 0xC5:
                    size = 4
                else:
                    size = 1
                out.append(Instruction(pos, op))
            pos += size
    except (IndexError, struct.error) as e:
        raise ClassFormatError.malformed(f"truncated instruction at offset {pos}") from e
    if pos != end:
        raise ClassFormatError.malformed(f"instruction overruns code at offset {pos}")
    return out


def block_leaders(instructions: Sequence[Instruction], handlers: Sequence[int] = ()) -> list[int]:
    """Sorted offsets that start a basic block."""
    if not instructions:
        return []
    valid = {insn.offset for insn in instructions}
    leaders = {0, *handlers}
    for i, insn in enumerate(instructions):
        leaders.update(insn.targets)
        if insn.flow is not Flow.NEXT and i + 1 < len(instructions):
            leaders.add(instructions[i + 1].offset)
    return sorted(leaders & valid)


def is_analyzed(method: MethodInfo) -> bool:
    """Methods that get probes: those with code, skipping compiler-generated
    ones other than lambda bodies."""
    if not method.has_code:
        return False
    return not method.is_synthetic or method.name.startswith(LAMBDA_PREFIX)


def probe_count(info: ClassInfo) -> int:
    """Number of probes the class is instrumented with."""
    total = 0
    for method in info.methods:
        if is_analyzed(method):
            total += len(block_leaders(decode(method.code), method.handlers))
    return total


def _line_for(offset: int, table: Sequence[tuple[int, int]]) -> int:
    line = -1
    for start, nr in table:
        if start > offset:
            break
        line = nr
    return line


def analyze_method(
    method: MethodInfo, probes: Sequence[bool] | None, first_probe: int
) -> tuple[MethodCoverage, int]:
    """Compute coverage of one method.

    Args:
        method: Method with code.
        probes: Class probe array, or None when the class never ran.
        first_probe: Index of this method's first probe.

    Returns:
        The method coverage and the number of probes it consumed.
    """
    instructions = decode(method.code)
    leaders = block_leaders(instructions, method.handlers)
    block_of = {}
    block = -1
    for insn in instructions:
        if block + 1 < len(leaders) and insn.offset == leaders[block + 1]:
            block += 1
        block_of[insn.offset] = block

    def executed(offset: int) -> bool:
        if probes is None or offset not in block_of:
            return False
        index = first_probe + block_of[offset]
        return index < len(probes) and probes[index]

    table = sorted(method.line_numbers)
    insn_counter = branch_counter = complexity = EMPTY
    lines: dict[int, LineCoverage] = {}

    for i, insn in enumerate(instructions):
        covered = executed(insn.offset)
        ins = COVERED_ONE if covered else MISSED_ONE
        br = EMPTY
        if insn.flow is Flow.CONDITIONAL:
            nxt = instructions[i + 1].offset if i + 1 < len(instructions) else -1
            outcomes = [executed(t) for t in (*insn.targets, nxt)]
            hit = sum(1 for o in outcomes if covered and o)
            br = Counter(len(outcomes) - hit, hit)
        elif insn.flow is Flow.SWITCH:
            hit = sum(1 for t in insn.targets if covered and executed(t))
            br = Counter(len(insn.targets) - hit, hit)

        insn_counter += ins
        branch_counter += br
        if br.total > 1:
            c = max(0, br.covered - 1)
            m = max(0, br.total - c - 1)
            complexity = complexity.increment(m, c)

        nr = _line_for(insn.offset, table)
        if nr >= 0:
            current = lines.get(nr)
            line = LineCoverage(ins, br)
            lines[nr] = line if current is None else current + line

    base = MISSED_ONE if insn_counter.covered == 0 else COVERED_ONE
    counters = {
        CounterEntity.INSTRUCTION: insn_counter,
        CounterEntity.BRANCH: branch_counter,
        CounterEntity.LINE: line_counter(lines),
        CounterEntity.COMPLEXITY: complexity + base,
        CounterEntity.METHOD: base,
        CounterEntity.CLASS: EMPTY,
    }
    coverage = MethodCoverage(name=method.name, desc=method.desc, lines=lines, counters=counters)
    return coverage, len(leaders)

