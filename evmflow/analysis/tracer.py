"""
Depth-bounded backward search over reaching definitions.

The search starts from the producers of one stack operand and walks to the
producers of their operands until a filter accepts an instruction. It is
first-match: candidates are tried in the order the reaching-definitions fact
lists them and the first accepted result wins. The depth bound is what makes
the search terminate when producers form a cycle.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Generator, Optional, Sequence

import structlog

from evmflow.analysis.reaching import producers
from evmflow.core.instruction import Instruction

logger = structlog.get_logger()

DEFAULT_MAX_TRACE_DEPTH = 1024


@dataclass
class TraceResult:
    """Outcome of a successful backward search."""

    instruction: Instruction
    value: Optional[int] = None
    sub_trace: Optional["TraceResult"] = None

    @property
    def from_storage(self) -> bool:
        return self.instruction.opcode == "SLOAD"

    @property
    def from_calldata(self) -> bool:
        return self.instruction.opcode == "CALLDATALOAD"

    @property
    def is_constant(self) -> bool:
        return self.instruction.is_push and self.value is not None

    def __str__(self) -> str:
        value = "?" if self.value is None else f"0x{self.value:X}"
        return f"{self.instruction.opcode}({value})"


# Returns a result to accept the instruction, None to keep searching
TraceFilter = Callable[[Instruction], Optional[TraceResult]]


class _BackwardSearch:
    """
    First-match depth-first search, run on an explicit stack of generators
    so the depth bound is not limited by the interpreter's recursion limit.

    Each step generator yields the sub-search it needs and receives its result.
    """

    def __init__(self, trace_filter: TraceFilter):
        self.trace_filter = trace_filter
        # id(instruction) -> largest depth its operands were searched with, without result.
        # A search with less depth explores a subset of that one and fails too.
        self.exhausted: Dict[int, int] = {}

    def run(self, step: Generator) -> Optional[TraceResult]:
        pending = [step]
        result = None
        while pending:
            try:
                sub_step = pending[-1].send(result)
            except StopIteration as stop:
                pending.pop()
                result = stop.value
                continue
            pending.append(sub_step)
            result = None
        return result

    def trace_back(self, candidates: Sequence[Instruction], max_depth: int) -> Generator:
        if max_depth <= 0 or not candidates:
            return None

        for candidate in candidates:
            result = self.trace_filter(candidate)
            if result is not None:
                return result

        for candidate in candidates:
            result = yield self.trace_operands(candidate, max_depth)
            if result is not None:
                return result
        return None

    def trace_operands(self, instruction: Instruction, max_depth: int) -> Generator:
        if self.exhausted.get(id(instruction), 0) >= max_depth:
            return None
        for slot in range(instruction.stack_reads):
            result = yield self.trace_back(producers(instruction, slot), max_depth - 1)
            if result is not None:
                return result
        self.exhausted[id(instruction)] = max_depth
        return None


def trace_back(
    candidates: Sequence[Instruction], trace_filter: TraceFilter, max_depth: int
) -> Optional[TraceResult]:
    """
    Search `candidates`, then their producers, for an instruction the filter accepts.

    Returns None when no candidate is accepted within `max_depth` hops.
    """
    search = _BackwardSearch(trace_filter)
    return search.run(search.trace_back(candidates, max_depth))


def trace_operands(
    instruction: Instruction, trace_filter: TraceFilter, max_depth: int
) -> Optional[TraceResult]:
    """Trace each operand of `instruction` in stack order with one less level of depth."""
    search = _BackwardSearch(trace_filter)
    return search.run(search.trace_operands(instruction, max_depth))


def trace_operand(
    instruction: Instruction,
    slot: int,
    trace_filter: TraceFilter,
    max_depth: int = DEFAULT_MAX_TRACE_DEPTH,
) -> Optional[TraceResult]:
    """Trace a single operand of `instruction`, starting from its producers."""
    result = trace_back(producers(instruction, slot), trace_filter, max_depth)
    logger.debug("Traced operand", instruction=instruction, slot=slot, result=str(result))
    return result
