from typing import Optional

from evmflow.analysis.tracer import TraceResult, trace_operands
from evmflow.core.instruction import Instruction

# Placeholder some compilers push where an address is filled in later
ADDRESS_MASK = (1 << 160) - 1

DEFAULT_SUB_TRACE_DEPTH = 2


def find_next_push(instr: Instruction) -> Optional[TraceResult]:
    """Accept the nearest push of any width, with its immediate verbatim."""
    if instr.is_push:
        return TraceResult(instruction=instr, value=instr.arg)
    return None


def find_address_or_dependence(instr: Instruction) -> Optional[TraceResult]:
    """
    Accept a constant 20 byte address, or a load from storage or calldata.

    For loads, the constant slot/offset being read is recovered with a
    shallow nested trace and kept as the sub-trace. The load is accepted
    either way; its value is only set when the nested trace succeeded.
    """
    if instr.opcode == "PUSH20" and instr.arg != ADDRESS_MASK:
        return TraceResult(instruction=instr, value=instr.arg)

    if instr.opcode in ("SLOAD", "CALLDATALOAD"):
        sub_trace = trace_operands(instr, find_next_push, DEFAULT_SUB_TRACE_DEPTH)
        return TraceResult(
            instruction=instr,
            value=sub_trace.value if sub_trace is not None else None,
            sub_trace=sub_trace,
        )

    return None
