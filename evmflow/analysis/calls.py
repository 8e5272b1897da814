"""
Call target resolution.

Every call instruction gets a CallOnAddress describing where its target
address comes from: a constant, a storage slot, calldata, or nothing the
search could identify.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from evmflow.analysis.filters import find_address_or_dependence
from evmflow.analysis.tracer import DEFAULT_MAX_TRACE_DEPTH, TraceResult, trace_operand
from evmflow.core.instruction import Instruction
from evmflow.core.program import Program

logger = structlog.get_logger()

CALL_OPCODES = ("CALL", "CALLCODE", "DELEGATECALL", "STATICCALL")

# Stack slot holding the callee, the same for every call opcode
ADDRESS_SLOT = 1


def format_address(address: int) -> str:
    return f"0x{address:040x}"


@dataclass
class CallOutput:
    address: Optional[str]
    call_type: str
    ctor_resolved: bool
    depends_on_storage: bool
    depends_on_calldata: bool
    depends_on_unknown: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "callType": self.call_type,
            "ctorResolved": self.ctor_resolved,
            "dependsOnStorage": self.depends_on_storage,
            "dependsOnCalldata": self.depends_on_calldata,
            "dependsOnUnknown": self.depends_on_unknown,
        }


@dataclass
class CallOnAddress:
    instruction: Instruction
    address: Optional[int] = None
    trace: Optional[TraceResult] = None
    ctor_resolved: bool = False

    @property
    def depends_on_storage(self) -> bool:
        return self.trace is not None and self.trace.from_storage and not self.ctor_resolved

    @property
    def depends_on_calldata(self) -> bool:
        return self.trace is not None and self.trace.from_calldata

    @property
    def is_resolved(self) -> bool:
        return (
            not self.depends_on_storage
            and not self.depends_on_calldata
            and self.address is not None
        )

    @property
    def depends_on_unknown(self) -> bool:
        return not (self.depends_on_storage or self.depends_on_calldata or self.is_resolved)

    @property
    def storage_slot(self) -> Optional[int]:
        """Constant slot the target is loaded from, if that is what it depends on."""
        if self.depends_on_storage and self.trace.sub_trace is not None:
            return self.trace.sub_trace.value
        return None

    def to_output(self) -> CallOutput:
        return CallOutput(
            address=format_address(self.address) if self.is_resolved else None,
            call_type=self.instruction.opcode,
            ctor_resolved=self.ctor_resolved,
            depends_on_storage=self.depends_on_storage,
            depends_on_calldata=self.depends_on_calldata,
            depends_on_unknown=self.depends_on_unknown,
        )

    def __str__(self) -> str:
        opcode = self.instruction.opcode
        if self.depends_on_calldata:
            return f"{opcode} depends on CALLDATA {_hex(self.trace.value)}"
        if self.depends_on_storage:
            return f"{opcode} depends on SLOAD {_hex(self.trace.value)}"
        if self.is_resolved:
            suffix = " (constructor constant)" if self.ctor_resolved else ""
            return f"{opcode} on {format_address(self.address)}{suffix}"
        return f"{opcode} depends on unknown"


def _hex(value: Optional[int]) -> str:
    return "unknown" if value is None else f"0x{value:X}"


def resolve_call(instruction: Instruction, max_depth: int = DEFAULT_MAX_TRACE_DEPTH) -> CallOnAddress:
    trace = trace_operand(instruction, ADDRESS_SLOT, find_address_or_dependence, max_depth)
    address = trace.value if trace is not None and trace.is_constant else None
    return CallOnAddress(instruction=instruction, address=address, trace=trace)


def find_calls(program: Program, max_depth: int = DEFAULT_MAX_TRACE_DEPTH) -> List[CallOnAddress]:
    """Attach a CallOnAddress to every call instruction of `program`."""
    calls = []
    for instruction in program.filter_instructions(*CALL_OPCODES):
        logger.debug("Trace back call", instruction=instruction)
        call = resolve_call(instruction, max_depth)
        instruction.annotations.set(call)
        calls.append(call)
    logger.info(
        "Resolved calls",
        calls=len(calls),
        constant=sum(c.is_resolved for c in calls),
        storage=sum(c.depends_on_storage for c in calls),
        calldata=sum(c.depends_on_calldata for c in calls),
    )
    return calls
