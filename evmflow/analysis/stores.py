from dataclasses import dataclass
from typing import List, Optional

import structlog

from evmflow.analysis.filters import find_address_or_dependence, find_next_push
from evmflow.analysis.tracer import DEFAULT_MAX_TRACE_DEPTH, TraceResult, trace_operand
from evmflow.core.instruction import Instruction
from evmflow.core.program import Program

logger = structlog.get_logger()

DESTINATION_SLOT = 0
VALUE_SLOT = 1


@dataclass
class StoreOn:
    instruction: Instruction
    destination_trace: TraceResult
    value_trace: TraceResult

    @property
    def destination(self) -> Optional[int]:
        return self.destination_trace.value

    @property
    def value(self) -> Optional[int]:
        """The stored value, only when it is a constant."""
        return self.value_trace.value if self.value_trace.is_constant else None

    @property
    def stores_calldata(self) -> bool:
        return self.value_trace.from_calldata

    @property
    def stores_storage(self) -> bool:
        return self.value_trace.from_storage

    def __str__(self) -> str:
        destination = _hex(self.destination)
        loaded = _hex(self.value_trace.value)
        if self.stores_calldata:
            return f"SSTORE stores calldata {loaded} to {destination}"
        if self.stores_storage:
            return f"SSTORE stores a storage-loaded value from {loaded} to {destination}"
        return f"SSTORE stores a constant {_hex(self.value)} to {destination}"


def _hex(value: Optional[int]) -> str:
    return "unknown" if value is None else f"0x{value:X}"


def resolve_store(instruction: Instruction, max_depth: int = DEFAULT_MAX_TRACE_DEPTH) -> Optional[StoreOn]:
    """Trace destination and value of an SSTORE; None unless both traces succeed."""
    value_trace = trace_operand(instruction, VALUE_SLOT, find_address_or_dependence, max_depth)
    destination_trace = trace_operand(instruction, DESTINATION_SLOT, find_next_push, max_depth)
    if value_trace is None or destination_trace is None:
        return None
    return StoreOn(
        instruction=instruction,
        destination_trace=destination_trace,
        value_trace=value_trace,
    )


def find_sstores(program: Program, max_depth: int = DEFAULT_MAX_TRACE_DEPTH) -> List[StoreOn]:
    """Attach a StoreOn to every SSTORE whose destination and value traces both succeed."""
    stores = []
    for instruction in program.filter_instructions("SSTORE"):
        logger.debug("Trace back SSTORE", instruction=instruction)
        store = resolve_store(instruction, max_depth)
        if store is None:
            instruction.annotations.remove(StoreOn)
            continue
        instruction.annotations.set(store)
        stores.append(store)
    logger.info("Resolved stores", sstores=len(stores))
    return stores
