"""
Cross-phase analysis of deploy bytecode.

The constructor copies the runtime code out of the deploy bytecode with
CODECOPY; the source offset of that copy splits the two phases. Once both
phases have their calls and stores resolved, call targets loaded from a
storage slot that only the constructor writes, with a single constant, are
resolved to that constant.
"""

from typing import Dict, List, Optional, Set

import structlog

from evmflow.analysis.calls import CALL_OPCODES, CallOnAddress
from evmflow.analysis.filters import find_next_push
from evmflow.analysis.stores import StoreOn
from evmflow.analysis.tracer import trace_operand
from evmflow.core.program import Program

logger = structlog.get_logger()

# CODECOPY(destOffset, offset, size)
CODECOPY_SOURCE_SLOT = 1


def find_code_entry_point(program: Program) -> int:
    """Source offset of the last CODECOPY with a constant offset, 0 if there is none."""
    entry_point = 0
    for instruction in program.filter_instructions("CODECOPY"):
        trace = trace_operand(instruction, CODECOPY_SOURCE_SLOT, find_next_push, max_depth=1)
        if trace is None:
            logger.debug("CODECOPY offset is not a constant", instruction=instruction)
            continue
        entry_point = trace.value
    return entry_point


def _constructor_constants(ctor: Program) -> Dict[int, Optional[int]]:
    """
    Map each slot the constructor writes to the constant it stores there.

    A slot maps to None when it is written more than once with different
    values, or with a value that is not a constant.
    """
    constants: Dict[int, Optional[int]] = {}
    for instruction in ctor.filter_instructions("SSTORE"):
        store = instruction.annotations.get(StoreOn)
        if store is None or store.destination is None:
            continue
        slot = store.destination
        if slot in constants and constants[slot] != store.value:
            constants[slot] = None
        else:
            constants.setdefault(slot, store.value)
    return constants


def _runtime_written_slots(program: Program) -> Optional[Set[int]]:
    """Slots written by the runtime code, or None if any write has an unknown slot."""
    slots = set()
    for instruction in program.filter_instructions("SSTORE"):
        store = instruction.annotations.get(StoreOn)
        if store is None or store.destination is None:
            logger.debug("Runtime SSTORE with unknown destination", instruction=instruction)
            return None
        slots.add(store.destination)
    return slots


def resolve_with_constructor_constants(program: Program, ctor: Program) -> List[CallOnAddress]:
    """
    Resolve storage-dependent calls of `program` using the stores of `ctor`.

    Both programs must already have gone through find_calls and find_sstores.
    Returns the calls that were resolved.
    """
    pending = []
    for instruction in program.filter_instructions(*CALL_OPCODES):
        call = instruction.annotations.get(CallOnAddress)
        if call is not None and call.storage_slot is not None:
            pending.append(call)
    if not pending:
        return []

    written = _runtime_written_slots(program)
    if written is None:
        logger.info("Runtime code writes to unknown slots, skipping constructor constants")
        return []

    constants = _constructor_constants(ctor)
    resolved = []
    for call in pending:
        slot = call.storage_slot
        value = constants.get(slot)
        if value is None or slot in written:
            continue
        call.address = value
        call.ctor_resolved = True
        resolved.append(call)
        logger.debug("Resolved call with constructor constant", call=str(call), slot=slot)

    logger.info("Constructor constants", pending=len(pending), resolved=len(resolved))
    return resolved
