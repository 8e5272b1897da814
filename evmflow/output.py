"""
Rendering of analysis results as text, JSON or YAML, and the annotated
disassembly listing.
"""

import json
from typing import Any, Dict, List

import yaml

from evmflow.analysis.calls import CallOnAddress
from evmflow.analysis.reaching import ReachingDefinition
from evmflow.analysis.stores import StoreOn
from evmflow.analyzer import CONSTRUCTOR, RUNTIME, AnalysisResult, PhaseResult
from evmflow.core.program import Program

PHASE_HEADERS = {
    CONSTRUCTOR: "// # Constructor part -------------------------",
    RUNTIME: "// # Code part -------------------------",
}


def _hex_or_none(value):
    return None if value is None else hex(value)


def store_to_dict(store: StoreOn) -> Dict[str, Any]:
    """
    `value` is the stored constant. For values loaded from calldata or
    storage, `source` is the calldata offset or slot they were loaded from.
    """
    source = None
    if store.stores_calldata:
        kind = "calldata"
        source = store.value_trace.value
    elif store.stores_storage:
        kind = "storage"
        source = store.value_trace.value
    else:
        kind = "constant"
    return {
        "offset": store.instruction.offset,
        "kind": kind,
        "destination": _hex_or_none(store.destination),
        "value": _hex_or_none(store.value),
        "source": _hex_or_none(source),
    }


def call_to_dict(call: CallOnAddress) -> Dict[str, Any]:
    return {"offset": call.instruction.offset, **call.to_output().to_dict()}


def phase_to_dict(phase: PhaseResult) -> Dict[str, Any]:
    return {
        "calls": [call_to_dict(c) for c in phase.calls],
        "stores": [store_to_dict(s) for s in phase.stores],
    }


def result_to_dict(result: AnalysisResult, print_swarm: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if print_swarm and result.swarm_hash is not None:
        data["swarmHash"] = "0x" + result.swarm_hash.hex()
    if result.code_entry_point is not None:
        data["codeEntryPoint"] = hex(result.code_entry_point)
    for name, phase in result.phases.items():
        data[name] = phase_to_dict(phase)
    return data


def annotation_lines(program: Program) -> List[str]:
    """Store and call annotations in code order."""
    lines = []
    for instruction in program.instructions():
        store = instruction.annotations.get(StoreOn)
        if store is not None:
            lines.append(f"0x{instruction.offset:X}\t{store}")
        call = instruction.annotations.get(CallOnAddress)
        if call is not None:
            lines.append(f"0x{instruction.offset:X}\t{call}")
    return lines


def format_listing(program: Program) -> List[str]:
    """
    Disassembly with the stack prestate of each block and the producers of
    every operand an instruction consumes.
    """
    lines = []
    for block in program.blocks:
        if block.instructions[0].opcode == "JUMPDEST":
            lines.append(f":label_0x{block.offset:X}")
        lines.append(f"# Stack: {block.annotations.get(ReachingDefinition)}")
        for instruction in block.instructions:
            text = instruction.opcode
            if instruction.arg is not None:
                text += f"(0x{instruction.arg:X})"
            reaching = instruction.annotations.get(ReachingDefinition)
            if reaching:
                text += f" <- {reaching}"
            lines.append(f"0x{instruction.offset:X}\t{text}")
        lines.append("")
    return lines


def render_text(result: AnalysisResult, calls: bool = True, print_swarm: bool = False) -> str:
    lines = []
    if print_swarm and result.swarm_hash is not None:
        lines.append("0x" + result.swarm_hash.hex())
    for name, phase in result.phases.items():
        if len(result.phases) > 1:
            lines.append(PHASE_HEADERS[name])
        lines.extend(annotation_lines(phase.program) if calls else format_listing(phase.program))
    return "\n".join(lines)


def render_json(result: AnalysisResult, print_swarm: bool = False) -> str:
    return json.dumps(result_to_dict(result, print_swarm), indent=2)


def render_yaml(result: AnalysisResult, print_swarm: bool = False) -> str:
    return yaml.safe_dump(result_to_dict(result, print_swarm), default_flow_style=False, sort_keys=False)
