"""
Analysis pipeline: decode, reaching definitions, call and store resolution,
and, for deploy bytecode, constructor constant propagation.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from evmflow.analysis.calls import CallOnAddress, find_calls
from evmflow.analysis.constructor import find_code_entry_point, resolve_with_constructor_constants
from evmflow.analysis.reaching import perform_reaching_analysis
from evmflow.analysis.stores import StoreOn, find_sstores
from evmflow.config import AnalysisConfig
from evmflow.core.program import Program
from evmflow.disassembler import build_program, find_swarm_hash, strip_swarm_hash

logger = structlog.get_logger()

CONSTRUCTOR = "constructor"
RUNTIME = "runtime"


@dataclass
class PhaseResult:
    program: Program
    calls: List[CallOnAddress] = field(default_factory=list)
    stores: List[StoreOn] = field(default_factory=list)


@dataclass
class AnalysisResult:
    phases: Dict[str, PhaseResult]
    swarm_hash: Optional[bytes] = None
    code_entry_point: Optional[int] = None

    @property
    def runtime(self) -> PhaseResult:
        return self.phases[RUNTIME]

    @property
    def constructor(self) -> Optional[PhaseResult]:
        return self.phases.get(CONSTRUCTOR)


def analyze_program(program: Program, config: Optional[AnalysisConfig] = None) -> PhaseResult:
    config = config or AnalysisConfig()
    perform_reaching_analysis(program)
    result = PhaseResult(program=program)
    if config.calls:
        result.calls = find_calls(program, config.max_trace_depth)
        result.stores = find_sstores(program, config.max_trace_depth)
    return result


def split_deploy_code(bytecode: bytes) -> int:
    """Offset where the runtime code starts inside deploy bytecode."""
    whole = build_program(bytecode)
    perform_reaching_analysis(whole)
    entry_point = find_code_entry_point(whole)
    if entry_point == 0:
        raise ValueError("No code entry point found in constructor")
    if entry_point >= len(whole.code):
        raise ValueError(
            f"Code entry point 0x{entry_point:x} is outside of the available code (size 0x{len(whole.code):x})"
        )
    return entry_point


def analyze_bytecode(bytecode: bytes, config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    config = config or AnalysisConfig()
    if config.strip_swarm:
        bytecode, swarm_hash = strip_swarm_hash(bytecode)
    else:
        swarm_hash = find_swarm_hash(bytecode)

    if not config.ctor:
        phase = analyze_program(build_program(bytecode), config)
        return AnalysisResult(phases={RUNTIME: phase}, swarm_hash=swarm_hash)

    entry_point = split_deploy_code(bytecode)
    logger.info("Split deploy code", code_entry_point=hex(entry_point))
    ctor = analyze_program(build_program(bytecode[:entry_point]), config)
    runtime = analyze_program(build_program(bytecode[entry_point:]), config)
    if config.calls:
        resolve_with_constructor_constants(runtime.program, ctor.program)
    return AnalysisResult(
        phases={CONSTRUCTOR: ctor, RUNTIME: runtime},
        swarm_hash=swarm_hash,
        code_entry_point=entry_point,
    )
