"""
Backward dataflow resolution of call targets and storage writes in EVM bytecode.
"""

# Data model
from .core.annotations import Annotations
from .core.basic_block import BasicBlock
from .core.instruction import Instruction
from .core.program import Program

# Analyses
from .analysis.reaching import (
    MissingReachingDefinition,
    ReachingDefinition,
    ReachingDefinitionError,
    StackArityMismatch,
    perform_reaching_analysis,
)
from .analysis.tracer import TraceResult, trace_back, trace_operand, trace_operands
from .analysis.filters import find_address_or_dependence, find_next_push
from .analysis.calls import CallOnAddress, CallOutput, find_calls
from .analysis.stores import StoreOn, find_sstores
from .analysis.constructor import find_code_entry_point, resolve_with_constructor_constants

# Pipeline
from .analyzer import AnalysisResult, PhaseResult, analyze_bytecode, analyze_program
from .config import AnalysisConfig
from .disassembler import build_program, parse_hex, strip_swarm_hash


__all__ = [
    # Data model
    "Annotations",
    "BasicBlock",
    "Instruction",
    "Program",
    # Analyses
    "MissingReachingDefinition",
    "ReachingDefinition",
    "ReachingDefinitionError",
    "StackArityMismatch",
    "perform_reaching_analysis",
    "TraceResult",
    "trace_back",
    "trace_operand",
    "trace_operands",
    "find_address_or_dependence",
    "find_next_push",
    "CallOnAddress",
    "CallOutput",
    "find_calls",
    "StoreOn",
    "find_sstores",
    "find_code_entry_point",
    "resolve_with_constructor_constants",
    # Pipeline
    "AnalysisResult",
    "PhaseResult",
    "analyze_bytecode",
    "analyze_program",
    "AnalysisConfig",
    "build_program",
    "parse_hex",
    "strip_swarm_hash",
]
