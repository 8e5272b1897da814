from dataclasses import dataclass

from evmflow.analysis.tracer import DEFAULT_MAX_TRACE_DEPTH

DEFAULT_OUTPUT_FORMAT = "text"
OUTPUT_FORMATS = ("text", "json", "yaml")


@dataclass
class AnalysisConfig:
    max_trace_depth: int = DEFAULT_MAX_TRACE_DEPTH
    strip_swarm: bool = True
    # Deploy bytecode: split at the code entry point and analyze both phases
    ctor: bool = False
    # Resolve calls and stores; without it only reaching definitions are computed
    calls: bool = True

    def __post_init__(self):
        if self.max_trace_depth < 0:
            raise ValueError(f"max_trace_depth must be >= 0, got {self.max_trace_depth}")
