from typing import Optional

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from evmflow.analysis.calls import find_calls
from evmflow.analysis.reaching import perform_reaching_analysis, producers
from evmflow.analysis.stores import find_sstores
from evmflow.analysis.tracer import DEFAULT_MAX_TRACE_DEPTH, TraceResult, trace_back
from evmflow.disassembler import build_program

from asm import make_instruction, wire

NODE_OPCODES = ["ADD", "MLOAD", "ISZERO", "CALLER"]


@composite
def producer_graphs(draw):
    """
    Hand-wired instructions whose operands are produced by arbitrary
    instructions of the same graph, cycles included.
    """
    size = draw(st.integers(min_value=1, max_value=6))
    nodes = [make_instruction(draw(st.sampled_from(NODE_OPCODES)), offset=offset) for offset in range(size)]
    for node in nodes:
        reads = draw(st.integers(min_value=0, max_value=2))
        node.stack_reads = reads
        wire(node, *[draw(st.lists(st.sampled_from(nodes), max_size=2, unique_by=id)) for _ in range(reads)])
    return nodes


def accept_offset(offset):
    def trace_filter(instruction) -> Optional[TraceResult]:
        if instruction.offset == offset:
            return TraceResult(instruction)
        return None

    return trace_filter


def reference_trace_back(candidates, trace_filter, max_depth):
    """Plain recursive search without memoization."""
    if max_depth <= 0 or not candidates:
        return None
    for candidate in candidates:
        result = trace_filter(candidate)
        if result is not None:
            return result
    for candidate in candidates:
        for slot in range(candidate.stack_reads):
            result = reference_trace_back(producers(candidate, slot), trace_filter, max_depth - 1)
            if result is not None:
                return result
    return None


@settings(max_examples=300, deadline=None)
@given(nodes=producer_graphs(), data=st.data())
def test_trace_matches_plain_recursive_search(nodes, data):
    start = data.draw(st.lists(st.sampled_from(nodes), min_size=1, max_size=2, unique_by=id))
    target = data.draw(st.integers(min_value=0, max_value=len(nodes)))
    depth = data.draw(st.integers(min_value=0, max_value=5))
    trace_filter = accept_offset(target)

    expected = reference_trace_back(start, trace_filter, depth)
    result = trace_back(start, trace_filter, depth)

    if expected is None:
        assert result is None
    else:
        assert result is not None
        assert result.instruction is expected.instruction


@settings(max_examples=100, deadline=None)
@given(nodes=producer_graphs())
def test_trace_terminates_on_cycles_at_full_depth(nodes):
    # offset len(nodes) is never accepted, so the whole bounded search runs
    assert trace_back(nodes, accept_offset(len(nodes)), DEFAULT_MAX_TRACE_DEPTH) is None


@composite
def bytecode_sequences(draw):
    """Random opcodes with complete push data."""
    code = bytearray()
    for _ in range(draw(st.integers(min_value=0, max_value=80))):
        opcode = draw(st.integers(min_value=0x00, max_value=0xFF))
        code.append(opcode)
        if 0x60 <= opcode <= 0x7F:
            code += draw(st.binary(min_size=opcode - 0x5F, max_size=opcode - 0x5F))
    return bytes(code)


@settings(max_examples=100, deadline=None)
@given(code=bytecode_sequences())
def test_pipeline_on_random_code(code):
    program = build_program(code)
    perform_reaching_analysis(program)
    for call in find_calls(program):
        classifications = [
            call.depends_on_storage,
            call.depends_on_calldata,
            call.is_resolved,
            call.depends_on_unknown,
        ]
        assert classifications.count(True) == 1
    for store in find_sstores(program):
        assert store.destination_trace is not None
        assert store.value_trace is not None
