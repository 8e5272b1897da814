"""
Reaching-definitions analysis over the EVM operand stack.

For every instruction, records which instructions may have produced each of
the stack items it consumes, over all control-flow paths reaching it. DUP and
SWAP only move items around, so they forward the producers of the items they
copy instead of becoming producers themselves.

Jump edges are discovered while the analysis runs: a JUMP/JUMPI whose target
operand is produced by pushes of JUMPDEST offsets gets an edge to each of
those blocks.
"""

from collections import deque
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from evmflow.analysis.stack_analyzer import is_dup, is_swap
from evmflow.core.basic_block import BasicBlock
from evmflow.core.instruction import Instruction
from evmflow.core.program import Program

logger = structlog.get_logger()

MAX_STACK_DEPTH = 1024

Producers = Tuple[Instruction, ...]
AbstractStack = Tuple[Producers, ...]  # index 0 is the top of the stack


class ReachingDefinitionError(ValueError):
    """The reaching-definitions fact is missing or does not fit the instruction."""


class MissingReachingDefinition(ReachingDefinitionError):
    pass


class StackArityMismatch(ReachingDefinitionError):
    pass


class ReachingDefinition:
    """
    Ordered producer sets, one per stack slot (slot 0 is the top).

    Attached to instructions (slots consumed by the instruction) and to
    blocks (stack prestate at block entry).
    """

    def __init__(self, slots: Sequence[Producers]):
        self.slots: AbstractStack = tuple(tuple(s) for s in slots)

    def __getitem__(self, slot: int) -> Producers:
        return self.slots[slot]

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self):
        return iter(self.slots)

    def __repr__(self) -> str:
        rendered = []
        for producers in self.slots:
            rendered.append("{" + ", ".join(f"0x{p.offset:x}" for p in producers) + "}")
        return "[" + ", ".join(rendered) + "]"


def merge_producers(a: Producers, b: Producers) -> Producers:
    """Union of two producer sets, keeping first-seen order."""
    merged = list(a)
    for producer in b:
        if not any(producer is seen for seen in merged):
            merged.append(producer)
    return tuple(merged)


def join_stacks(old: Optional[AbstractStack], new: AbstractStack) -> AbstractStack:
    """Merge two entry states; only slots both stacks define are kept."""
    if old is None:
        return new
    depth = min(len(old), len(new))
    return tuple(merge_producers(old[i], new[i]) for i in range(depth))


def _same_stack(a: Optional[AbstractStack], b: AbstractStack) -> bool:
    if a is None or len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if len(x) != len(y) or any(p is not q for p, q in zip(x, y)):
            return False
    return True


def _slot(stack: AbstractStack, index: int) -> Producers:
    # Items below the tracked part of the stack have no known producer
    return stack[index] if index < len(stack) else ()


def transfer(stack: AbstractStack, instr: Instruction) -> AbstractStack:
    """Stack after executing `instr`."""
    if is_dup(instr.opcode):
        copied = _slot(stack, instr.stack_reads - 1)
        result = (copied,) + stack
    elif is_swap(instr.opcode):
        n = instr.stack_reads - 1
        padded = stack + ((),) * max(0, n + 1 - len(stack))
        items = list(padded)
        items[0], items[n] = items[n], items[0]
        result = tuple(items)
    else:
        result = ((instr,),) * instr.stack_writes + stack[instr.stack_reads:]
    return result[:MAX_STACK_DEPTH]


def _jump_targets(program: Program, jump: Instruction, target_producers: Producers) -> List[BasicBlock]:
    targets = []
    for producer in target_producers:
        if not producer.is_push:
            continue
        block = program.block_at(producer.arg)
        if block is None or block.instructions[0].opcode != "JUMPDEST":
            logger.debug("Jump target is not a JUMPDEST", jump=jump, target=producer.arg)
            continue
        if block not in targets:
            targets.append(block)
    return targets


def _process_block(program: Program, block: BasicBlock, entry: AbstractStack) -> AbstractStack:
    block.annotations.set(ReachingDefinition(entry))
    stack = entry
    for instr in block.instructions:
        consumed = [_slot(stack, i) for i in range(instr.stack_reads)]
        instr.annotations.set(ReachingDefinition(consumed))
        if instr.opcode in ("JUMP", "JUMPI"):
            for target in _jump_targets(program, instr, consumed[0]):
                block.add_successor(target)
        stack = transfer(stack, instr)
    return stack


def perform_reaching_analysis(program: Program) -> Dict[int, AbstractStack]:
    """
    Annotate every instruction and block of `program` with a ReachingDefinition.

    Runs a worklist fixpoint from the first block with an empty stack. Blocks
    that are never reached are annotated from an empty entry stack without
    propagating further. Returns the entry state of each block by offset.
    """
    entry_states: Dict[int, AbstractStack] = {}
    if not program.blocks:
        return entry_states

    first = program.blocks[0]
    entry_states[first.offset] = ()
    worklist = deque([first])
    queued = {first.offset}
    iterations = 0

    while worklist:
        block = worklist.popleft()
        queued.discard(block.offset)
        iterations += 1

        exit_stack = _process_block(program, block, entry_states[block.offset])
        # Halting blocks never fall through, JUMP edges come from _jump_targets
        for successor in block.successors:
            merged = join_stacks(entry_states.get(successor.offset), exit_stack)
            if _same_stack(entry_states.get(successor.offset), merged):
                continue
            entry_states[successor.offset] = merged
            if successor.offset not in queued:
                worklist.append(successor)
                queued.add(successor.offset)

    unreachable = [b for b in program.blocks if b.offset not in entry_states]
    for block in unreachable:
        entry_states[block.offset] = ()
        _process_block(program, block, ())

    logger.debug(
        "Reaching analysis done",
        blocks=len(program.blocks),
        iterations=iterations,
        unreachable=len(unreachable),
    )
    return entry_states


def producers(instruction: Instruction, slot: int) -> Producers:
    """
    Producers of the `slot`-th stack item consumed by `instruction`.

    Raises a ReachingDefinitionError when the analysis was not run on the
    instruction or the slot is outside what the instruction reads.
    """
    reaching = instruction.annotations.get(ReachingDefinition)
    if reaching is None:
        raise MissingReachingDefinition(f"No reaching definition for {instruction!r}")
    if not 0 <= slot < len(reaching) or len(reaching) != instruction.stack_reads:
        raise StackArityMismatch(
            f"{instruction!r} reads {instruction.stack_reads} items, "
            f"reaching definition has {len(reaching)}, requested slot {slot}"
        )
    return reaching[slot]
