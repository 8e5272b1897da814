from typing import Dict, Iterator, List, Optional

from evmflow.core.basic_block import BasicBlock
from evmflow.core.instruction import Instruction


class Program:
    """
    One contiguous region of decoded bytecode: a whole contract, or a single
    phase of it (constructor-only or runtime-only code).

    Blocks are kept in code order. Offsets are relative to the start of the
    region, so a runtime program split off deploy code starts at 0.
    """

    def __init__(self, blocks: List[BasicBlock], code: bytes = b""):
        self.blocks = blocks
        self.code = code
        self._by_offset: Dict[int, BasicBlock] = {b.start_offset: b for b in blocks}

    def block_at(self, offset: int) -> Optional[BasicBlock]:
        return self._by_offset.get(offset)

    def instructions(self) -> Iterator[Instruction]:
        for block in self.blocks:
            yield from block.instructions

    def filter_instructions(self, *opcodes: str) -> List[Instruction]:
        return [instr for instr in self.instructions() if instr.opcode in opcodes]

    def __len__(self) -> int:
        return len(self.blocks)

    def __repr__(self) -> str:
        return f"Program(blocks={len(self.blocks)}, size={len(self.code)})"
