from typing import List, Optional

from evmflow.analysis.stack_analyzer import get_stack_effect, is_push
from evmflow.core.annotations import Annotations


class Instruction:
    def __init__(self, offset, opcode, operands=None):
        self.offset = offset
        self.opcode = opcode
        self.operands: List[int] = operands or []
        self.stack_reads, self.stack_writes = get_stack_effect(opcode)
        self.annotations = Annotations()  # Facts attached by analysis passes

    @property
    def arg(self) -> Optional[int]:
        """Immediate value of a push, None for every other opcode."""
        return self.operands[0] if self.operands else None

    @property
    def is_push(self) -> bool:
        return is_push(self.opcode)

    @property
    def size(self) -> int:
        """Encoded size in bytes, opcode byte included."""
        if self.is_push:
            return 1 + int(self.opcode[4:] or 0)
        return 1

    def __repr__(self) -> str:
        if self.arg is not None:
            return f"{self.opcode} 0x{self.arg:x} @ 0x{self.offset:x}"
        return f"{self.opcode} @ 0x{self.offset:x}"
