from evmflow.core.annotations import Annotations


class BasicBlock:
    def __init__(self, start_offset, end_offset):
        self.start_offset = start_offset
        self.end_offset = end_offset
        self.instructions = []
        self.predecessors = []
        self.successors = []
        self.annotations = Annotations()

    @property
    def offset(self):
        return self.start_offset

    @property
    def last(self):
        return self.instructions[-1] if self.instructions else None

    def add_successor(self, block) -> bool:
        """Link this block to `block`, returns False if the edge already existed."""
        if block in self.successors:
            return False
        self.successors.append(block)
        block.predecessors.append(self)
        return True

    def __repr__(self) -> str:
        return f"BasicBlock(start=0x{self.start_offset:x}, end=0x{self.end_offset:x}, instructions={len(self.instructions)})"
