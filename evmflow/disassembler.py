"""
Bytecode decoding and basic block construction.

Instructions are decoded with pyevmasm and grouped into basic blocks. Only
fallthrough edges are added here; jump edges depend on the values reaching
each JUMP and are filled in by the reaching-definitions pass.
"""

from typing import List, Optional, Tuple

import structlog
from pyevmasm import disassemble_all

from evmflow.analysis.stack_analyzer import BLOCK_TERMINATORS, HALTING_OPCODES
from evmflow.core.basic_block import BasicBlock
from evmflow.core.instruction import Instruction
from evmflow.core.program import Program

logger = structlog.get_logger()

# solc appends `a1 65 'b' 'z' 'z' 'r' '0' 58 20 <32 byte hash> 00 29`, see
# https://docs.soliditylang.org/en/latest/metadata.html#encoding-of-the-metadata-hash-in-the-bytecode
SWARM_HASH_LENGTH = 43
SWARM_HASH_HEADER = b"\xa1\x65"
SWARM_HASH_TRAILER = b"\x00\x29"

# Opcodes introduced after the forks pyevmasm knows about
_LATE_OPCODES = {
    0x48: "BASEFEE",
    0x49: "BLOBHASH",
    0x4A: "BLOBBASEFEE",
    0x5C: "TLOAD",
    0x5D: "TSTORE",
    0x5E: "MCOPY",
    0x5F: "PUSH0",
}


def parse_hex(text: str) -> bytes:
    """Decode a hex string, tolerating a 0x prefix and embedded whitespace."""
    cleaned = "".join(text.split())
    if cleaned.startswith(("0x", "0X")):
        cleaned = cleaned[2:]
    if not cleaned:
        raise ValueError("Bytecode must be a non-empty hex string")
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise ValueError(f"Invalid hex bytecode: {e}") from e


def find_swarm_hash(bytecode: bytes) -> Optional[bytes]:
    """Return the 32 byte swarm hash embedded by solc, or None."""
    if len(bytecode) < SWARM_HASH_LENGTH:
        return None
    if not bytecode.endswith(SWARM_HASH_TRAILER):
        return None
    if bytecode[-SWARM_HASH_LENGTH:-SWARM_HASH_LENGTH + 2] != SWARM_HASH_HEADER:
        return None
    return bytecode[-34:-2]


def strip_swarm_hash(bytecode: bytes) -> Tuple[bytes, Optional[bytes]]:
    swarm_hash = find_swarm_hash(bytecode)
    if swarm_hash is None:
        return bytecode, None
    logger.debug("Stripping swarm hash", swarm_hash=swarm_hash.hex())
    return bytecode[:-SWARM_HASH_LENGTH], swarm_hash


def decode_instructions(bytecode: bytes) -> List[Instruction]:
    instructions = []
    for raw in disassemble_all(bytecode):
        opcode = raw.mnemonic
        if opcode == "INVALID":
            opcode = _LATE_OPCODES.get(bytecode[raw.pc], opcode)
        operands = [raw.operand] if raw.operand is not None else []
        if opcode == "PUSH0":
            operands = [0]
        instructions.append(Instruction(offset=raw.pc, opcode=opcode, operands=operands))
    return instructions


def identify_basic_blocks(instructions: List[Instruction]) -> List[BasicBlock]:
    """
    Group instructions into basic blocks.
    A new basic block starts at:
    1. The first instruction.
    2. A JUMPDEST instruction.
    3. The instruction following a JUMP, JUMPI or halting instruction.
    """
    blocks: List[BasicBlock] = []
    current: List[Instruction] = []

    def close():
        if current:
            block = BasicBlock(start_offset=current[0].offset, end_offset=current[-1].offset)
            block.instructions = list(current)
            blocks.append(block)
            current.clear()

    for instr in instructions:
        if instr.opcode == "JUMPDEST":
            close()
        current.append(instr)
        if instr.opcode in BLOCK_TERMINATORS:
            close()
    close()

    # Fallthrough edges
    for block, following in zip(blocks, blocks[1:]):
        if block.last.opcode not in HALTING_OPCODES:
            block.add_successor(following)

    return blocks


def build_program(bytecode: bytes) -> Program:
    instructions = decode_instructions(bytecode)
    blocks = identify_basic_blocks(instructions)
    logger.debug(
        "Decoded program", size=len(bytecode), instructions=len(instructions), blocks=len(blocks)
    )
    return Program(blocks, code=bytes(bytecode))
