"""Helpers shared by the tests: a small assembler and hand-wired instructions."""

from evmflow.analysis.reaching import ReachingDefinition
from evmflow.core.instruction import Instruction

OPCODE_BYTES = {
    "STOP": 0x00,
    "ADD": 0x01,
    "LT": 0x10,
    "ISZERO": 0x15,
    "AND": 0x16,
    "NOT": 0x19,
    "CALLER": 0x33,
    "CALLVALUE": 0x34,
    "CALLDATALOAD": 0x35,
    "CALLDATASIZE": 0x36,
    "BASEFEE": 0x48,
    "BLOBHASH": 0x49,
    "BLOBBASEFEE": 0x4A,
    "CODECOPY": 0x39,
    "POP": 0x50,
    "MLOAD": 0x51,
    "MSTORE": 0x52,
    "SLOAD": 0x54,
    "SSTORE": 0x55,
    "JUMP": 0x56,
    "JUMPI": 0x57,
    "GAS": 0x5A,
    "JUMPDEST": 0x5B,
    "CALL": 0xF1,
    "CALLCODE": 0xF2,
    "RETURN": 0xF3,
    "DELEGATECALL": 0xF4,
    "STATICCALL": 0xFA,
    "REVERT": 0xFD,
}

ADDRESS = 0x5AFE00000000000000000000000000000000BEEF
MASK = (1 << 160) - 1


def assemble(*program) -> bytes:
    """
    Encode a list of mnemonics into bytecode. A push is given as a
    (mnemonic, value) tuple, e.g. ("PUSH20", 0x1234).
    """
    code = bytearray()
    for item in program:
        if isinstance(item, tuple):
            mnemonic, value = item
            width = int(mnemonic[4:])
            code.append(0x5F + width)
            code += value.to_bytes(width, "big")
        elif item.startswith("DUP"):
            code.append(0x7F + int(item[3:]))
        elif item.startswith("SWAP"):
            code.append(0x8F + int(item[4:]))
        else:
            code.append(OPCODE_BYTES[item])
    return bytes(code)


def call_sequence(*address_producer, opcode="CALL"):
    """Call with every argument zero except the callee, produced by `address_producer`."""
    zero_args = 5 if opcode in ("CALL", "CALLCODE") else 4
    return [("PUSH1", 0)] * zero_args + list(address_producer) + ["GAS", opcode]


def make_instruction(opcode, arg=None, offset=0):
    return Instruction(offset=offset, opcode=opcode, operands=[arg] if arg is not None else None)


def wire(instruction, *slots):
    """Attach a reaching definition listing the producers of each consumed slot."""
    instruction.annotations.set(ReachingDefinition([tuple(s) for s in slots]))
    return instruction


def deploy_code(runtime):
    """
    Deploy bytecode whose constructor stores ADDRESS to slot 0 and returns
    `runtime`, which follows the constructor directly.
    """
    ctor_length = 36
    ctor = assemble(
        ("PUSH20", ADDRESS),
        ("PUSH1", 0),
        "SSTORE",
        ("PUSH1", len(runtime)),
        "DUP1",
        ("PUSH2", ctor_length),
        ("PUSH1", 0),
        "CODECOPY",
        ("PUSH1", 0),
        "RETURN",
    )
    assert len(ctor) == ctor_length
    return ctor + runtime


SWARM_METADATA = b"\xa1\x65bzzr0\x58\x20" + bytes(range(32)) + b"\x00\x29"
