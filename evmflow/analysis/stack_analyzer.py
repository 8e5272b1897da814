from typing import Tuple

# Mapping from opcode name to (pops, pushes)
# Based on https://www.evm.codes/
OPCODE_STACK_EFFECTS = {
    # 0s: Stop and Arithmetic Operations
    "STOP": (0, 0),
    "ADD": (2, 1),
    "MUL": (2, 1),
    "SUB": (2, 1),
    "DIV": (2, 1),
    "SDIV": (2, 1),
    "MOD": (2, 1),
    "SMOD": (2, 1),
    "ADDMOD": (3, 1),
    "MULMOD": (3, 1),
    "EXP": (2, 1),
    "SIGNEXTEND": (2, 1),
    # 10s: Comparison & Bitwise Logic Operations
    "LT": (2, 1),
    "GT": (2, 1),
    "SLT": (2, 1),
    "SGT": (2, 1),
    "EQ": (2, 1),
    "ISZERO": (1, 1),
    "AND": (2, 1),
    "OR": (2, 1),
    "XOR": (2, 1),
    "NOT": (1, 1),
    "BYTE": (2, 1),
    "SHL": (2, 1),
    "SHR": (2, 1),
    "SAR": (2, 1),
    # 20s: Keccak256
    "KECCAK256": (2, 1),
    "SHA3": (2, 1),  # pyevmasm mnemonic
    # 30s: Environmental Information
    "ADDRESS": (0, 1),
    "BALANCE": (1, 1),
    "ORIGIN": (0, 1),
    "CALLER": (0, 1),
    "CALLVALUE": (0, 1),
    "CALLDATALOAD": (1, 1),
    "CALLDATASIZE": (0, 1),
    "CALLDATACOPY": (3, 0),
    "CODESIZE": (0, 1),
    "CODECOPY": (3, 0),
    "GASPRICE": (0, 1),
    "EXTCODESIZE": (1, 1),
    "EXTCODECOPY": (4, 0),
    "RETURNDATASIZE": (0, 1),
    "RETURNDATACOPY": (3, 0),
    "EXTCODEHASH": (1, 1),
    # 40s: Block Information
    "BLOCKHASH": (1, 1),
    "COINBASE": (0, 1),
    "TIMESTAMP": (0, 1),
    "NUMBER": (0, 1),
    "DIFFICULTY": (0, 1),
    "GASLIMIT": (0, 1),
    "CHAINID": (0, 1),
    "SELFBALANCE": (0, 1),
    "BASEFEE": (0, 1),
    "BLOBHASH": (1, 1),
    "BLOBBASEFEE": (0, 1),
    # 50s: Stack, Memory, Storage and Flow Operations
    "POP": (1, 0),
    "MLOAD": (1, 1),
    "MSTORE": (2, 0),
    "MSTORE8": (2, 0),
    "SLOAD": (1, 1),
    "SSTORE": (2, 0),
    "JUMP": (1, 0),
    "JUMPI": (2, 0),
    "PC": (0, 1),
    "MSIZE": (0, 1),
    "GAS": (0, 1),
    "JUMPDEST": (0, 0),
    "TLOAD": (1, 1),
    "TSTORE": (2, 0),
    "MCOPY": (3, 0),
    # 60s & 70s: Push Operations
    # Handled separately
    # 80s: Duplication Operations
    # Handled separately
    # 90s: Exchange Operations
    # Handled separately
    # a0s: Logging Operations
    "LOG0": (2, 0),
    "LOG1": (3, 0),
    "LOG2": (4, 0),
    "LOG3": (5, 0),
    "LOG4": (6, 0),
    # f0s: System operations
    "CREATE": (3, 1),
    "CALL": (7, 1),
    "CALLCODE": (7, 1),
    "RETURN": (2, 0),
    "DELEGATECALL": (6, 1),
    "CREATE2": (4, 1),
    "STATICCALL": (6, 1),
    "REVERT": (2, 0),
    "INVALID": (0, 0),  # Defined as 0xff
    "SELFDESTRUCT": (1, 0),
}

# Opcodes after which execution never falls through to the next instruction
HALTING_OPCODES = frozenset({"JUMP", "STOP", "RETURN", "REVERT", "INVALID", "SELFDESTRUCT"})
BLOCK_TERMINATORS = HALTING_OPCODES | {"JUMPI"}


def is_push(opcode: str) -> bool:
    return opcode.startswith("PUSH")


def is_dup(opcode: str) -> bool:
    return opcode.startswith("DUP")


def is_swap(opcode: str) -> bool:
    return opcode.startswith("SWAP")


def get_stack_effect(opcode: str) -> Tuple[int, int]:
    """
    Return (reads, writes) for an opcode mnemonic.

    DUPn reads the n topmost items and writes them back together with the
    copy (n, n + 1); SWAPn reads and writes n + 1 items. Unknown opcodes are
    treated as having no stack effect.
    """
    if is_push(opcode):
        return 0, 1
    if is_dup(opcode):
        dup_n = int(opcode[3:])
        return dup_n, dup_n + 1
    if is_swap(opcode):
        swap_n = int(opcode[4:])
        return swap_n + 1, swap_n + 1
    return OPCODE_STACK_EFFECTS.get(opcode, (0, 0))
