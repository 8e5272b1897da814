from evmflow.analysis.reaching import perform_reaching_analysis
from evmflow.analysis.stores import StoreOn, find_sstores
from evmflow.disassembler import build_program

from asm import ADDRESS, MASK, assemble


def resolve(*code):
    program = build_program(assemble(*code, "STOP"))
    perform_reaching_analysis(program)
    return program, find_sstores(program)


def test_constant_store():
    program, stores = resolve(("PUSH20", ADDRESS), ("PUSH1", 0x01), "SSTORE")
    assert len(stores) == 1
    store = stores[0]
    assert store.destination == 0x01
    assert store.value == ADDRESS
    assert not store.stores_calldata
    assert not store.stores_storage
    assert str(store) == f"SSTORE stores a constant 0x{ADDRESS:X} to 0x1"
    assert program.filter_instructions("SSTORE")[0].annotations.get(StoreOn) is store


def test_calldata_store():
    _, stores = resolve(("PUSH1", 0x04), "CALLDATALOAD", ("PUSH1", 0x00), "SSTORE")
    store = stores[0]
    assert store.stores_calldata
    assert store.destination == 0x00
    assert store.value is None
    assert str(store) == "SSTORE stores calldata 0x4 to 0x0"


def test_storage_loaded_store():
    _, stores = resolve(("PUSH1", 0x03), "SLOAD", ("PUSH1", 0x05), "SSTORE")
    store = stores[0]
    assert store.stores_storage
    assert store.value is None
    assert store.value_trace.value == 0x03
    assert str(store) == "SSTORE stores a storage-loaded value from 0x3 to 0x5"


def test_destination_takes_push_of_any_width():
    slot = 0x290DECD9548B62A8D60345A988386FC84BA6BC95484008F6362F93160EF3E563
    _, stores = resolve(("PUSH20", ADDRESS), ("PUSH32", slot), "SSTORE")
    assert stores[0].destination == slot


def test_no_annotation_when_value_trace_fails():
    program, stores = resolve("CALLER", ("PUSH1", 0x00), "SSTORE")
    assert stores == []
    assert program.filter_instructions("SSTORE")[0].annotations.get(StoreOn) is None


def test_no_annotation_when_destination_trace_fails():
    program, stores = resolve(("PUSH20", ADDRESS), "CALLDATASIZE", "SSTORE")
    assert stores == []
    assert program.filter_instructions("SSTORE")[0].annotations.get(StoreOn) is None


def test_annotation_with_unresolved_side():
    # value is a load from a dynamic slot: no constant, but still a result
    _, stores = resolve("CALLER", "SLOAD", ("PUSH1", 0x07), "SSTORE")
    store = stores[0]
    assert store.stores_storage
    assert store.value_trace.value is None
    assert store.destination == 0x07
    assert str(store) == "SSTORE stores a storage-loaded value from unknown to 0x7"


def test_mask_is_not_a_stored_constant():
    _, stores = resolve(("PUSH20", MASK), ("PUSH1", 0x00), "SSTORE")
    assert stores == []


def test_first_of_merged_values_wins():
    a = 0x1111111111111111111111111111111111111111
    b = 0x2222222222222222222222222222222222222222
    _, stores = resolve(
        "CALLDATASIZE",
        ("PUSH1", 0x1C),
        "JUMPI",
        ("PUSH20", a),
        ("PUSH1", 0x32),
        "JUMP",
        "JUMPDEST",
        ("PUSH20", b),
        "JUMPDEST",
        ("PUSH1", 0),
        "SSTORE",
    )
    assert stores[0].value == a


def test_rerun_replaces_annotation():
    program, stores = resolve(("PUSH20", ADDRESS), ("PUSH1", 0x01), "SSTORE")
    again = find_sstores(program)
    sstore = program.filter_instructions("SSTORE")[0]
    assert sstore.annotations.get(StoreOn) is again[0]
    assert again[0] is not stores[0]
