import pytest

from pynekoton.boc import Builder, Cell, Slice, CellError, CellOverflowError, CellUnderflowError, CellValueError, \
    begin_cell


EMPTY_CELL_HASH = '96a296d224f285c67bee93c30f8a309157f0daa35dc5b87e410b78630a09cfc7'


def test_uint_scenario():
    cell = begin_cell().store_uint(4660, 32).end_cell()
    assert cell.bit_length == 32
    assert cell.data == b'\x00\x00\x12\x34'
    assert cell.begin_parse().load_uint(32) == 4660


def test_null_address_scenario():
    cell = begin_cell().store_address(None).end_cell()
    assert cell.bit_length == 2
    assert cell.begin_parse().load_address() is None


@pytest.mark.parametrize('value, size', [
    (0, 1), (1, 1), (255, 8), (2 ** 64 - 1, 64), (2 ** 255 + 12345, 256), (0x1234, 17),
])
def test_uint_round_trip(value, size):
    cs = begin_cell().store_uint(value, size).end_cell().begin_parse()
    assert cs.load_uint(size) == value
    assert cs.remaining_bits == 0


@pytest.mark.parametrize('value, size', [
    (-1, 1), (0, 1), (-128, 8), (127, 8), (-5, 32), (-(2 ** 255), 256), (2 ** 255 - 1, 256),
])
def test_int_round_trip(value, size):
    cs = begin_cell().store_int(value, size).end_cell().begin_parse()
    assert cs.load_int(size) == value


def test_int_is_twos_complement():
    cell = begin_cell().store_int(-1, 8).end_cell()
    assert cell.data == b'\xff'
    assert cell.begin_parse().load_uint(8) == 255


def test_out_of_range_values():
    with pytest.raises(CellValueError):
        begin_cell().store_uint(256, 8)
    with pytest.raises(CellValueError):
        begin_cell().store_uint(-1, 8)
    with pytest.raises(CellValueError):
        begin_cell().store_int(128, 8)
    with pytest.raises(CellValueError):
        begin_cell().store_int(-129, 8)
    with pytest.raises(CellValueError):
        begin_cell().store_uint(1, 0)


def test_zero_width():
    builder = begin_cell().store_uint(0, 0).store_int(0, 0)
    assert builder.end_cell().bit_length == 0
    assert builder.end_cell().begin_parse().load_uint(0) == 0


def test_bits_capacity():
    builder = begin_cell().store_bits('1' * 1023)
    assert builder.remaining_bits == 0
    with pytest.raises(CellOverflowError):
        builder.store_bit(1)
    assert len(builder.bits) == 1023

    with pytest.raises(CellOverflowError):
        begin_cell().store_uint(0, 1000).store_uint(0, 24)


def test_refs_capacity():
    builder = Builder()
    for _ in range(4):
        builder.store_ref(Cell.empty())
    with pytest.raises(CellOverflowError):
        builder.store_ref(Cell.empty())
    assert len(builder.end_cell().refs) == 4


def test_failed_write_leaves_builder_unchanged():
    builder = begin_cell().store_uint(0, 1000)
    with pytest.raises(CellOverflowError):
        builder.store_bytes(b'\x00' * 4)
    assert len(builder.bits) == 1000


def test_end_cell_snapshot():
    builder = begin_cell().store_uint(5, 8)
    first = builder.end_cell()
    second = builder.end_cell()
    assert first == second
    builder.store_uint(7, 8).store_ref(Cell.empty())
    assert first.bit_length == 8
    assert first.refs == ()
    assert builder.end_cell().bit_length == 16


def test_clear():
    builder = begin_cell().store_uint(5, 8).store_ref(Cell.empty())
    builder.clear()
    assert builder.end_cell() == Cell.empty()


def test_var_uint():
    cell = begin_cell().store_var_uint(0, 4).end_cell()
    assert cell.bit_length == 4
    assert cell.begin_parse().load_var_uint(4) == 0

    cell = begin_cell().store_coins(10 ** 9).end_cell()
    assert cell.bit_length == 4 + 4 * 8
    assert cell.begin_parse().load_coins() == 10 ** 9

    with pytest.raises(CellValueError):
        begin_cell().store_var_uint(2 ** 120, 4)
    with pytest.raises(CellValueError):
        begin_cell().store_var_uint(-1, 4)


@pytest.mark.parametrize('value, length', [(1, 1), (127, 1), (128, 2), (-1, 1), (-128, 1), (-129, 2)])
def test_var_int(value, length):
    cell = begin_cell().store_var_int(value, 5).end_cell()
    assert cell.bit_length == 5 + length * 8
    assert cell.begin_parse().load_var_int(5) == value


def test_bytes_and_strings():
    cs = begin_cell().store_bytes(b'\x01\x02').store_string('hi').end_cell().begin_parse()
    assert cs.load_bytes(2) == b'\x01\x02'
    assert cs.load_string() == 'hi'


def test_bool_and_bits():
    cs = begin_cell().store_bool(True).store_bit(0).store_bits([1, 0, 1]).end_cell().begin_parse()
    assert cs.load_bool() is True
    assert cs.load_bit() == 0
    assert cs.load_bits(3).to01() == '101'


def test_underflow_is_atomic():
    cs = begin_cell().store_uint(3, 8).store_ref(Cell.empty()).end_cell().begin_parse()
    with pytest.raises(CellUnderflowError):
        cs.load_uint(9)
    assert cs.remaining_bits == 8
    with pytest.raises(CellUnderflowError):
        cs.skip_refs(2)
    assert cs.remaining_refs == 1
    assert cs.load_uint(8) == 3
    with pytest.raises(CellUnderflowError):
        cs.load_bit()


def test_preload_and_copy():
    cs = begin_cell().store_uint(0xABCD, 16).end_cell().begin_parse()
    assert cs.preload_uint(8) == 0xAB
    copy = cs.copy()
    assert copy.load_uint(8) == 0xAB
    assert cs.remaining_bits == 16
    assert copy.remaining_bits == 8


def test_refs():
    child = begin_cell().store_uint(1, 8).end_cell()
    cs = begin_cell().store_ref(child).store_maybe_ref(None).store_maybe_ref(child).end_cell().begin_parse()
    assert cs.load_ref() == child
    assert cs.load_maybe_ref() is None
    assert cs.load_maybe_ref() == child
    cs.end_parse()


def test_end_parse():
    cs = begin_cell().store_uint(1, 2).end_cell().begin_parse()
    with pytest.raises(CellError):
        cs.end_parse()


def test_bad_address_tag():
    cs = begin_cell().store_bits('01').end_cell().begin_parse()
    with pytest.raises(CellError):
        cs.load_address()
    assert cs.remaining_bits == 2


def test_store_slice_and_to_cell():
    child = Cell.empty()
    cell = begin_cell().store_uint(0xAA, 8).store_uint(0xBB, 8).store_ref(child).end_cell()
    cs = cell.begin_parse()
    cs.skip_bits(8)
    assert cs.to_cell() == begin_cell().store_uint(0xBB, 8).store_ref(child).end_cell()
    assert begin_cell().store_slice(cs).end_cell() == cs.to_cell()
    assert cell.to_builder().end_cell() == cell


def test_empty_cell_hash():
    assert Cell.empty().hash.hex() == EMPTY_CELL_HASH
    assert Builder().end_cell().hash.hex() == EMPTY_CELL_HASH


def test_hash_determinism_and_sensitivity():
    child = begin_cell().store_uint(1, 8).end_cell()
    a = begin_cell().store_uint(5, 7).store_ref(child).end_cell()
    b = begin_cell().store_uint(5, 7).store_ref(begin_cell().store_uint(1, 8).end_cell()).end_cell()
    assert a.hash == b.hash
    assert a == b
    assert hash(a) == hash(b)

    assert begin_cell().store_uint(4, 7).store_ref(child).end_cell().hash != a.hash  # one bit
    assert begin_cell().store_uint(5, 8).store_ref(child).end_cell().hash != a.hash  # bit length
    assert begin_cell().store_uint(5, 7).end_cell().hash != a.hash  # no ref
    assert begin_cell().store_uint(5, 7).store_ref(Cell.empty()).end_cell().hash != a.hash  # other ref


def test_bit_completion():
    # 7 bits 1111111 -> data byte 0xff after the completion tag
    cell = begin_cell().store_bits('1111111').end_cell()
    assert cell.get_data_bytes() == b'\xff'
    assert cell.get_descriptors() == b'\x00\x01'
    assert cell.data == b'\xfe'


def test_depth():
    cell = Cell.empty()
    assert cell.depth == 0
    for _ in range(3):
        cell = begin_cell().store_ref(cell).end_cell()
    assert cell.depth == 3


def test_max_depth():
    cell = Cell.empty()
    for _ in range(1023):
        cell = Cell(refs=[cell])
    assert cell.depth == 1023
    with pytest.raises(CellError):
        Cell(refs=[cell])


def test_cell_constructors():
    with pytest.raises(CellOverflowError):
        Cell('1' * 1024)
    with pytest.raises(CellOverflowError):
        Cell(refs=[Cell.empty()] * 5)
    with pytest.raises(CellValueError):
        Cell(refs=['not a cell'])

    cell = Cell.from_data(b'\xab\xc0', 10)
    assert cell.bit_length == 10
    assert cell.begin_parse().load_bits(10).to01() == '1010101111'
    assert cell.data == b'\xab\xc0'


def test_slice_from_cell():
    cell = begin_cell().store_uint(9, 4).end_cell()
    assert Slice.from_cell(cell).load_uint(4) == 9


def test_load_string_length():
    cs = begin_cell().store_string('abc').end_cell().begin_parse()
    assert cs.load_string(0) == ''
    assert cs.remaining_bits == 24
    assert cs.load_string(1) == 'a'
    assert cs.load_string() == 'bc'
    assert cs.remaining_bits == 0
