import typing

from bitarray import bitarray
from bitarray.util import int2ba

from .address import Address, ExternalAddress
from .cell import Cell, MAX_REFS
from .errors import CellOverflowError, CellValueError
from .tvm_bitarray import TvmBitarray, MAX_BITS


class Builder:
    """
    Accumulates bits and refs and turns them into a Cell with .end_cell().
    Every store_* method checks the cell capacity (1023 bits, 4 refs) and the value range before
    writing anything, so a failed call leaves the builder as it was.
    All store_* methods return the builder itself, so the calls can be chained:

        cell = Builder().store_uint(0x1234, 32).store_address(None).end_cell()
    """

    def __init__(self):
        self._bits = TvmBitarray(MAX_BITS)
        self._refs: typing.List[Cell] = []

    @property
    def bits(self) -> TvmBitarray:
        return self._bits

    @property
    def refs(self) -> typing.List[Cell]:
        return self._refs

    @property
    def remaining_bits(self) -> int:
        return MAX_BITS - len(self._bits)

    @property
    def remaining_refs(self) -> int:
        return MAX_REFS - len(self._refs)

    def check_bits(self, length: int) -> None:
        if length > self.remaining_bits:
            raise CellOverflowError(f'builder bits overflow: {len(self._bits)} + {length} > {MAX_BITS}')

    def check_refs(self, count: int) -> None:
        if count > self.remaining_refs:
            raise CellOverflowError(f'builder refs overflow: {len(self._refs)} + {count} > {MAX_REFS}')

    def to_bytes(self) -> bytes:
        return self._bits.tobytes()

    def store_cell(self, cell: Cell):
        """
        appends bits and refs of the cell to the builder
        """
        self.check_bits(cell.bit_length)
        self.check_refs(len(cell.refs))
        self._bits.extend(cell.bits)
        self._refs.extend(cell.refs)
        return self

    def store_slice(self, cell_slice: "Slice"):
        """
        appends the unread part of the slice to the builder
        """
        self.check_bits(cell_slice.remaining_bits)
        self.check_refs(cell_slice.remaining_refs)
        self._bits.extend(cell_slice.preload_bits(cell_slice.remaining_bits))
        for i in range(cell_slice.ref_offset, len(cell_slice.refs)):
            self._refs.append(cell_slice.refs[i])
        return self

    def store_ref(self, ref: Cell):
        if not isinstance(ref, Cell):
            raise CellValueError(f'expected Cell as a ref, got {type(ref).__name__}')
        self.check_refs(1)
        self._refs.append(ref)
        return self

    def store_maybe_ref(self, ref: typing.Optional[Cell]):
        if ref is None:
            return self.store_bit(0)
        self.check_bits(1)
        self.check_refs(1)
        return self.store_bit(1).store_ref(ref)

    def store_bool(self, value: bool):
        self._bits.append(bool(value))
        return self

    def store_bit(self, bit: typing.Union[int, bool, str]):
        if isinstance(bit, str):
            bit = int(bit)
        if bit not in (0, 1):
            raise CellValueError(f'bit must be 0 or 1, got {bit!r}')
        self._bits.append(bit)
        return self

    def store_bits(self, bits: typing.Union[str, typing.Iterable[int], bitarray]):
        """
        :param bits: '0101', [0, 1, 0, 1] or bitarray
        """
        if not isinstance(bits, bitarray):
            try:
                bits = bitarray(bits) if isinstance(bits, str) else bitarray(list(bits))
            except (TypeError, ValueError) as e:
                raise CellValueError(f'can not store bits {bits!r}: {e}') from e
        self._bits.extend(bits)
        return self

    @staticmethod
    def _check_int(value: int, size: int) -> None:
        if not isinstance(value, int):
            raise CellValueError(f'expected int value, got {type(value).__name__}')
        if not isinstance(size, int) or size < 0:
            raise CellValueError(f'bit size must be non negative int, got {size!r}')

    def store_uint(self, value: int, size: int):
        self._check_int(value, size)
        if not 0 <= value < (1 << size):
            raise CellValueError(f'value {value} does not fit into uint{size}')
        if size == 0:
            return self
        self._bits.extend(int2ba(value, size, signed=False))
        return self

    def store_int(self, value: int, size: int):
        self._check_int(value, size)
        if size == 0:
            if value != 0:
                raise CellValueError(f'value {value} does not fit into int0')
            return self
        if not -(1 << (size - 1)) <= value < (1 << (size - 1)):
            raise CellValueError(f'value {value} does not fit into int{size}')
        self._bits.extend(int2ba(value, size, signed=True))
        return self

    def store_var_uint(self, value: int, bit_length: int):
        """
        var_uint$_ {n:#} len:(#< n) value:(uint (len * 8)) = VarUInteger n;
        :param bit_length: bit size of the length field
        """
        self._check_int(value, bit_length)
        if value < 0:
            raise CellValueError(f'var uint can not be negative, got {value}')
        if value == 0:
            return self.store_uint(0, bit_length)
        byte_length = (value.bit_length() + 7) // 8
        if byte_length >= (1 << bit_length):
            raise CellValueError(f'value {value} is too big for var uint with {bit_length} bits length')
        self.check_bits(bit_length + byte_length * 8)
        return self.store_uint(byte_length, bit_length).store_uint(value, byte_length * 8)

    def store_var_int(self, value: int, bit_length: int):
        """
        var_int$_ {n:#} len:(#< n) value:(int (len * 8)) = VarInteger n;
        """
        self._check_int(value, bit_length)
        if value == 0:
            return self.store_uint(0, bit_length)
        # minimal length which keeps the sign bit: ~value has the same magnitude bits for negatives
        magnitude = value if value > 0 else ~value
        byte_length = (magnitude.bit_length() + 8) // 8
        if byte_length >= (1 << bit_length):
            raise CellValueError(f'value {value} is too big for var int with {bit_length} bits length')
        self.check_bits(bit_length + byte_length * 8)
        return self.store_uint(byte_length, bit_length).store_int(value, byte_length * 8)

    def store_coins(self, amount: int):
        return self.store_var_uint(amount, 4)

    def store_bytes(self, value: typing.Union[bytes, bytearray]):
        if not isinstance(value, (bytes, bytearray)):
            raise CellValueError(f'expected bytes, got {type(value).__name__}')
        self._bits.frombytes(value)
        return self

    def store_string(self, value: str):
        return self.store_bytes(value.encode())

    def store_address(self, address: typing.Union[Address, str, None]):
        if address is None:
            return self.store_bits('00')  # addr_none$00
        if isinstance(address, str):
            address = Address(address)
        if not isinstance(address, Address):
            raise CellValueError(f'expected Address, got {type(address).__name__}')

        # address := flags 2bits, anycast 1bit, workchain 8bits, hash_part 256bits = 267 bits
        self.check_bits(267)
        self.store_bits('100')  # addr_std$10 + maybe anycast = 0

        return self.store_int(address.wc, 8).store_bytes(address.hash_part)

    def store_external_address(self, address: typing.Optional[ExternalAddress]):
        if address is None:
            return self.store_bits('00')  # addr_none$00
        if not isinstance(address, ExternalAddress):
            raise CellValueError(f'expected ExternalAddress, got {type(address).__name__}')
        self.check_bits(2 + 9 + len(address.bits))
        return self.store_bits('01').store_uint(len(address.bits), 9).store_bits(address.bits)

    def end_cell(self) -> Cell:
        return Cell(self._bits, self._refs)

    def clear(self):
        self._bits = TvmBitarray(MAX_BITS)
        self._refs = []
        return self

    def __repr__(self) -> str:
        return f'<Builder {len(self._bits)}[{self._bits.tobytes().hex().upper()}] -> {len(self._refs)} refs>'
