import typing

from bitarray import frozenbitarray
from bitarray.util import ba2int

from .address import Address, ExternalAddress
from .cell import Cell
from .errors import CellError, CellUnderflowError, CellValueError
from .tvm_bitarray import BitarrayLike


class Slice:
    """
    Read cursor over cell bits and refs.
    Slice never changes the cell it was created from: it only moves its own bit and ref offsets.
    Every load_* method checks that enough bits (refs) are left before moving the offsets,
    so a failed read leaves the slice as it was. preload_* methods read without moving.
    """

    def __init__(self, bits: BitarrayLike, refs: typing.Sequence[Cell], bit_offset: int = 0, ref_offset: int = 0):
        self.bits = bits if isinstance(bits, frozenbitarray) else frozenbitarray(bits)
        self.refs = tuple(refs)
        self.bit_offset = bit_offset
        self.ref_offset = ref_offset

    @classmethod
    def from_cell(cls, cell: Cell) -> "Slice":
        return cls(cell.bits, cell.refs)

    @property
    def remaining_bits(self) -> int:
        return len(self.bits) - self.bit_offset

    @property
    def remaining_refs(self) -> int:
        return len(self.refs) - self.ref_offset

    def check_bits(self, length: int) -> None:
        if not isinstance(length, int) or length < 0:
            raise CellValueError(f'bits length must be non negative int, got {length!r}')
        if length > self.remaining_bits:
            raise CellUnderflowError(f'not enough bits: requested {length}, {self.remaining_bits} left')

    def check_refs(self, count: int) -> None:
        if not isinstance(count, int) or count < 0:
            raise CellValueError(f'refs count must be non negative int, got {count!r}')
        if count > self.remaining_refs:
            raise CellUnderflowError(f'not enough refs: requested {count}, {self.remaining_refs} left')

    def _bits_at(self, start: int, length: int) -> frozenbitarray:
        start += self.bit_offset
        return self.bits[start: start + length]

    def preload_bit(self) -> int:
        self.check_bits(1)
        return self.bits[self.bit_offset]

    def load_bit(self) -> int:
        bit = self.preload_bit()
        self.bit_offset += 1
        return bit

    def preload_bool(self) -> bool:
        return bool(self.preload_bit())

    def load_bool(self) -> bool:
        return bool(self.load_bit())

    def skip_bits(self, length: int) -> "Slice":
        self.check_bits(length)
        self.bit_offset += length
        return self

    def skip_refs(self, count: int) -> "Slice":
        self.check_refs(count)
        self.ref_offset += count
        return self

    def preload_bits(self, length: int) -> frozenbitarray:
        self.check_bits(length)
        return self._bits_at(0, length)

    def load_bits(self, length: int) -> frozenbitarray:
        bits = self.preload_bits(length)
        self.bit_offset += length
        return bits

    def preload_uint(self, length: int) -> int:
        self.check_bits(length)
        if length == 0:
            return 0
        return ba2int(self._bits_at(0, length), signed=False)

    def load_uint(self, length: int) -> int:
        uint = self.preload_uint(length)
        self.bit_offset += length
        return uint

    def preload_int(self, length: int) -> int:
        self.check_bits(length)
        if length == 0:
            return 0
        # two's complement: if the top bit is set the value is uint - 2 ** length
        return ba2int(self._bits_at(0, length), signed=True)

    def load_int(self, length: int) -> int:
        integer = self.preload_int(length)
        self.bit_offset += length
        return integer

    def _preload_var(self, bit_length: int, signed: bool) -> typing.Tuple[int, int]:
        """
        :return: value and total amount of bits it takes
        """
        length = self.preload_uint(bit_length)
        total = bit_length + length * 8
        self.check_bits(total)
        if not length:
            return 0, total
        return ba2int(self._bits_at(bit_length, length * 8), signed=signed), total

    def preload_var_uint(self, bit_length: int) -> int:
        return self._preload_var(bit_length, signed=False)[0]

    def load_var_uint(self, bit_length: int) -> int:
        value, total = self._preload_var(bit_length, signed=False)
        self.bit_offset += total
        return value

    def preload_var_int(self, bit_length: int) -> int:
        return self._preload_var(bit_length, signed=True)[0]

    def load_var_int(self, bit_length: int) -> int:
        value, total = self._preload_var(bit_length, signed=True)
        self.bit_offset += total
        return value

    def preload_coins(self) -> int:
        return self.preload_var_uint(4)

    def load_coins(self) -> int:
        return self.load_var_uint(4)

    def preload_bytes(self, length: int) -> bytes:
        if not isinstance(length, int) or length < 0:
            raise CellValueError(f'bytes length must be non negative int, got {length!r}')
        return self.preload_bits(length * 8).tobytes()

    def load_bytes(self, length: int) -> bytes:
        bytes_ = self.preload_bytes(length)
        self.bit_offset += length * 8
        return bytes_

    def load_string(self, byte_length: typing.Optional[int] = None) -> str:
        """
        :param byte_length: bytes amount to read, all remaining whole bytes by default
        """
        if byte_length is None:
            byte_length = self.remaining_bits // 8
        return self.load_bytes(byte_length).decode()

    def preload_address(self) -> typing.Optional[Address]:
        # address := flags 2bits, anycast 1bit, workchain 8bits, hash_part 256bits = 267 bits
        tag = self.preload_uint(2)
        if tag == 0:  # addr_none$00
            return None
        if tag != 2:
            raise CellError(f'unsupported address tag: {tag:02b}')
        self.check_bits(267)
        if self._bits_at(2, 1)[0]:
            raise CellError('anycast addresses are not supported')
        wc = ba2int(self._bits_at(3, 8), signed=True)
        hash_part = self._bits_at(11, 256).tobytes()
        return Address((wc, hash_part))

    def load_address(self) -> typing.Optional[Address]:
        address = self.preload_address()
        self.bit_offset += 2 if address is None else 267
        return address

    def preload_external_address(self) -> typing.Optional[ExternalAddress]:
        # addr_extern$01 len:(## 9) external_address:(bits len)
        tag = self.preload_uint(2)
        if tag == 0:  # addr_none$00
            return None
        if tag != 1:
            raise CellError(f'unsupported external address tag: {tag:02b}')
        self.check_bits(2 + 9)
        length = ba2int(self._bits_at(2, 9))
        self.check_bits(2 + 9 + length)
        return ExternalAddress(self._bits_at(11, length))

    def load_external_address(self) -> typing.Optional[ExternalAddress]:
        address = self.preload_external_address()
        self.bit_offset += 2 if address is None else 2 + 9 + len(address.bits)
        return address

    def preload_ref(self) -> Cell:
        self.check_refs(1)
        return self.refs[self.ref_offset]

    def load_ref(self) -> Cell:
        ref = self.preload_ref()
        self.ref_offset += 1
        return ref

    def preload_maybe_ref(self) -> typing.Optional[Cell]:
        if self.preload_bool():
            return self.preload_ref()
        return None

    def load_maybe_ref(self) -> typing.Optional[Cell]:
        ref = self.preload_maybe_ref()
        self.bit_offset += 1
        if ref is not None:
            self.ref_offset += 1
        return ref

    def end_parse(self) -> None:
        if self.remaining_bits or self.remaining_refs:
            raise CellError(f'slice is not empty: {self.remaining_bits} bits and {self.remaining_refs} refs left')

    def to_cell(self) -> Cell:
        """
        :return: cell with the unread part of the slice
        """
        return Cell(self.bits[self.bit_offset:], self.refs[self.ref_offset:])

    @classmethod
    def one_from_boc(cls, data: typing.Union[bytes, str]) -> "Slice":
        return Cell.one_from_boc(data).begin_parse()

    def copy(self) -> "Slice":
        return Slice(self.bits, self.refs, self.bit_offset, self.ref_offset)

    def __repr__(self) -> str:
        bits = self.bits[self.bit_offset:]
        return f'<Slice {len(bits)}[{bits.tobytes().hex().upper()}] -> {self.remaining_refs} refs>'
