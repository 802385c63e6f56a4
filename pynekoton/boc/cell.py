import hashlib
import typing

from bitarray import bitarray, frozenbitarray

from .errors import BocError, CellError, CellOverflowError, CellValueError
from .tvm_bitarray import BitarrayLike, MAX_BITS


MAX_REFS = 4
MAX_DEPTH = 1024


class Cell:
    """
    Cell is an immutable type: up to 1023 bits of data and up to 4 references to other cells.
    If you want to read from cell use .begin_parse() method.
    If you want to write to cell use .to_builder() method.

    Since a cell can only reference cells which already exist, cells always form a DAG.
    Cells are content addressed: two cells with the same bits and the same refs are equal and have equal hashes.
    """

    def __init__(self, bits: typing.Union[BitarrayLike, str] = '', refs: typing.Iterable["Cell"] = ()) -> None:
        bits = frozenbitarray(bits)
        refs = tuple(refs)
        if len(bits) > MAX_BITS:
            raise CellOverflowError(f'cell can not contain more than {MAX_BITS} bits, got {len(bits)}')
        if len(refs) > MAX_REFS:
            raise CellOverflowError(f'cell can not contain more than {MAX_REFS} refs, got {len(refs)}')
        for ref in refs:
            if not isinstance(ref, Cell):
                raise CellValueError(f'cell ref must be a Cell, got {type(ref).__name__}')

        self._bits: frozenbitarray = bits
        self._refs: typing.Tuple["Cell", ...] = refs

        self._depth: int = self.calculate_depth()
        self._descriptors: bytes = self.get_descriptors()
        self._data_bytes: bytes = self.get_data_bytes()
        self._hash: bytes = self.calculate_hash()

    @classmethod
    def empty(cls) -> "Cell":
        return cls()

    @classmethod
    def from_data(cls, data: bytes, bit_length: typing.Optional[int] = None, refs: typing.Iterable["Cell"] = ()) -> "Cell":
        """
        :param data: cell data, most significant bit first
        :param bit_length: amount of meaningful bits in data, all of them by default
        """
        bits = bitarray()
        bits.frombytes(bytes(data))
        if bit_length is None:
            bit_length = len(bits)
        if not 0 <= bit_length <= len(bits):
            raise CellValueError(f'bit length {bit_length} does not fit into {len(data)} bytes of data')
        return cls(bits[:bit_length], refs)

    @property
    def bits(self) -> frozenbitarray:
        return self._bits

    @property
    def refs(self) -> typing.Tuple["Cell", ...]:
        return self._refs

    @property
    def bit_length(self) -> int:
        return len(self._bits)

    @property
    def data(self) -> bytes:
        """
        cell bits as bytes, the last byte is padded with zeros
        """
        return self._bits.tobytes()

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def hash(self) -> bytes:
        return self._hash

    def calculate_depth(self) -> int:
        if not self._refs:
            return 0
        depth = max(ref.depth for ref in self._refs) + 1
        if depth >= MAX_DEPTH:
            raise CellError('depth is more than max depth')
        return depth

    def get_refs_descriptor(self) -> bytes:
        # d1 = r + 8s + 32l, only ordinary (s = 0) cells of level 0 are supported
        d1 = len(self._refs)
        return d1.to_bytes(1, 'big')

    def get_bits_descriptor(self) -> bytes:
        # d2 = ceil(b/8) + floor(b/8)
        bit_len = len(self._bits)
        d2 = (bit_len // 8) * 2
        d2 += 1 if bit_len % 8 else 0
        return d2.to_bytes(1, 'big')

    def get_descriptors(self) -> bytes:
        return self.get_refs_descriptor() + self.get_bits_descriptor()

    def get_data_bytes(self) -> bytes:
        """
        data with completion tag: if bits are not byte aligned, a single 1 bit and then zeros are appended
        """
        result = bitarray(self._bits)
        if len(result) % 8:
            result.append(1)
            result.fill()
        return result.tobytes()

    def get_representation(self) -> bytes:
        # CellRepr(c) = d1 d2 + data + depth(r_i) for all i + hash(r_i) for all i
        depths = b''.join(ref.depth.to_bytes(2, 'big') for ref in self._refs)
        hashes = b''.join(ref.hash for ref in self._refs)
        return self._descriptors + self._data_bytes + depths + hashes

    def calculate_hash(self) -> bytes:
        # Hash(c) := sha256(CellRepr(c))
        return hashlib.sha256(self.get_representation()).digest()

    def serialize(self, indexes: typing.Dict["Cell", int], byte_len: int) -> bytes:
        """
        cell as it is stored in a bag of cells: descriptors, data and indexes of its refs
        """
        result = self._descriptors + self._data_bytes
        for ref in self._refs:
            result += indexes[ref].to_bytes(byte_len, 'big')
        return result

    def to_boc(self, has_idx: bool = False, hash_crc32: bool = True, has_cache_bits: bool = False,
               flags: int = 0) -> bytes:
        from .deserialize import Boc
        return Boc.serialize([self], has_idx=has_idx, hash_crc32=hash_crc32,
                             has_cache_bits=has_cache_bits, flags=flags)

    @classmethod
    def from_boc(cls, data: typing.Union[bytes, str]) -> typing.List["Cell"]:
        from .deserialize import Boc
        return Boc(data).deserialize()

    @classmethod
    def one_from_boc(cls, data: typing.Union[bytes, str]) -> "Cell":
        cells = cls.from_boc(data)
        if len(cells) != 1:
            raise BocError(f'expected one root cell, got {len(cells)}')
        return cells[0]

    def begin_parse(self):
        from .slice import Slice
        return Slice(self._bits, self._refs)

    def to_builder(self):
        from .builder import Builder
        return Builder().store_cell(self)

    def __hash__(self) -> int:  # for dicts
        return int.from_bytes(self._hash, 'big')

    def __getitem__(self, ref_i: int) -> "Cell":
        """
        my_cell: Cell
        new_cell = Builder().store_ref(my_cell).end_cell()
        assert new_cell[0] == my_cell
        """
        return self._refs[ref_i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self._hash == other.hash

    def __repr__(self) -> str:
        return f'<Cell {len(self._bits)}[{self._bits.tobytes().hex().upper()}] -> {len(self._refs)} refs>'

    def __str__(self, t=1, comma=False) -> str:
        """
        :param t: \t symbols amount before text
        :param comma: "," after "}"
        """
        text = f'{len(self._bits)}[{self._bits.tobytes().hex().upper()}]'
        if self._refs:
            text += ' -> {\n'
            for index, ref in enumerate(self._refs):
                next_comma = index != len(self._refs) - 1
                text += '\t' * t + ref.__str__(t + 1, next_comma) + '\n'
            text += '\t' * (t - 1) + '}'
        if comma:
            text += ','
        return text
