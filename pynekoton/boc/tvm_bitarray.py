from typing import Union, Iterable

from bitarray import bitarray, frozenbitarray

from .errors import CellOverflowError, CellUnderflowError


MAX_BITS = 1023

BytesLike = Union[bytes, Iterable[int]]


class TvmBitarray(bitarray):
    """
    bitarray which never grows past the cell capacity (1023 bits).
    The check is done before the underlying array is touched, so a failed write leaves it unchanged.
    """

    def __new__(cls, size: int = MAX_BITS, *args, **kwargs):
        return super().__new__(cls, *args, **kwargs)

    def __init__(self, size: int = MAX_BITS, *args, **kwargs):
        if size > MAX_BITS:
            raise CellOverflowError(f'bitarray size must be <= {MAX_BITS}')
        self._size = size
        super().__init__()

    @property
    def size(self) -> int:
        return getattr(self, '_size', MAX_BITS)

    def check_overflow(self, length: int) -> None:
        if len(self) + length > self.size:
            raise CellOverflowError(f'bitstring overflow: {len(self)} + {length} > {self.size} bits')

    def check_underflow(self, length: int) -> None:
        if len(self) < length:
            raise CellUnderflowError(f'bitstring underflow: {length} > {len(self)} bits')

    def extend(self, x: Union[str, Iterable[int]]) -> None:
        if not isinstance(x, (str, bitarray)):
            x = list(x)
        self.check_overflow(len(x))
        super().extend(x)

    def append(self, value: int) -> None:
        self.check_overflow(1)
        super().append(value)

    def frombytes(self, a: BytesLike) -> None:
        a = bytes(a)
        self.check_overflow(len(a) * 8)
        super().frombytes(a)

    def copy(self) -> "TvmBitarray":
        res = TvmBitarray(self.size)
        res.extend(self)
        return res

    def to_bitarray(self) -> bitarray:
        return bitarray(self)


BitarrayLike = Union[TvmBitarray, bitarray, frozenbitarray]
