import logging
import typing

from ..boc.address import Address, AddressError
from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.errors import CellUnderflowError
from ..boc.slice import Slice
from .errors import AbiValueError
from .types import AbiParam, AbiType, ParamType


LENGTH_BITS = 32  # length prefix of bytes, strings, arrays and maps


class AbiCodec:
    """
    Encodes python values into a Builder and decodes them from a Slice according to ABI parameter types.

    uint / int -> int (str with decimal or 0x hex number is accepted on encoding)
    bool -> bool
    bytes, fixedbytesN -> bytes
    string -> str
    address -> Address or None (str is accepted on encoding)
    cell -> Cell
    grams -> int
    tuple -> dict {component name: value} (list or tuple is accepted on encoding)
    T[] -> list
    optional(T) -> value or None
    map(K,V) -> dict, entries keep insertion order
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._encoders = {
            AbiType.UINT: self._encode_uint,
            AbiType.INT: self._encode_int,
            AbiType.BOOL: self._encode_bool,
            AbiType.BYTES: self._encode_bytes,
            AbiType.BYTES_FIXED: self._encode_fixed_bytes,
            AbiType.STRING: self._encode_string,
            AbiType.ADDRESS: self._encode_address,
            AbiType.CELL: self._encode_cell,
            AbiType.GRAMS: self._encode_grams,
            AbiType.TUPLE: self._encode_tuple,
            AbiType.ARRAY: self._encode_array,
            AbiType.OPTIONAL: self._encode_optional,
            AbiType.MAP: self._encode_map,
        }
        self._decoders = {
            AbiType.UINT: self._decode_uint,
            AbiType.INT: self._decode_int,
            AbiType.BOOL: self._decode_bool,
            AbiType.BYTES: self._decode_bytes,
            AbiType.BYTES_FIXED: self._decode_fixed_bytes,
            AbiType.STRING: self._decode_string,
            AbiType.ADDRESS: self._decode_address,
            AbiType.CELL: self._decode_cell,
            AbiType.GRAMS: self._decode_grams,
            AbiType.TUPLE: self._decode_tuple,
            AbiType.ARRAY: self._decode_array,
            AbiType.OPTIONAL: self._decode_optional,
            AbiType.MAP: self._decode_map,
        }

    def encode(self, param: AbiParam, value: typing.Any, builder: Builder) -> Builder:
        return self.encode_type(param.param_type, value, builder, param.name)

    def decode(self, param: AbiParam, cell_slice: Slice) -> typing.Any:
        return self.decode_type(param.param_type, cell_slice)

    def encode_type(self, param_type: ParamType, value: typing.Any, builder: Builder, name: str = '') -> Builder:
        self._encoders[param_type.kind](param_type, value, builder, name)
        return builder

    def decode_type(self, param_type: ParamType, cell_slice: Slice) -> typing.Any:
        return self._decoders[param_type.kind](param_type, cell_slice)

    def encode_values(self, params: typing.List[AbiParam], values: typing.Union[dict, list, tuple],
                      builder: Builder) -> Builder:
        """
        :param values: dict {param name: value} or values in params order
        """
        for param, value in zip(params, self._ordered_values(params, values, 'values')):
            self.encode(param, value, builder)
        return builder

    def decode_values(self, params: typing.List[AbiParam], cell_slice: Slice) -> dict:
        return {param.name: self.decode(param, cell_slice) for param in params}

    @staticmethod
    def _ordered_values(params: typing.List[AbiParam], values: typing.Union[dict, list, tuple], name: str) -> list:
        if isinstance(values, dict):
            result = []
            for param in params:
                if param.name not in values:
                    raise AbiValueError(f'missing field {param.name!r} in {name}')
                result.append(values[param.name])
            return result
        if isinstance(values, (list, tuple)):
            if len(values) != len(params):
                raise AbiValueError(f'expected {len(params)} values for {name}, got {len(values)}')
            return list(values)
        raise AbiValueError(f'{name} must be dict, list or tuple, got {type(values).__name__}')

    @staticmethod
    def _to_int(value: typing.Any, name: str) -> int:
        if isinstance(value, int):
            return int(value)
        if isinstance(value, str):
            text = value.strip().lower()
            try:
                if text.startswith(('0x', '-0x')):
                    return int(text, 16)
                return int(text, 10)
            except ValueError:
                pass
        raise AbiValueError(f'can not convert {value!r} to int for {name!r}')

    def _encode_uint(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        builder.store_uint(self._to_int(value, name), param_type.size)

    def _decode_uint(self, param_type: ParamType, cell_slice: Slice) -> int:
        return cell_slice.load_uint(param_type.size)

    def _encode_int(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        builder.store_int(self._to_int(value, name), param_type.size)

    def _decode_int(self, param_type: ParamType, cell_slice: Slice) -> int:
        return cell_slice.load_int(param_type.size)

    def _encode_bool(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if not isinstance(value, bool):
            raise AbiValueError(f'expected bool for {name!r}, got {type(value).__name__}')
        builder.store_bool(value)

    def _decode_bool(self, param_type: ParamType, cell_slice: Slice) -> bool:
        return cell_slice.load_bool()

    @staticmethod
    def _to_bytes(value, name: str) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode()
        raise AbiValueError(f'expected bytes for {name!r}, got {type(value).__name__}')

    def _encode_bytes(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        value = self._to_bytes(value, name)
        builder.check_bits(LENGTH_BITS + len(value) * 8)
        builder.store_uint(len(value), LENGTH_BITS).store_bytes(value)

    def _decode_bytes(self, param_type: ParamType, cell_slice: Slice) -> bytes:
        length = cell_slice.preload_uint(LENGTH_BITS)
        cell_slice.check_bits(LENGTH_BITS + length * 8)
        cell_slice.skip_bits(LENGTH_BITS)
        return cell_slice.load_bytes(length)

    def _encode_fixed_bytes(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        value = self._to_bytes(value, name)
        if len(value) != param_type.size:
            raise AbiValueError(f'expected {param_type.size} bytes for {name!r}, got {len(value)}')
        builder.store_bytes(value)

    def _decode_fixed_bytes(self, param_type: ParamType, cell_slice: Slice) -> bytes:
        return cell_slice.load_bytes(param_type.size)

    def _encode_string(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if not isinstance(value, str):
            raise AbiValueError(f'expected str for {name!r}, got {type(value).__name__}')
        self._encode_bytes(param_type, value.encode(), builder, name)

    def _decode_string(self, param_type: ParamType, cell_slice: Slice) -> str:
        data = self._decode_bytes(param_type, cell_slice)
        try:
            return data.decode()
        except UnicodeDecodeError as e:
            raise AbiValueError(f'string is not valid utf-8: {e}') from e

    def _encode_address(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if value is not None and not isinstance(value, (Address, str)):
            raise AbiValueError(f'expected Address for {name!r}, got {type(value).__name__}')
        if isinstance(value, str):
            try:
                value = Address(value)
            except AddressError as e:
                raise AbiValueError(f'invalid address for {name!r}: {e}') from e
        builder.store_address(value)

    def _decode_address(self, param_type: ParamType, cell_slice: Slice) -> typing.Optional[Address]:
        return cell_slice.load_address()

    def _encode_cell(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if not isinstance(value, Cell):
            raise AbiValueError(f'expected Cell for {name!r}, got {type(value).__name__}')
        builder.store_ref(value)

    def _decode_cell(self, param_type: ParamType, cell_slice: Slice) -> Cell:
        return cell_slice.load_ref()

    def _encode_grams(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        builder.store_coins(self._to_int(value, name))

    def _decode_grams(self, param_type: ParamType, cell_slice: Slice) -> int:
        return cell_slice.load_coins()

    def _encode_tuple(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        values = self._ordered_values(param_type.components, value, f'tuple {name!r}')
        for component, component_value in zip(param_type.components, values):
            self.encode(component, component_value, builder)

    def _decode_tuple(self, param_type: ParamType, cell_slice: Slice) -> dict:
        return self.decode_values(param_type.components, cell_slice)

    def _encode_array(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if not isinstance(value, (list, tuple)):
            raise AbiValueError(f'expected list for {name!r}, got {type(value).__name__}')
        builder.store_uint(len(value), LENGTH_BITS)
        for item in value:
            self.encode_type(param_type.item, item, builder, name)

    @staticmethod
    def _check_length(length: int, cell_slice: Slice) -> None:
        # every item takes at least one bit or one ref
        available = cell_slice.remaining_bits + cell_slice.remaining_refs
        if length > available:
            raise CellUnderflowError(f'{length} items can not fit into {available} remaining bits and refs')

    def _decode_array(self, param_type: ParamType, cell_slice: Slice) -> list:
        length = cell_slice.load_uint(LENGTH_BITS)
        self._check_length(length, cell_slice)
        return [self.decode_type(param_type.item, cell_slice) for _ in range(length)]

    def _encode_optional(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if value is None:
            builder.store_bit(0)
            return
        builder.store_bit(1)
        self.encode_type(param_type.item, value, builder, name)

    def _decode_optional(self, param_type: ParamType, cell_slice: Slice) -> typing.Any:
        if not cell_slice.load_bool():
            return None
        return self.decode_type(param_type.item, cell_slice)

    def _encode_map(self, param_type: ParamType, value, builder: Builder, name: str) -> None:
        if not isinstance(value, dict):
            raise AbiValueError(f'expected dict for {name!r}, got {type(value).__name__}')
        builder.store_uint(len(value), LENGTH_BITS)
        for key, item in value.items():
            self.encode_type(param_type.key, key, builder, name)
            self.encode_type(param_type.value, item, builder, name)

    def _decode_map(self, param_type: ParamType, cell_slice: Slice) -> dict:
        length = cell_slice.load_uint(LENGTH_BITS)
        self._check_length(length, cell_slice)
        result = {}
        for _ in range(length):
            key = self.decode_type(param_type.key, cell_slice)
            item = self.decode_type(param_type.value, cell_slice)
            try:
                result[key] = item
            except TypeError as e:
                raise AbiValueError(f'map key of type {param_type.key} can not be a dict key: {e}') from e
        return result
