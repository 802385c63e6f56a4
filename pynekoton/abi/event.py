import typing

from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.slice import Slice
from ..tlb.message import MessageAny
from .codec import AbiCodec
from .errors import AbiIdMismatchError, AbiValueError
from .function import ABI_VERSION, ID_BITS, compute_id, parse_id, to_slice
from .types import AbiParam


class EventAbi:

    def __init__(self, name: str, inputs: typing.List[AbiParam], id_: typing.Optional[int] = None,
                 abi_version: int = ABI_VERSION, codec: typing.Optional[AbiCodec] = None):
        self.name = name
        self.inputs = list(inputs)
        self.id = id_ if id_ is not None else compute_id(name)
        self.abi_version = abi_version
        self.codec = codec or AbiCodec()

    @classmethod
    def from_dict(cls, data: dict, abi_version: int = ABI_VERSION, codec: typing.Optional[AbiCodec] = None):
        return cls(
            name=data['name'],
            inputs=[AbiParam.from_dict(p) for p in data.get('inputs', [])],
            id_=parse_id(data['id']) if data.get('id') is not None else None,
            abi_version=abi_version,
            codec=codec,
        )

    def encode_body(self, values: typing.Union[dict, list, tuple]) -> Cell:
        builder = Builder().store_uint(self.id, ID_BITS)
        return self.codec.encode_values(self.inputs, values, builder).end_cell()

    def decode_message_body(self, body: typing.Union[Cell, Slice]) -> dict:
        cell_slice = to_slice(body)
        id_ = cell_slice.load_uint(ID_BITS)
        if id_ != self.id:
            raise AbiIdMismatchError(f'event {self.name}: expected id {hex(self.id)}, got {hex(id_)}')
        return self.decode_input(cell_slice)

    def decode_message(self, message: MessageAny) -> dict:
        if message.body is None:
            raise AbiValueError('message has no body')
        return self.decode_message_body(message.body)

    def decode_input(self, cell_slice: Slice) -> dict:
        """
        decodes event params from a slice positioned right after the event id
        """
        return self.codec.decode_values(self.inputs, cell_slice)

    def __eq__(self, other) -> bool:
        if not isinstance(other, EventAbi):
            return NotImplemented
        return self.name == other.name and self.id == other.id

    def __hash__(self) -> int:
        return hash((self.name, self.id))

    def __repr__(self) -> str:
        return f'<EventAbi {self.name} id={hex(self.id)}>'
