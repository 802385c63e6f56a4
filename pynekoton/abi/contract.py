import json
import logging
import typing

from ..boc.address import AddressError
from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.errors import CellError
from ..boc.slice import Slice
from ..tlb.message import MessageAny, MessageType, StateInit
from .codec import AbiCodec
from .errors import AbiError, AbiIdMismatchError, AbiValueError
from .event import EventAbi
from .function import FunctionAbi, FunctionCall, PUBLIC_KEY_BYTES, ID_BITS, read_body_id, to_slice
from .types import AbiParam


class ContractAbi:
    """
    Contract interface parsed from abi json:

        {
            "ABI version": 2,
            "version": "2.2",
            "functions": [{"name": ..., "inputs": [...], "outputs": [...], "id": "0x..."}],
            "events": [{"name": ..., "inputs": [...], "id": "0x..."}],
            "data": [{"name": ..., "type": ...}]
        }

    Init data layout: public_key:(Maybe bits256) followed by the data params.
    """

    def __init__(self, abi: typing.Union[str, bytes, dict], codec: typing.Optional[AbiCodec] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.codec = codec or AbiCodec()
        if isinstance(abi, (str, bytes)):
            try:
                abi = json.loads(abi)
            except ValueError as e:
                raise AbiError(f'invalid abi json: {e}') from e
        if not isinstance(abi, dict):
            raise AbiError(f'abi must be a json object, got {type(abi).__name__}')

        self.abi_version: int = abi.get('ABI version', 2)
        self.version: typing.Optional[str] = abi.get('version')

        self.functions: typing.Dict[str, FunctionAbi] = {}
        for data in abi.get('functions', []):
            function = FunctionAbi.from_dict(data, abi_version=self.abi_version, codec=self.codec)
            self.functions[function.name] = function

        self.events: typing.Dict[str, EventAbi] = {}
        for data in abi.get('events', []):
            event = EventAbi.from_dict(data, abi_version=self.abi_version, codec=self.codec)
            self.events[event.name] = event

        self.data: typing.Dict[str, AbiParam] = {}
        for data in abi.get('data', []):
            param = AbiParam.from_dict(data)
            self.data[param.name] = param

        self.logger.debug(f'parsed abi v{self.abi_version}: {len(self.functions)} functions, '
                          f'{len(self.events)} events, {len(self.data)} data fields')

    @classmethod
    def from_file(cls, path: str, codec: typing.Optional[AbiCodec] = None) -> "ContractAbi":
        with open(path, 'r') as f:
            return cls(f.read(), codec=codec)

    def get_function(self, name: str) -> typing.Optional[FunctionAbi]:
        return self.functions.get(name)

    def get_event(self, name: str) -> typing.Optional[EventAbi]:
        return self.events.get(name)

    def get_function_by_id(self, id_: int, output: bool = False) -> typing.Optional[FunctionAbi]:
        """
        :param output: look up by output id instead of input id
        """
        for function in self.functions.values():
            if (function.output_id if output else function.input_id) == id_:
                return function
        return None

    def get_event_by_id(self, id_: int) -> typing.Optional[EventAbi]:
        for event in self.events.values():
            if event.id == id_:
                return event
        return None

    def encode_init_data(self, values: dict, public_key: typing.Optional[bytes] = None) -> Cell:
        builder = Builder()
        if public_key is not None:
            if len(public_key) != PUBLIC_KEY_BYTES:
                raise AbiValueError(f'public key must be {PUBLIC_KEY_BYTES} bytes, got {len(public_key)}')
            builder.store_bit(1).store_bytes(public_key)
        else:
            builder.store_bit(0)
        return self.codec.encode_values(list(self.data.values()), values, builder).end_cell()

    @staticmethod
    def _load_public_key(cell_slice: Slice) -> typing.Optional[bytes]:
        if cell_slice.load_bool():
            return cell_slice.load_bytes(PUBLIC_KEY_BYTES)
        return None

    def decode_init_data(self, data: Cell) -> typing.Tuple[typing.Optional[bytes], dict]:
        """
        :return: public key (or None) and data values
        """
        cell_slice = data.begin_parse()
        public_key = self._load_public_key(cell_slice)
        return public_key, self.codec.decode_values(list(self.data.values()), cell_slice)

    def decode_fields(self, data: typing.Union[Cell, StateInit], allow_partial: bool = False) -> dict:
        """
        Decodes data fields of the init data layout.
        With allow_partial a field which fails to decode is skipped together with all fields after it,
        since the position of the next field is unknown. Otherwise the error is raised.
        """
        if isinstance(data, StateInit):
            if data.data is None:
                raise AbiValueError('state init has no data')
            data = data.data
        cell_slice = data.begin_parse()
        result = {}
        try:
            self._load_public_key(cell_slice)
        except CellError:
            if not allow_partial:
                raise
            self.logger.debug('can not read public key of the data, no fields decoded')
            return result

        params = list(self.data.values())
        for i, param in enumerate(params):
            try:
                result[param.name] = self.codec.decode(param, cell_slice)
            except (CellError, AbiError, AddressError) as e:
                if not allow_partial:
                    raise
                skipped = [p.name for p in params[i:]]
                self.logger.debug(f'failed to decode field {param.name!r}: {e!r}, skipping {skipped}')
                break
        return result

    def decode_input(self, body: typing.Union[Cell, Slice], internal: bool = False) -> FunctionCall:
        id_ = read_body_id(body, internal)
        function = self.get_function_by_id(id_) if id_ is not None else None
        if function is None:
            raise AbiIdMismatchError(f'no function with input id {id_ if id_ is None else hex(id_)}')
        return FunctionCall(function, input=function.decode_input(body, internal))

    def decode_output(self, body: typing.Union[Cell, Slice]) -> FunctionCall:
        id_ = read_body_id(body)
        function = self.get_function_by_id(id_, output=True) if id_ is not None else None
        if function is None:
            raise AbiIdMismatchError(f'no function with output id {id_ if id_ is None else hex(id_)}')
        return FunctionCall(function, output=function.decode_output(body))

    def decode_transaction(self, in_msg: typing.Optional[MessageAny],
                           out_msgs: typing.Iterable[MessageAny] = ()) -> typing.Optional[FunctionCall]:
        """
        :return: call of the function the inbound message is addressed to, with its output
            taken from the outbound messages, or None if the inbound message calls no known function
        """
        if in_msg is None:
            return None
        id_ = read_body_id(in_msg.body, in_msg.is_internal)
        function = self.get_function_by_id(id_) if id_ is not None else None
        if function is None:
            self.logger.debug(f'inbound message does not call a known function, id {id_}')
            return None
        return function.decode_transaction(in_msg, out_msgs)

    def decode_events(self, messages: typing.Iterable[MessageAny]) -> typing.List[typing.Tuple[EventAbi, dict]]:
        """
        decodes every external out message whose body id belongs to a known event, other messages are skipped
        """
        result = []
        for message in messages:
            if message.type_ != MessageType.EXTERNAL_OUT:
                continue
            id_ = read_body_id(message.body)
            event = self.get_event_by_id(id_) if id_ is not None else None
            if event is None:
                self.logger.debug(f'skipping external out message with unknown event id {id_}')
                continue
            cell_slice = to_slice(message.body).skip_bits(ID_BITS)
            result.append((event, event.decode_input(cell_slice)))
        return result

    def __repr__(self) -> str:
        return f'<ContractAbi version={self.abi_version} functions={len(self.functions)} events={len(self.events)}>'
