import logging
import time
import typing
import zlib

from ..boc.address import Address
from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.slice import Slice
from ..crypto.signature import Signer
from ..tlb.message import InternalMsgInfo, ExternalMsgInfo, MessageAny, StateInit
from .codec import AbiCodec
from .errors import AbiIdMismatchError, AbiValueError
from .types import AbiParam


DEFAULT_TIMEOUT = 60  # seconds
ABI_VERSION = 2

ID_BITS = 32
EXPIRE_BITS = 64
PUBLIC_KEY_BYTES = 32
SIGNATURE_BYTES = 64


def parse_id(id_: typing.Union[str, int]) -> int:
    """
    explicit function (event) id from abi json: '0x1a2b3c4d', '1a2b3c4d' or int
    """
    if isinstance(id_, bool) or not isinstance(id_, (str, int)):
        raise AbiValueError(f'id must be hex str or int, got {id_!r}')
    if isinstance(id_, str):
        text = id_.strip().lower()
        if text.startswith('0x'):
            text = text[2:]
        try:
            id_ = int(text, 16)
        except ValueError:
            raise AbiValueError(f'invalid hex id: {id_!r}')
    if not 0 <= id_ < 1 << ID_BITS:
        raise AbiValueError(f'id must fit into uint32, got {id_}')
    return id_


def compute_id(name: str) -> int:
    """
    crc32 of the name. It is a library convention for abis without explicit ids.
    """
    return zlib.crc32(name.encode())


def to_slice(body: typing.Union[Cell, Slice]) -> Slice:
    if isinstance(body, Cell):
        return body.begin_parse()
    if isinstance(body, Slice):
        return body.copy()
    raise AbiValueError(f'expected Cell or Slice body, got {type(body).__name__}')


def skip_signature(cell_slice: Slice) -> typing.Optional[bytes]:
    # signature:(Maybe bits512)
    if cell_slice.load_bool():
        return cell_slice.load_bytes(SIGNATURE_BYTES)
    return None


def read_body_id(body: typing.Union[Cell, Slice], internal: bool = True) -> typing.Optional[int]:
    """
    :return: function (event) id from the body or None if the body is too short
    """
    cell_slice = to_slice(body)
    if not internal:
        if cell_slice.remaining_bits < 1:
            return None
        if cell_slice.preload_bit():
            if cell_slice.remaining_bits < 1 + SIGNATURE_BYTES * 8:
                return None
            cell_slice.skip_bits(1 + SIGNATURE_BYTES * 8)
        else:
            cell_slice.skip_bits(1)
    if cell_slice.remaining_bits < ID_BITS:
        return None
    return cell_slice.preload_uint(ID_BITS)


class UnsignedBody:
    """
    External message body waiting for a signature.

    payload: function id, expire_at, Maybe public key and function inputs
    body: signature:(Maybe bits512) followed by the payload bits and refs
    """

    def __init__(self, payload: Cell, expire_at: int):
        self.payload = payload
        self.expire_at = expire_at

    @property
    def hash(self) -> bytes:
        """
        data to be signed
        """
        return self.payload.hash

    def sign(self, signer: Signer) -> Cell:
        return self.with_signature(signer.sign(self.hash))

    def with_signature(self, signature: bytes) -> Cell:
        if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_BYTES:
            raise AbiValueError(f'signature must be {SIGNATURE_BYTES} bytes')
        return Builder().store_bit(1).store_bytes(signature).store_cell(self.payload).end_cell()

    def without_signature(self) -> Cell:
        return Builder().store_bit(0).store_cell(self.payload).end_cell()

    def __repr__(self) -> str:
        return f'<UnsignedBody hash={self.hash.hex()} expire_at={self.expire_at}>'


class FunctionAbi:

    def __init__(self, name: str, inputs: typing.List[AbiParam], outputs: typing.Optional[typing.List[AbiParam]] = None,
                 input_id: typing.Optional[int] = None, output_id: typing.Optional[int] = None,
                 abi_version: int = ABI_VERSION, codec: typing.Optional[AbiCodec] = None):
        self.name = name
        self.inputs = list(inputs)
        self.outputs = list(outputs or [])
        self.input_id = input_id if input_id is not None else compute_id(name)
        self.output_id = output_id if output_id is not None else self.input_id
        self.abi_version = abi_version
        self.codec = codec or AbiCodec()
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_dict(cls, data: dict, abi_version: int = ABI_VERSION, codec: typing.Optional[AbiCodec] = None):
        """
        {"name": "transfer", "inputs": [...], "outputs": [...], "id": "0x...", "outputId": "0x..."}
        """
        input_id = parse_id(data['id']) if data.get('id') is not None else None
        output_id = parse_id(data['outputId']) if data.get('outputId') is not None else None
        return cls(
            name=data['name'],
            inputs=[AbiParam.from_dict(p) for p in data.get('inputs', [])],
            outputs=[AbiParam.from_dict(p) for p in data.get('outputs', [])],
            input_id=input_id,
            output_id=output_id,
            abi_version=abi_version,
            codec=codec,
        )

    @property
    def has_output(self) -> bool:
        return bool(self.outputs)

    def encode_internal_input(self, values: typing.Union[dict, list, tuple]) -> Cell:
        builder = Builder().store_uint(self.input_id, ID_BITS)
        return self.codec.encode_values(self.inputs, values, builder).end_cell()

    def encode_external_input(self, values: typing.Union[dict, list, tuple], public_key: typing.Optional[bytes] = None,
                              timeout: int = DEFAULT_TIMEOUT, now: typing.Optional[int] = None) -> UnsignedBody:
        """
        :param now: unix time to count expire_at from, current time by default
        """
        if now is None:
            now = int(time.time())
        expire_at = now + timeout
        builder = Builder().store_uint(self.input_id, ID_BITS).store_uint(expire_at, EXPIRE_BITS)
        if public_key is not None:
            if len(public_key) != PUBLIC_KEY_BYTES:
                raise AbiValueError(f'public key must be {PUBLIC_KEY_BYTES} bytes, got {len(public_key)}')
            builder.store_bit(1).store_bytes(public_key)
        else:
            builder.store_bit(0)
        payload = self.codec.encode_values(self.inputs, values, builder).end_cell()
        self.logger.debug(f'encoded external input of {self.name}: {payload.bit_length} bits, expire at {expire_at}')
        return UnsignedBody(payload, expire_at)

    def _check_id(self, cell_slice: Slice, expected: int) -> None:
        id_ = cell_slice.load_uint(ID_BITS)
        if id_ != expected:
            raise AbiIdMismatchError(f'{self.name}: expected id {hex(expected)}, got {hex(id_)}')

    def decode_input(self, body: typing.Union[Cell, Slice], internal: bool = False) -> dict:
        cell_slice = to_slice(body)
        if not internal:
            skip_signature(cell_slice)
        self._check_id(cell_slice, self.input_id)
        if not internal:
            cell_slice.skip_bits(EXPIRE_BITS)
            if cell_slice.load_bool():
                cell_slice.skip_bits(PUBLIC_KEY_BYTES * 8)
        return self.codec.decode_values(self.inputs, cell_slice)

    def encode_output(self, values: typing.Union[dict, list, tuple]) -> Cell:
        builder = Builder().store_uint(self.output_id, ID_BITS)
        return self.codec.encode_values(self.outputs, values, builder).end_cell()

    def decode_output(self, body: typing.Union[Cell, Slice]) -> dict:
        cell_slice = to_slice(body)
        self._check_id(cell_slice, self.output_id)
        return self.codec.decode_values(self.outputs, cell_slice)

    def encode_internal_message(self, values: typing.Union[dict, list, tuple], value: int, dest: typing.Union[Address, str],
                                bounce: bool = True, src: typing.Optional[Address] = None,
                                state_init: typing.Optional[StateInit] = None) -> MessageAny:
        info = InternalMsgInfo(
            ihr_disabled=True,
            bounce=bounce,
            bounced=False,
            src=src,
            dest=Address(dest),
            value=value,
        )
        return MessageAny(info=info, init=state_init, body=self.encode_internal_input(values))

    def encode_external_message(self, values: typing.Union[dict, list, tuple], dest: typing.Union[Address, str],
                                signer: typing.Optional[Signer] = None, public_key: typing.Optional[bytes] = None,
                                state_init: typing.Optional[StateInit] = None, timeout: int = DEFAULT_TIMEOUT,
                                now: typing.Optional[int] = None) -> MessageAny:
        """
        body is signed when signer is given, its public key goes into the body unless public_key is set
        """
        if public_key is None and signer is not None:
            public_key = signer.public_key
        unsigned = self.encode_external_input(values, public_key=public_key, timeout=timeout, now=now)
        body = unsigned.sign(signer) if signer is not None else unsigned.without_signature()
        info = ExternalMsgInfo(src=None, dest=Address(dest), import_fee=0)
        return MessageAny(info=info, init=state_init, body=body)

    def decode_transaction(self, in_msg: typing.Optional[MessageAny],
                           out_msgs: typing.Iterable[MessageAny] = ()) -> typing.Optional["FunctionCall"]:
        """
        Decodes the inbound message body as the function input and the first outbound message body
        with the output id as the function output.

        :return: None if the inbound message is not a call of this function
        """
        if in_msg is None:
            return None
        internal = in_msg.is_internal
        if read_body_id(in_msg.body, internal) != self.input_id:
            return None
        output = {}
        if self.has_output:
            for message in out_msgs:
                if read_body_id(message.body) == self.output_id:
                    output = self.decode_output(message.body)
                    break
        return FunctionCall(self, input=self.decode_input(in_msg.body, internal), output=output)

    def with_args(self, values: typing.Union[dict, list, tuple]) -> "FunctionAbiWithArgs":
        return FunctionAbiWithArgs(self, values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, FunctionAbi):
            return NotImplemented
        return self.name == other.name and self.input_id == other.input_id and self.output_id == other.output_id

    def __hash__(self) -> int:
        return hash((self.name, self.input_id, self.output_id))

    def __repr__(self) -> str:
        return f'<FunctionAbi {self.name} input_id={hex(self.input_id)} output_id={hex(self.output_id)}>'


class FunctionAbiWithArgs:
    """
    function with bound input values
    """

    def __init__(self, abi: FunctionAbi, values: typing.Union[dict, list, tuple]):
        self.abi = abi
        self.values = values

    def encode_internal_input(self) -> Cell:
        return self.abi.encode_internal_input(self.values)

    def encode_external_input(self, public_key: typing.Optional[bytes] = None, timeout: int = DEFAULT_TIMEOUT,
                              now: typing.Optional[int] = None) -> UnsignedBody:
        return self.abi.encode_external_input(self.values, public_key=public_key, timeout=timeout, now=now)

    def encode_internal_message(self, value: int, dest: typing.Union[Address, str], bounce: bool = True,
                                src: typing.Optional[Address] = None,
                                state_init: typing.Optional[StateInit] = None) -> MessageAny:
        return self.abi.encode_internal_message(self.values, value, dest, bounce=bounce, src=src, state_init=state_init)

    def encode_external_message(self, dest: typing.Union[Address, str], signer: typing.Optional[Signer] = None,
                                public_key: typing.Optional[bytes] = None, state_init: typing.Optional[StateInit] = None,
                                timeout: int = DEFAULT_TIMEOUT, now: typing.Optional[int] = None) -> MessageAny:
        return self.abi.encode_external_message(self.values, dest, signer=signer, public_key=public_key,
                                                state_init=state_init, timeout=timeout, now=now)

    def __repr__(self) -> str:
        return f'<FunctionAbiWithArgs {self.abi.name}>'


class FunctionCall:
    """
    decoded function input or output
    """

    def __init__(self, function: FunctionAbi, input: typing.Optional[dict] = None, output: typing.Optional[dict] = None):
        self.function = function
        self.input = input or {}
        self.output = output or {}

    def __repr__(self) -> str:
        return f'<FunctionCall {self.function.name} input={list(self.input)} output={list(self.output)}>'
