import enum
import typing

from ..boc.address import Address, ExternalAddress
from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.slice import Slice
from .tlb import TlbScheme, TlbError


class MessageError(TlbError):
    pass


class MessageType(enum.Enum):
    INTERNAL = 'internal'
    EXTERNAL_IN = 'external_in'
    EXTERNAL_OUT = 'external_out'


class TickTock(TlbScheme):
    """
    tick_tock$_ tick:Bool tock:Bool = TickTock;
    """
    def __init__(self, tick: bool, tock: bool):
        self.tick = tick
        self.tock = tock

    def serialize(self) -> Cell:
        return Builder().store_bool(self.tick).store_bool(self.tock).end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        return cls(cell_slice.load_bool(), cell_slice.load_bool())


class StateInit(TlbScheme):
    """
    _ split_depth:(Maybe (## 5)) special:(Maybe TickTock)
    code:(Maybe ^Cell) data:(Maybe ^Cell)
    library:(Maybe ^Cell) = StateInit;
    """

    def __init__(self,
                 split_depth: typing.Optional[int] = None,
                 special: typing.Optional[TickTock] = None,
                 code: typing.Optional[Cell] = None,
                 data: typing.Optional[Cell] = None,
                 library: typing.Optional[Cell] = None):
        self.split_depth = split_depth
        self.special = special
        self.code = code
        self.data = data
        self.library = library

    def serialize(self) -> Cell:
        builder = Builder()
        if self.split_depth is not None:
            builder.store_bit(1).store_uint(self.split_depth, 5)
        else:
            builder.store_bit(0)
        if self.special is not None:
            builder.store_bit(1).store_cell(self.special.serialize())
        else:
            builder.store_bit(0)
        builder.store_maybe_ref(self.code)
        builder.store_maybe_ref(self.data)
        builder.store_maybe_ref(self.library)
        return builder.end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        return cls(
            split_depth=cell_slice.load_uint(5) if cell_slice.load_bit() else None,
            special=TickTock.deserialize(cell_slice) if cell_slice.load_bit() else None,
            code=cell_slice.load_maybe_ref(),
            data=cell_slice.load_maybe_ref(),
            library=cell_slice.load_maybe_ref(),
        )

    @property
    def address_hash(self) -> bytes:
        """
        hash part of the address of a contract deployed with this state init
        """
        return self.serialize().hash

    def __eq__(self, other) -> bool:
        if not isinstance(other, StateInit):
            return NotImplemented
        return self.serialize() == other.serialize()


class CommonMsgInfo(TlbScheme):
    """
    int_msg_info$0 ihr_disabled:Bool bounce:Bool bounced:Bool
    src:MsgAddressInt dest:MsgAddressInt
    value:CurrencyCollection ihr_fee:Grams fwd_fee:Grams
    created_lt:uint64 created_at:uint32 = CommonMsgInfo;

    ext_in_msg_info$10 src:MsgAddressExt dest:MsgAddressInt
    import_fee:Grams = CommonMsgInfo;

    ext_out_msg_info$11 src:MsgAddressInt dest:MsgAddressExt
    created_lt:uint64 created_at:uint32 = CommonMsgInfo;

    Every variant has a type_ tag, callers dispatch on it.
    """
    type_: MessageType = None

    def serialize(self) -> Cell:
        raise NotImplementedError

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        tag = cell_slice.preload_bit()
        if not tag:  # 0
            return InternalMsgInfo.deserialize(cell_slice)
        tag = cell_slice.preload_bits(2).to01()
        if tag == '10':
            return ExternalMsgInfo.deserialize(cell_slice)
        # 11
        return ExternalOutMsgInfo.deserialize(cell_slice)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CommonMsgInfo):
            return NotImplemented
        return self.type_ == other.type_ and self.serialize() == other.serialize()


class InternalMsgInfo(CommonMsgInfo):
    """
    int_msg_info$0 ihr_disabled:Bool bounce:Bool bounced:Bool
    src:MsgAddressInt dest:MsgAddressInt
    value:CurrencyCollection ihr_fee:Grams fwd_fee:Grams
    created_lt:uint64 created_at:uint32 = CommonMsgInfo;

    value is stored without extra currencies: Grams followed by an empty dict bit.
    """
    type_ = MessageType.INTERNAL

    def __init__(self, ihr_disabled: bool = True, bounce: bool = True, bounced: bool = False,
                 src: typing.Optional[Address] = None, dest: typing.Optional[Address] = None,
                 value: int = 0, ihr_fee: int = 0, fwd_fee: int = 0, created_lt: int = 0, created_at: int = 0):
        self.ihr_disabled = ihr_disabled
        self.bounce = bounce
        self.bounced = bounced
        self.src = src
        self.dest = dest
        self.value = value
        self.ihr_fee = ihr_fee
        self.fwd_fee = fwd_fee
        self.created_lt = created_lt
        self.created_at = created_at

    def serialize(self) -> Cell:
        builder = Builder()
        builder.store_uint(0, 1)  # $0
        return builder\
            .store_bool(self.ihr_disabled)\
            .store_bool(self.bounce)\
            .store_bool(self.bounced)\
            .store_address(self.src)\
            .store_address(self.dest)\
            .store_coins(self.value)\
            .store_bit(0)\
            .store_coins(self.ihr_fee)\
            .store_coins(self.fwd_fee)\
            .store_uint(self.created_lt, 64)\
            .store_uint(self.created_at, 32)\
            .end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        tag = cell_slice.load_bit()
        if tag:
            raise MessageError(f'InternalMsgInfo deserialization error unknown prefix tag: {tag}')
        ihr_disabled = cell_slice.load_bool()
        bounce = cell_slice.load_bool()
        bounced = cell_slice.load_bool()
        src = cell_slice.load_address()
        dest = cell_slice.load_address()
        value = cell_slice.load_coins()
        if cell_slice.load_bit():
            raise MessageError('extra currencies are not supported')
        return cls(
            ihr_disabled=ihr_disabled,
            bounce=bounce,
            bounced=bounced,
            src=src,
            dest=dest,
            value=value,
            ihr_fee=cell_slice.load_coins(),
            fwd_fee=cell_slice.load_coins(),
            created_lt=cell_slice.load_uint(64),
            created_at=cell_slice.load_uint(32)
        )


class ExternalMsgInfo(CommonMsgInfo):
    """
    ext_in_msg_info$10 src:MsgAddressExt dest:MsgAddressInt
    import_fee:Grams = CommonMsgInfo;
    """
    type_ = MessageType.EXTERNAL_IN

    def __init__(self, src: typing.Optional[ExternalAddress] = None, dest: typing.Optional[Address] = None,
                 import_fee: int = 0):
        self.src = src
        self.dest = dest
        self.import_fee = import_fee

    def serialize(self) -> Cell:
        builder = Builder()
        builder.store_uint(2, 2)  # $10
        return builder\
            .store_external_address(self.src)\
            .store_address(self.dest)\
            .store_coins(self.import_fee)\
            .end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        tag = cell_slice.load_bits(2).to01()
        if tag != '10':
            raise MessageError(f'ExternalMsgInfo deserialization error unknown prefix tag: {tag}')
        return cls(
            src=cell_slice.load_external_address(),
            dest=cell_slice.load_address(),
            import_fee=cell_slice.load_coins()
        )


class ExternalOutMsgInfo(CommonMsgInfo):
    """
    ext_out_msg_info$11 src:MsgAddressInt dest:MsgAddressExt
    created_lt:uint64 created_at:uint32 = CommonMsgInfo;
    """
    type_ = MessageType.EXTERNAL_OUT

    def __init__(self, src: typing.Optional[Address] = None, dest: typing.Optional[ExternalAddress] = None,
                 created_lt: int = 0, created_at: int = 0):
        self.src = src
        self.dest = dest
        self.created_lt = created_lt
        self.created_at = created_at

    def serialize(self) -> Cell:
        builder = Builder()
        builder.store_uint(3, 2)  # $11
        return builder\
            .store_address(self.src)\
            .store_external_address(self.dest)\
            .store_uint(self.created_lt, 64)\
            .store_uint(self.created_at, 32)\
            .end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        tag = cell_slice.load_bits(2).to01()
        if tag != '11':
            raise MessageError(f'ExternalOutMsgInfo deserialization error unknown prefix tag: {tag}')
        return cls(
            src=cell_slice.load_address(),
            dest=cell_slice.load_external_address(),
            created_lt=cell_slice.load_uint(64),
            created_at=cell_slice.load_uint(32)
        )


class MessageAny(TlbScheme):
    """
    message$_ {X:Type} info:CommonMsgInfo
    init:(Maybe (Either StateInit ^StateInit))
    body:(Either X ^X) = Message X;
    """
    def __init__(self, info: typing.Union[InternalMsgInfo, ExternalMsgInfo, ExternalOutMsgInfo],
                 init: typing.Optional[StateInit] = None, body: typing.Optional[Cell] = None):
        self.info = info
        self.init = init
        self.body = body if body is not None else Cell.empty()

    @property
    def type_(self) -> MessageType:
        return self.info.type_

    @property
    def is_internal(self) -> bool:
        return self.info.type_ == MessageType.INTERNAL

    @property
    def is_external_in(self) -> bool:
        return self.info.type_ == MessageType.EXTERNAL_IN

    @property
    def is_external_out(self) -> bool:
        return self.info.type_ == MessageType.EXTERNAL_OUT

    @property
    def src(self) -> typing.Union[Address, ExternalAddress, None]:
        return self.info.src

    @property
    def dest(self) -> typing.Union[Address, ExternalAddress, None]:
        return self.info.dest

    @property
    def hash(self) -> bytes:
        return self.serialize().hash

    def serialize(self) -> Cell:
        builder = Builder().store_cell(self.info.serialize())
        if self.init:
            builder.store_bit(1)  # maybe true
            builder.store_bit(1)  # Either right
            builder.store_ref(self.init.serialize())
        else:
            builder.store_bit(0)  # maybe false
        builder.store_bit(1)  # Either right
        builder.store_ref(self.body)
        return builder.end_cell()

    @classmethod
    def deserialize(cls, cell_slice: Slice):
        info = CommonMsgInfo.deserialize(cell_slice)
        init = None
        maybe = cell_slice.load_bit()
        if maybe:
            either = cell_slice.load_bit()
            if either:  # right
                init = StateInit.deserialize(cell_slice.load_ref().begin_parse())
            else:  # left
                init = StateInit.deserialize(cell_slice)
        either = cell_slice.load_bit()
        if either:  # right
            body = cell_slice.load_ref()
        else:  # left
            body = cell_slice.to_cell()
        return cls(info, init, body)

    @classmethod
    def from_boc(cls, data: typing.Union[bytes, str]) -> "MessageAny":
        return cls.deserialize(Slice.one_from_boc(data))

    def to_boc(self) -> bytes:
        return self.serialize().to_boc()
