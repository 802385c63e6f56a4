from .boc import Cell, Slice, Builder, Address, AddressError, ExternalAddress, Boc, BocError, CellError, begin_cell
from .tlb import MessageType, StateInit, InternalMsgInfo, ExternalMsgInfo, ExternalOutMsgInfo, MessageAny
from .abi import AbiCodec, AbiParam, AbiType, ContractAbi, FunctionAbi, EventAbi, UnsignedBody
from .crypto.signature import Signer
from .utils import to_nano, from_nano
