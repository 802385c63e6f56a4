from .errors import AbiError, AbiTypeError, AbiIdMismatchError, AbiValueError
from .types import AbiType, ParamType, AbiParam, parse_type
from .codec import AbiCodec
from .function import FunctionAbi, FunctionAbiWithArgs, FunctionCall, UnsignedBody, compute_id, parse_id
from .event import EventAbi
from .contract import ContractAbi
