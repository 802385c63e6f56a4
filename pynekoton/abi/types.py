import enum
import re
import typing

from .errors import AbiTypeError


MAX_INT_BITS = 256

INT_RE = re.compile(r'^(u?int)(\d+)$')
FIXED_BYTES_RE = re.compile(r'^(?:fixed)?bytes(\d+)$')


class AbiType(enum.Enum):
    UINT = 'uint'
    INT = 'int'
    BOOL = 'bool'
    BYTES = 'bytes'
    BYTES_FIXED = 'fixedbytes'
    STRING = 'string'
    ADDRESS = 'address'
    CELL = 'cell'
    GRAMS = 'grams'
    TUPLE = 'tuple'
    ARRAY = 'array'
    OPTIONAL = 'optional'
    MAP = 'map'


SIMPLE_TYPES = {
    'bool': AbiType.BOOL,
    'bytes': AbiType.BYTES,
    'string': AbiType.STRING,
    'address': AbiType.ADDRESS,
    'cell': AbiType.CELL,
    'grams': AbiType.GRAMS,
    'tokens': AbiType.GRAMS,
}


class ParamType:
    """
    Parsed ABI type.
    size: bit size for UINT / INT, byte size for BYTES_FIXED
    args: item type for ARRAY / OPTIONAL, key and value types for MAP
    components: fields of a TUPLE
    """

    def __init__(self, kind: AbiType, size: typing.Optional[int] = None,
                 args: typing.Tuple["ParamType", ...] = (),
                 components: typing.Optional[typing.List["AbiParam"]] = None):
        self.kind = kind
        self.size = size
        self.args = args
        self.components = components

    @property
    def item(self) -> "ParamType":
        return self.args[0]

    @property
    def key(self) -> "ParamType":
        return self.args[0]

    @property
    def value(self) -> "ParamType":
        return self.args[1]

    def __str__(self) -> str:
        if self.kind in (AbiType.UINT, AbiType.INT):
            return f'{self.kind.value}{self.size}'
        if self.kind == AbiType.BYTES_FIXED:
            return f'fixedbytes{self.size}'
        if self.kind == AbiType.ARRAY:
            return f'{self.item}[]'
        if self.kind == AbiType.OPTIONAL:
            return f'optional({self.item})'
        if self.kind == AbiType.MAP:
            return f'map({self.key},{self.value})'
        return self.kind.value

    def __repr__(self) -> str:
        return f'<ParamType {self}>'


def split_type_args(args: str) -> typing.List[str]:
    """
    splits 'uint8,map(uint8,bool)' by top level commas
    """
    result = []
    depth = 0
    start = 0
    for i, char in enumerate(args):
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth < 0:
                raise AbiTypeError(f'unbalanced parentheses in {args!r}')
        elif char == ',' and depth == 0:
            result.append(args[start:i].strip())
            start = i + 1
    if depth != 0:
        raise AbiTypeError(f'unbalanced parentheses in {args!r}')
    result.append(args[start:].strip())
    return result


def parse_type(type_: str, components: typing.Optional[typing.List["AbiParam"]] = None) -> ParamType:
    """
    :param type_: type string, e.g. 'uint128', 'tuple[]', 'map(uint256,address)'
    :param components: fields of the innermost tuple
    """
    if not isinstance(type_, str):
        raise AbiTypeError(f'type must be str, got {type(type_).__name__}')
    type_ = type_.strip()

    if type_.endswith('[]'):
        return ParamType(AbiType.ARRAY, args=(parse_type(type_[:-2], components),))

    if type_.startswith('optional(') and type_.endswith(')'):
        return ParamType(AbiType.OPTIONAL, args=(parse_type(type_[len('optional('):-1], components),))

    if type_.startswith('map(') and type_.endswith(')'):
        args = split_type_args(type_[len('map('):-1])
        if len(args) != 2:
            raise AbiTypeError(f'map type must have key and value types: {type_!r}')
        return ParamType(AbiType.MAP, args=tuple(parse_type(arg, components) for arg in args))

    if type_ == 'tuple':
        if not components:
            raise AbiTypeError('tuple type requires at least one component')
        return ParamType(AbiType.TUPLE, components=components)

    if type_ in SIMPLE_TYPES:
        return ParamType(SIMPLE_TYPES[type_])

    match = INT_RE.match(type_)
    if match:
        size = int(match.group(2))
        if not 1 <= size <= MAX_INT_BITS:
            raise AbiTypeError(f'integer size must be in range 1..{MAX_INT_BITS}, got {type_!r}')
        return ParamType(AbiType.UINT if match.group(1) == 'uint' else AbiType.INT, size=size)

    match = FIXED_BYTES_RE.match(type_)
    if match:
        size = int(match.group(1))
        if size < 1:
            raise AbiTypeError(f'fixed bytes size must be positive, got {type_!r}')
        return ParamType(AbiType.BYTES_FIXED, size=size)

    raise AbiTypeError(f'unknown abi type: {type_!r}')


class AbiParam:
    """
    Named ABI parameter. The type string is parsed right away,
    so a malformed type fails here and not during encoding.
    """

    def __init__(self, name: str, type_: str, components: typing.Optional[typing.List[typing.Union["AbiParam", dict]]] = None):
        self.name = name
        self.type = type_
        self.components: typing.Optional[typing.List[AbiParam]] = None
        if components is not None:
            self.components = [c if isinstance(c, AbiParam) else AbiParam.from_dict(c) for c in components]
        self.param_type = parse_type(type_, self.components)

    @classmethod
    def from_dict(cls, data: dict) -> "AbiParam":
        if 'type' not in data:
            raise AbiTypeError(f'abi param has no type: {data}')
        return cls(data.get('name', ''), data['type'], data.get('components'))

    def to_dict(self) -> dict:
        result = {'name': self.name, 'type': self.type}
        if self.components is not None:
            result['components'] = [c.to_dict() for c in self.components]
        return result

    def __repr__(self) -> str:
        return f'<AbiParam {self.name}: {self.type}>'
