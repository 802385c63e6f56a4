import base64
import binascii
import typing

from bitarray import bitarray, frozenbitarray

from ..crypto.crc import crc16
from .cell import Cell


class AddressError(BaseException):
    pass


class Address:

    def __init__(self, address: typing.Union[str, tuple, "Address"]):
        """
        Address('0:' + '00' * 32)                       # raw form
        Address('EQBvW8Z5huBkMJYdnfAEM5JqTNkuWX3diqYENkWsIL0XggGG')  # user-friendly form
        Address((-1, b'\x11\x01\xff...'))               # workchain and 32 bytes
        """
        self.wc: int = None
        self.hash_part: bytes = None
        self.is_bounceable = False
        self.is_test_only = False

        if isinstance(address, tuple):
            self.wc, self.hash_part = address
            if not isinstance(self.hash_part, (bytes, bytearray)):
                raise AddressError('expected bytes address hash part')
            self.hash_part = bytes(self.hash_part)
        elif isinstance(address, self.__class__):
            self.wc = address.wc
            self.hash_part = address.hash_part
            self.is_bounceable = address.is_bounceable
            self.is_test_only = address.is_test_only
        elif not isinstance(address, str) or not (self.is_hex(address) or self.is_b64(address)):
            raise AddressError(f'unknown address type provided: {address!r}')
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.wc, int) or not -128 <= self.wc <= 127:
            raise AddressError(f'workchain must be in range -128..127, got {self.wc}')
        if len(self.hash_part) != 32:
            raise AddressError(f'address hash part must be exactly 32 bytes, got {len(self.hash_part)}')

    def is_hex(self, addr: str) -> bool:
        try:
            wc, hash_part = addr.split(':')
            if len(hash_part) != 64:
                return False
            self.wc = int(wc)
            self.hash_part = bytes.fromhex(hash_part)
            return True
        except ValueError:
            return False

    def is_b64(self, addr: str) -> bool:
        try:
            decoded = base64.urlsafe_b64decode(addr.replace('+', '-').replace('/', '_'))
        except (binascii.Error, ValueError):
            return False
        if len(decoded) != 36:
            return False
        if decoded[34:] != crc16(decoded[:34]):
            raise AddressError('the address is invalid: crc16 mismatch')
        tag = decoded[0]
        if tag & 0x80:  # test flag
            self.is_test_only = True
            tag ^= 0x80
        if tag not in (0x11, 0x51):
            raise AddressError(f'unknown user-friendly address tag: {hex(tag)}')
        self.is_bounceable = tag == 0x11
        self.wc = int.from_bytes(decoded[1:2], 'big', signed=True)
        self.hash_part = decoded[2:34]
        return True

    def to_str(self, is_user_friendly=True, is_url_safe=True, is_bounceable=True, is_test_only=False) -> str:
        if not is_user_friendly:
            return f'{self.wc}:{self.hash_part.hex()}'

        tag = 0x11  # bounceable tag

        if not is_bounceable:
            tag = 0x51
        if is_test_only:
            tag |= 0x80

        result = tag.to_bytes(1, 'big') + self.wc.to_bytes(1, 'big', signed=True) + self.hash_part

        result += crc16(result)

        if is_url_safe:
            result = base64.urlsafe_b64encode(result).decode()
        else:
            result = base64.b64encode(result).decode()

        return result

    def to_cell(self) -> Cell:
        from .builder import Builder
        return Builder().store_address(self).end_cell()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.wc == other.wc and self.hash_part == other.hash_part

    def __hash__(self) -> int:
        return hash((self.wc, self.hash_part))

    def __str__(self) -> str:
        return self.to_str(is_user_friendly=False)

    def __repr__(self) -> str:
        return f'Address<{self.to_str(is_user_friendly=False)}>'


class ExternalAddress:
    """
    addr_extern$01 len:(## 9) external_address:(bits len) = MsgAddressExt;

    Source of inbound external messages and destination of outbound ones (events).
    """

    MAX_LENGTH = 511  # ## 9

    def __init__(self, bits: typing.Union[str, bytes, typing.Iterable[int]] = ''):
        if isinstance(bits, (bytes, bytearray)):
            buffer = bitarray()
            buffer.frombytes(bytes(bits))
            bits = buffer
        value = frozenbitarray(bits)
        if len(value) > self.MAX_LENGTH:
            raise AddressError(f'external address can not be longer than {self.MAX_LENGTH} bits, got {len(value)}')
        self.bits = value

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExternalAddress):
            return NotImplemented
        return self.bits == other.bits

    def __hash__(self) -> int:
        return hash(self.bits)

    def __repr__(self) -> str:
        return f'ExternalAddress<{len(self.bits)}:{self.bits.to01()}>'
