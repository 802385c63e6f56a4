from nacl.signing import SigningKey, VerifyKey, exc, SignedMessage
from nacl.bindings import crypto_sign, crypto_sign_BYTES
import nacl.encoding


def verify_sign(public_key: bytes, signed_message: bytes, signature: bytes) -> bool:
    key = VerifyKey(public_key)
    try:
        key.verify(signed_message, signature)
        return True
    except exc.BadSignatureError:
        return False


def sign_message(message: bytes,
                 signing_key: bytes,
                 encoder: nacl.encoding.Encoder = nacl.encoding.RawEncoder, ) -> bytes:
    """
    :param signing_key: 64 bytes: private key seed followed by the public key
    """
    raw_signed = crypto_sign(message, signing_key)

    signature = encoder.encode(raw_signed[:crypto_sign_BYTES])
    message = encoder.encode(raw_signed[crypto_sign_BYTES:])
    signed = encoder.encode(raw_signed)

    return SignedMessage._from_parts(signature, message, signed).signature


class Signer:
    """
    Ed25519 key pair used to sign external message bodies
    """

    def __init__(self, private_key: bytes) -> None:
        if len(private_key) not in (32, 64):
            raise ValueError(f'private key must be 32 or 64 bytes, got {len(private_key)}')
        self._seed = bytes(private_key[:32])
        self._public_key = bytes(SigningKey(self._seed).verify_key)

    @classmethod
    def generate(cls) -> "Signer":
        return cls(bytes(SigningKey.generate()))

    @property
    def public_key(self) -> bytes:
        return self._public_key

    def sign(self, data: bytes) -> bytes:
        return sign_message(data, self._seed + self._public_key)

    def verify(self, data: bytes, signature: bytes) -> bool:
        return verify_sign(self._public_key, data, signature)

    def __repr__(self) -> str:
        return f'<Signer {self._public_key.hex()}>'
