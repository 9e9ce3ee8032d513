"""Ed25519 keys, addresses and signatures in the encodings the Sui network expects."""
import base64
import hashlib
import base58
from bech32 import bech32_decode, bech32_encode, convertbits
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

ED25519_FLAG = 0x00
SECRET_KEY_PREFIX = "suiprivkey"
# intent scope TransactionData, version V0, app id Sui
TRANSACTION_INTENT = bytes([0, 0, 0])


class InvalidKey(ValueError):
    pass


def _blake2b256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def transaction_digest(tx_bytes: bytes) -> str:
    """Digest the network assigns to a transaction, known before submission."""
    return base58.b58encode(_blake2b256(b"TransactionData::" + tx_bytes)).decode("ascii")


def _decode_secret(secret: str) -> bytes:
    secret = (secret or "").strip()
    if not secret:
        raise InvalidKey("empty secret key")

    if secret.startswith(SECRET_KEY_PREFIX):
        hrp, data = bech32_decode(secret)
        if hrp != SECRET_KEY_PREFIX or data is None:
            raise InvalidKey("malformed suiprivkey")
        raw = bytes(convertbits(data, 5, 8, False) or b"")
        if len(raw) != 33 or raw[0] != ED25519_FLAG:
            raise InvalidKey("only Ed25519 secret keys are supported")
        return raw[1:]

    if secret.startswith("0x"):
        try:
            raw = bytes.fromhex(secret[2:])
        except ValueError as e:
            raise InvalidKey("malformed hex secret key") from e
        if len(raw) != 32:
            raise InvalidKey("hex secret key must be 32 bytes")
        return raw

    # keystore format: base64(flag || seed)
    try:
        raw = base64.b64decode(secret, validate=True)
    except ValueError as e:
        raise InvalidKey("unrecognised secret key encoding") from e
    if len(raw) == 33 and raw[0] == ED25519_FLAG:
        return raw[1:]
    if len(raw) == 32:
        return raw
    raise InvalidKey("unrecognised secret key encoding")


class Ed25519Keypair:
    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key

    @classmethod
    def generate(cls) -> "Ed25519Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret(cls, secret: str) -> "Ed25519Keypair":
        return cls(Ed25519PrivateKey.from_private_bytes(_decode_secret(secret)))

    @property
    def seed(self) -> bytes:
        return self._private_key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        )

    @property
    def public_key(self) -> bytes:
        return self._private_key.public_key().public_bytes(
            serialization.Encoding.Raw,
            serialization.PublicFormat.Raw,
        )

    @property
    def address(self) -> str:
        return "0x" + _blake2b256(bytes([ED25519_FLAG]) + self.public_key).hex()

    def secret_key(self) -> str:
        """Bech32 `suiprivkey1...` export of the seed."""
        data = convertbits(bytes([ED25519_FLAG]) + self.seed, 8, 5)
        return bech32_encode(SECRET_KEY_PREFIX, data)

    def sign_transaction(self, tx_bytes: bytes) -> str:
        digest = _blake2b256(TRANSACTION_INTENT + tx_bytes)
        signature = self._private_key.sign(digest)
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self.public_key).decode("ascii")
