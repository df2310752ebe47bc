"""
AESCipher - AES-256-CBC encryption of the serialized document.

Payload format: `<ivHex>:<cipherHex>` (ASCII), where the IV is 16 fresh
random bytes per call and the AES key is the SHA-256 digest of the
configured key string. Plaintext is PKCS7 padded.
"""

import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher as _CryptoCipher
from cryptography.hazmat.primitives.ciphers import algorithms, modes

from kstor.interfaces.cipher import Cipher
from kstor.models.exceptions import DecryptError

IV_LEN = 16
SEPARATOR = b":"


def derive_key(key: str) -> bytes:
    """SHA-256 digest of `key`, used as the 256-bit AES key."""
    return hashlib.sha256(key.encode("utf-8")).digest()


class AESCipher(Cipher):
    """Cipher implementation using the `cryptography` package."""

    def encrypt(self, plaintext: str, key: str) -> bytes:
        iv = os.urandom(IV_LEN)
        encryptor = _CryptoCipher(algorithms.AES(derive_key(key)), modes.CBC(iv)).encryptor()

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return iv.hex().encode("ascii") + SEPARATOR + ciphertext.hex().encode("ascii")

    def decrypt(self, ciphertext: bytes, key: str) -> str:
        iv_hex, sep, body_hex = ciphertext.strip().partition(SEPARATOR)
        if not sep:
            raise DecryptError("Payload is missing the IV separator")

        try:
            iv = bytes.fromhex(iv_hex.decode("ascii"))
            body = bytes.fromhex(body_hex.decode("ascii"))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecryptError(f"Payload is not hex encoded: {e}") from e

        if len(iv) != IV_LEN:
            raise DecryptError(f"Expected a {IV_LEN} byte IV, got {len(iv)} bytes")

        try:
            decryptor = _CryptoCipher(algorithms.AES(derive_key(key)), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            # Bad padding or garbage plaintext: almost always a wrong key
            raise DecryptError(f"Decryption failed: {e}") from e
