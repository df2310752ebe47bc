"""
Cipher protocol for encrypting the serialized document at rest.
"""

from abc import ABC, abstractmethod


class Cipher(ABC):
    """Symmetric cipher keyed by a user supplied string."""

    @abstractmethod
    def encrypt(self, plaintext: str, key: str) -> bytes:
        """
        Encrypt `plaintext` with `key`.

        Returns:
            The encrypted payload, ready to be persisted.
        """
        pass

    @abstractmethod
    def decrypt(self, ciphertext: bytes, key: str) -> str:
        """
        Decrypt a payload produced by encrypt().

        Raises:
            DecryptError: If the payload is malformed or the key is wrong.
        """
        pass
