"""
Custom exceptions for the key-value store.
"""

from typing import Any


class KStorError(Exception):
    """Base class for all store errors."""


class InvalidPathError(KStorError, ValueError):
    """
    Raised when a property path string cannot be parsed.

    Not recoverable: the caller supplied a malformed key.
    """

    def __init__(self, path: str, reason: str):
        """
        Initialize path error.

        Args:
            path: The offending path string.
            reason: Short description of what is wrong with it.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path {path!r}: {reason}")


class MalformedQueryError(KStorError, ValueError):
    """Raised when a query expression does not have the expected shape."""

    def __init__(self, message: str, expression: Any = None):
        """
        Initialize query error.

        Args:
            message: What is wrong with the expression.
            expression: The offending (sub-)expression.
        """
        self.expression = expression
        super().__init__(f"Malformed query: {message}")

    @classmethod
    def unexpected_type(cls, expected: str, expression: Any) -> "MalformedQueryError":
        return cls(
            f"expected {expected} but got type {type(expression).__name__}", expression
        )


class DecryptError(KStorError):
    """
    Raised by a cipher when ciphertext cannot be decrypted.

    Covers a wrong key, a truncated payload and a payload that is not in
    the `<ivHex>:<cipherHex>` envelope.
    """


class DocumentDecodeError(KStorError):
    """
    Raised in strict mode when the persisted document cannot be decoded.

    In the default (lenient) mode the same failure degrades to an empty
    document and is only logged.
    """

    def __init__(self, path: str, cause: Exception):
        """
        Initialize decode error.

        Args:
            path: File path of the document that failed to decode.
            cause: The underlying decryption or JSON error.
        """
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to decode document at {path}: {cause}")


class StoreClosedError(KStorError):
    """Raised when an operation is attempted on a closed store."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Store at {path} is closed")
