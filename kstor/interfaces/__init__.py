"""
Abstract base classes for the store's external collaborators.
"""

from kstor.interfaces.cipher import Cipher
from kstor.interfaces.persistence import Persistence

__all__ = ["Cipher", "Persistence"]
