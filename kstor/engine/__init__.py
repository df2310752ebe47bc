"""
Store engine: path access, query evaluation and the document store.
"""

from kstor.engine.aes_cipher import AESCipher
from kstor.engine.events import EventEmitter
from kstor.engine.file_persistence import FilePersistence
from kstor.engine.store import KStor

__all__ = ["AESCipher", "EventEmitter", "FilePersistence", "KStor"]
