"""
Tests for file persistence, encryption and event dispatch.
"""

import os

import pytest

from kstor.engine.aes_cipher import IV_LEN, AESCipher, derive_key
from kstor.engine.events import EventEmitter
from kstor.engine.file_persistence import FilePersistence
from kstor.models.exceptions import DecryptError


class TestFilePersistence:
    """Tests for FilePersistence."""

    def test_save_and_load(self, temp_dir):
        """Test bytes written are read back unchanged."""
        persistence = FilePersistence(os.path.join(temp_dir, "config.json"))
        persistence.save(b'{"a": 1}')
        assert persistence.load() == b'{"a": 1}'

    def test_no_temp_file_after_save(self, temp_dir):
        """Test the temp file is renamed over the target."""
        path = os.path.join(temp_dir, "config.json")
        persistence = FilePersistence(path)
        persistence.save(b"{}")
        assert os.path.exists(path)
        assert not os.path.exists(path + ".tmp")

    def test_save_replaces_contents(self, temp_dir):
        """Test a second save fully replaces the first."""
        persistence = FilePersistence(os.path.join(temp_dir, "config.json"))
        persistence.save(b"first, and longer")
        persistence.save(b"second")
        assert persistence.load() == b"second"

    def test_load_missing(self, temp_dir):
        """Test loading a missing file raises FileNotFoundError."""
        persistence = FilePersistence(os.path.join(temp_dir, "missing.json"))
        with pytest.raises(FileNotFoundError):
            persistence.load()

    def test_ensure_dir_creates_parents(self, temp_dir):
        """Test missing parent directories are created."""
        path = os.path.join(temp_dir, "a", "b", "config.json")
        persistence = FilePersistence(path)
        persistence.ensure_dir()
        assert os.path.isdir(os.path.dirname(path))

        persistence.save(b"{}")
        assert persistence.load() == b"{}"

    def test_ensure_dir_removes_orphan_temp_file(self, temp_dir):
        """Test a temp file left by an interrupted save is cleaned up."""
        path = os.path.join(temp_dir, "config.json")
        with open(path + ".tmp", "wb") as f:
            f.write(b"partial")

        FilePersistence(path).ensure_dir()
        assert not os.path.exists(path + ".tmp")

    def test_empty_path_rejected(self):
        """Test an empty path is rejected."""
        with pytest.raises(ValueError):
            FilePersistence("")


class TestAESCipher:
    """Tests for AESCipher."""

    PLAINTEXT = '{\n\t"name": "kstor",\n\t"description": "File-backed store"\n}'

    def test_round_trip(self):
        """Test decrypt(encrypt(x)) returns x."""
        cipher = AESCipher()
        payload = cipher.encrypt(self.PLAINTEXT, "secret")
        assert cipher.decrypt(payload, "secret") == self.PLAINTEXT

    def test_payload_format(self):
        """Test the payload is <ivHex>:<cipherHex>."""
        payload = AESCipher().encrypt(self.PLAINTEXT, "secret")
        iv_hex, body_hex = payload.decode("ascii").split(":")
        assert len(iv_hex) == IV_LEN * 2
        assert len(bytes.fromhex(body_hex)) % 16 == 0

    def test_fresh_iv(self):
        """Test each call uses a new IV."""
        cipher = AESCipher()
        first = cipher.encrypt(self.PLAINTEXT, "secret")
        second = cipher.encrypt(self.PLAINTEXT, "secret")
        assert first.split(b":")[0] != second.split(b":")[0]

    def test_unicode(self):
        """Test non-ASCII text survives."""
        cipher = AESCipher()
        assert cipher.decrypt(cipher.encrypt("héllo ✓", "k"), "k") == "héllo ✓"

    def test_derive_key(self):
        """Test the AES key is a 32-byte digest."""
        assert len(derive_key("secret")) == 32
        assert derive_key("secret") != derive_key("other")

    def test_wrong_key(self):
        """Test a different key fails to decrypt."""
        cipher = AESCipher()
        payload = cipher.encrypt(self.PLAINTEXT, "secret")
        with pytest.raises(DecryptError):
            cipher.decrypt(payload, "other")

    @pytest.mark.parametrize(
        "payload",
        [
            b'{"plain": "json"}',
            b"zz:00",
            b"00ff:" + b"00" * 16,
        ],
    )
    def test_malformed_payload(self, payload):
        """Test payloads outside the envelope format are rejected."""
        with pytest.raises(DecryptError):
            AESCipher().decrypt(payload, "secret")


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_emit(self):
        """Test listeners receive the emitted arguments."""
        emitter = EventEmitter()
        calls = []
        emitter.on("changed", lambda *args: calls.append(args))

        assert emitter.emit("changed", 1, 2)
        assert calls == [(1, 2)]

    def test_emit_without_listeners(self):
        """Test emit reports when nobody was listening."""
        assert not EventEmitter().emit("changed", 1)

    def test_once(self):
        """Test a once listener is removed after the first call."""
        emitter = EventEmitter()
        calls = []
        emitter.once("loaded", calls.append)

        emitter.emit("loaded", "a")
        emitter.emit("loaded", "b")

        assert calls == ["a"]
        assert not emitter.has_listener("loaded")

    def test_off(self):
        """Test removing one listener or all of them."""
        emitter = EventEmitter()
        first = emitter.on("changed", lambda: None)
        emitter.on("changed", lambda: None)

        emitter.off("changed", first)
        assert len(emitter.listeners("changed")) == 1

        emitter.off("changed")
        assert not emitter.has_listener("changed")

    def test_off_once_listener(self):
        """Test a once listener can be removed by the original function."""
        emitter = EventEmitter()
        calls = []

        def listener(value):
            calls.append(value)

        emitter.once("loaded", listener)
        emitter.off("loaded", listener)

        emitter.emit("loaded", "a")
        assert calls == []

    def test_listener_error_propagates(self):
        """Test a failing listener surfaces to the emitter's caller."""
        emitter = EventEmitter()

        def boom(*args):
            raise RuntimeError("listener failed")

        emitter.on("changed", boom)
        with pytest.raises(RuntimeError):
            emitter.emit("changed")
