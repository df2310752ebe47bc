"""
KStor - file-backed JSON document store addressed by property paths.
"""

import copy
import json
import logging
from collections.abc import Iterator
from datetime import date, datetime
from typing import Any

from kstor.engine import accessor, query_engine
from kstor.engine.aes_cipher import AESCipher
from kstor.engine.events import EventEmitter, Listener
from kstor.engine.file_persistence import FilePersistence
from kstor.interfaces.cipher import Cipher
from kstor.interfaces.persistence import Persistence
from kstor.models.exceptions import DecryptError, DocumentDecodeError, StoreClosedError
from kstor.models.item import StoreItem
from kstor.models.options import KStorOptions, resolve_store_path
from kstor.models.path import Path

ALL_ROWS = "*"

JSON_INDENT = "\t"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _access_denied(err: PermissionError) -> PermissionError:
    """Copy of `err` with the message annotated."""
    if err.errno is None:
        return PermissionError(f"{err} (ACCESS DENIED)")
    return PermissionError(err.errno, f"{err.strerror} (ACCESS DENIED)", err.filename)


class KStor:
    """
    Key-value store over a single JSON document.

    Provides:
    - has/get/set/delete(key): access values by dotted path, e.g. `blogs.nba.teams`
      or `blogs.nfl.days[0]`
    - query(key, query): filter the rows of a collection
    - snapshot(), iterate(), items(), size: whole-store views
    - clear(), defaults(initial), close()

    Architecture:
    - The whole document is cached in memory.
    - Every write replaces the cache, persists the full document, then marks
      the cache dirty so the next read reloads it from disk.
    - An entrypoint option makes a subtree the visible root; keys are
      resolved below it while the rest of the document is preserved.

    Events (listener arguments in parentheses):
    - loaded(new_document, old_document)
    - persisted(new_document, old_document)
    - changed(new_value, old_value), plus `<key>(new_value, old_value)`
      when a listener is registered under the exact key passed to set()
    - deleted(old_value)
    - cleared(empty_document)

    Not thread-safe: callers sharing an instance must serialize access.
    """

    def __init__(
        self,
        options: KStorOptions | dict | str | None = None,
        defaults: dict | None = None,
        *,
        persistence: Persistence | None = None,
        cipher: Cipher | None = None,
        emitter: EventEmitter | None = None,
        home: str | None = None,
        cwd: str | None = None,
    ) -> None:
        """
        Initialize the store and apply `defaults`.

        Args:
            options: KStorOptions, a dict of option fields, or a store name.
            defaults: Values used for top-level keys missing on disk.
            persistence: Storage backend; a FilePersistence at the resolved
                store path if None.
            cipher: Cipher used when an encryption key is set; AESCipher if None.
            emitter: Event hub; a private EventEmitter if None.
            home: Home directory for path resolution (defaults to the user's).
            cwd: Working directory for app name discovery (defaults to os.getcwd()).
        """
        self.options = KStorOptions.coerce(options)
        self._entrypoint = Path.parse(self.options.entrypoint) if self.options.entrypoint else None

        if persistence is None:
            persistence = FilePersistence(resolve_store_path(self.options, home=home, cwd=cwd))
        self._persistence = persistence
        self.path = persistence.path

        if cipher is None and self.options.encryption_key:
            cipher = AESCipher()
        self._cipher = cipher

        self._events = emitter or EventEmitter()

        self._loaded: bool = False  # loaded from disk at least once
        self._dirty: bool = False  # cache must be reloaded before next read
        self._writing: bool = False  # persist() in progress
        self._loaded_defaults: bool = False  # defaults() has run
        self._closed: bool = False
        self._cache: dict = {}

        # Most recent error that made a load fall back to an empty document
        self.last_decode_error: Exception | None = None

        self.defaults(defaults)

    def __repr__(self) -> str:
        return f"KStor(path={self.path!r}, entrypoint={self.options.entrypoint!r})"

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @property
    def events(self) -> EventEmitter:
        return self._events

    def on(self, event: str, listener: Listener) -> Listener:
        return self._events.on(event, listener)

    def once(self, event: str, listener: Listener) -> Listener:
        return self._events.once(event, listener)

    def off(self, event: str, listener: Listener | None = None) -> None:
        self._events.off(event, listener)

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    def load_if_stale(self) -> dict:
        """
        Return the current document, reloading it from disk if stale.

        A missing file yields an empty document. So does a file that cannot
        be decrypted or parsed, unless the store is strict.

        Raises:
            StoreClosedError: If the store has been closed.
            DocumentDecodeError: In strict mode, if the file cannot be decoded.
            PermissionError: If the file cannot be read (message annotated).
            OSError: On any other read failure.
        """
        self._ensure_open()

        if not self._dirty and self._loaded:
            return self._cache

        old_value = self._cache

        try:
            raw = self._persistence.load()
        except FileNotFoundError:
            self._dirty = True
            logging.debug(f"No document at {self.path}, starting empty")
            self._persistence.ensure_dir()
            return {}
        except PermissionError as e:
            self._dirty = True
            raise _access_denied(e) from e
        except OSError:
            self._dirty = True
            raise

        try:
            document = self._decode(raw)
        except (DecryptError, ValueError) as e:
            self._dirty = True
            self.last_decode_error = e
            if self.options.strict:
                raise DocumentDecodeError(self.path, e) from e
            logging.warning(
                f"Could not decode document at {self.path}, using an empty document: {e}"
            )
            return {}

        if self._loaded_defaults:
            document = self._transform(document)

        self._cache = document
        self._dirty = False
        self._loaded = True
        self._events.emit("loaded", document, old_value)

        return document

    def persist(self, document: dict | None) -> None:
        """
        Serialize and save `document`, replacing the cache.

        Raises:
            StoreClosedError: If the store has been closed.
            PermissionError: If the file cannot be written (message annotated).
            OSError: On any other write failure.
            TypeError: If the document holds values JSON cannot represent.
        """
        self._ensure_open()

        if document is None:
            document = {}
        old_value = self._cache

        self._writing = True
        try:
            self._persistence.ensure_dir()
            self._persistence.save(self._encode(document))
        except PermissionError as e:
            raise _access_denied(e) from e
        finally:
            self._dirty = True
            self._writing = False

        self._cache = document
        logging.debug(f"Persisted document to {self.path}")
        self._events.emit("persisted", document, old_value)

    def _decode(self, raw: bytes) -> dict:
        if self.options.encryption_key:
            text = self._cipher.decrypt(raw, self.options.encryption_key)
        else:
            text = raw.decode("utf-8")

        document = json.loads(text)
        if not isinstance(document, dict):
            raise ValueError(
                f"Expected a JSON object at the top level, got {type(document).__name__}"
            )
        return document

    def _encode(self, document: dict) -> bytes:
        text = json.dumps(document, indent=JSON_INDENT, ensure_ascii=False, default=_json_default)
        if self.options.encryption_key:
            return self._cipher.encrypt(text, self.options.encryption_key)
        return text.encode("utf-8")

    def _transform(self, document: dict) -> dict:
        """Run the transform option over each top-level (or entrypoint) field."""
        transform = self.options.transform
        if transform is None:
            return document

        collection = self._scoped(document)
        if not isinstance(collection, dict):
            return document

        for key in list(collection):
            collection[key] = transform(key, collection[key])
        return document

    # ------------------------------------------------------------------
    # Key resolution
    # ------------------------------------------------------------------

    def _resolve(self, key: str | Path) -> Path:
        """Parse `key` and place it under the entrypoint, if any."""
        if self._entrypoint is None:
            return Path.parse(key)
        return self._entrypoint.join(key)

    def _scoped(self, document: dict) -> Any:
        if self._entrypoint is None:
            return document
        return accessor.get(document, self._entrypoint)

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError(self.path)

    # ------------------------------------------------------------------
    # Store API
    # ------------------------------------------------------------------

    def defaults(self, initial: dict | None = None) -> None:
        """
        Merge `initial` under the stored document and persist the result.

        Top-level keys already on disk win over the supplied ones. With an
        entrypoint, `initial` may be given either relative to the entrypoint
        or as a full document that already contains it.
        """
        document = self.load_if_stale()

        data = copy.deepcopy(initial) if initial else {}
        if not isinstance(data, dict):
            raise ValueError(f"defaults must be a dict, got {type(data).__name__}")

        if self._entrypoint is not None and not accessor.has(data, self._entrypoint):
            nested: dict = {}
            accessor.set(nested, self._entrypoint, data)
            data = nested

        merged = {**data, **document}
        self.persist(self._transform(merged))
        self._loaded_defaults = True

    def has(self, key: str) -> bool:
        return accessor.has(self.load_if_stale(), self._resolve(key))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get the value at `key`.

        Args:
            key: Dotted/bracketed path relative to the store root.
            default: Returned if nothing is stored at `key`.
        """
        return accessor.get(self.load_if_stale(), self._resolve(key), default)

    def set(self, key: str | dict, value: Any = None) -> None:
        """
        Set a value, or several values at once.

        Args:
            key: A path, or a dict of path -> value applied in order.
            value: The value to set when `key` is a path.

        The document is persisted once, after all values are applied.
        """
        pairs = list(key.items()) if isinstance(key, dict) else [(key, value)]
        # Parse every path before touching the document
        resolved = [(k, self._resolve(k), v) for k, v in pairs]

        document = copy.deepcopy(self.load_if_stale())
        for original_key, path, new_value in resolved:
            old_value = accessor.get(document, path)
            accessor.set(document, path, new_value)

            if self._events.has_listener(str(original_key)):
                self._events.emit(str(original_key), new_value, old_value)
            self._events.emit("changed", new_value, old_value)

        self.persist(document)

    def delete(self, key: str) -> None:
        """Remove the value at `key`. Missing keys are ignored."""
        path = self._resolve(key)
        document = copy.deepcopy(self.load_if_stale())

        old_value = accessor.get(document, path)
        accessor.delete(document, path)

        self.persist(document)
        self._events.emit("deleted", old_value)

    def clear(self) -> None:
        """Replace the whole document, including data outside the entrypoint, with {}."""
        empty: dict = {}
        self.persist(empty)
        self._events.emit("cleared", empty)

    def snapshot(self) -> dict:
        """Deep copy of the whole document."""
        return copy.deepcopy(self.load_if_stale())

    def iterate(self) -> Iterator[StoreItem]:
        """
        Yield the top-level (or entrypoint-level) entries.

        The document is read when iteration starts; each call starts over.
        """
        collection = self._scoped(self.load_if_stale())
        if not isinstance(collection, dict):
            return
        for key, value in list(collection.items()):
            yield StoreItem(key, value)

    def items(self) -> list[StoreItem]:
        return list(self.iterate())

    @property
    def size(self) -> int:
        return len(self.items())

    def query(
        self,
        key: str,
        query: dict | None = None,
        skip: int | None = None,
        take: int | None = None,
    ) -> dict:
        """
        Filter the rows of the collection stored at `key`.

        Example:
            store.query("users", {"age": {"$gte": 21}, "active": {"$eq": True}})

        Args:
            key: Path of the collection, or "*" for the store root.
            query: Query expression; None returns every row.
            skip: Number of leading rows to pass over.
            take: Maximum number of rows to return.

        Returns:
            Copies of the matching rows keyed as in the collection. Empty if
            `key` does not hold a dict or list.

        Raises:
            MalformedQueryError: If `query` is not a valid expression.
        """
        document = self.load_if_stale()
        if key == ALL_ROWS:
            collection = self._scoped(document)
        else:
            collection = accessor.get(document, self._resolve(key))

        return copy.deepcopy(query_engine.query(collection, query, skip, take))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """
        Release the store. Further operations raise StoreClosedError.

        Writes are synchronous, so nothing is pending at this point.
        """
        if self._closed:
            return
        self._closed = True
        self._events.remove_all_listeners()
        self._persistence.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "KStor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
