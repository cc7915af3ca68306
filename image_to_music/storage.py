"""Persistence of saved compositions and upload history.

State is kept as serialized JSON blobs in a small key-value store. Two
stores are provided: an in-memory one and a directory of JSON files. Lists
are rewritten wholesale on every change, wrapped in a versioned envelope::

    {"version": 1, "items": [...]}

A bare JSON list, the layout used before the envelope existed, is read as
version 0 and rewritten in the current layout on the next save.
"""

import json
import logging
import os
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from image_to_music.composition import validate_composition
from image_to_music.errors import StorageFailure
from image_to_music.models import (
    Composition,
    HistoryEntry,
    SavedComposition,
    StorageParams,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
COMPOSITIONS_KEY = "savedCompositions"
HISTORY_KEY = "musicGeneratorHistory"
DATE_FORMAT = "%m/%d/%Y, %I:%M:%S %p"

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_.-]+")


class KeyValueStore(Protocol):
    """Minimal interface for storing serialized blobs under string keys."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Key-value store held in a dictionary, for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStore:
    """Key-value store keeping each key in its own JSON file in a directory.

    Writes go to a temporary file that atomically replaces the previous
    one, so readers never see a partially written blob.

    Attributes:
        directory: Directory holding the files.
    """

    def __init__(self, directory: str | Path):
        """Open (and create if needed) the storage directory.

        Raises:
            StorageFailure: If the directory cannot be created.
        """
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot create storage directory: {e}") from e

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid storage key {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageFailure(f"Cannot read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        temp_path = path.with_suffix(".json.tmp")
        try:
            temp_path.write_text(value, encoding="utf-8")
            # Atomic rename (overwrites existing file if present)
            os.replace(temp_path, path)
        except OSError as e:
            raise StorageFailure(f"Cannot write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot delete {path}: {e}") from e


def create_store(params: StorageParams | None = None) -> FileStore:
    """Open the file store configured by ``params``."""
    params = params or StorageParams()
    return FileStore(params.resolve_directory())


def load_items(store: KeyValueStore, key: str) -> list[dict]:
    """Read a versioned list of items from the store.

    Returns:
        The stored items, or an empty list if the key is unset.

    Raises:
        StorageFailure: If the blob cannot be read, is not valid JSON, has
            an unknown layout, or was written by a newer schema version.
    """
    raw = store.get(key)
    if raw is None:
        return []

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageFailure(f"Corrupt data under {key!r}: {e}") from e

    if isinstance(data, list):
        logger.info(f"Migrating unversioned data under {key!r}")
        return data

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise StorageFailure(f"Unrecognized data layout under {key!r}")

    version = data.get("version", 0)
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise StorageFailure(f"Unsupported schema version {version!r} under {key!r}")

    return data["items"]


def dump_items(store: KeyValueStore, key: str, items: list[dict]) -> None:
    """Write a list of items to the store in the versioned envelope.

    Raises:
        StorageFailure: If the items cannot be serialized or written.
    """
    try:
        payload = json.dumps({"version": SCHEMA_VERSION, "items": items})
    except (TypeError, ValueError) as e:
        raise StorageFailure(f"Cannot serialize data for {key!r}: {e}") from e
    store.set(key, payload)


class CompositionLibrary:
    """The list of compositions a user has saved.

    Entries are independent deep copies of the compositions they were made
    from. The list only grows through :meth:`save` and only shrinks through
    :meth:`delete`; both rewrite the stored list.

    Attributes:
        store: Key-value store holding the list.
        key: Storage key of the list.
    """

    def __init__(self, store: KeyValueStore, key: str = COMPOSITIONS_KEY):
        self.store = store
        self.key = key
        self._items: list[SavedComposition] = []
        # Serializes changes made from concurrent UI callbacks
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[SavedComposition]:
        return list(self._items)

    def load(self) -> list[SavedComposition]:
        """Load saved compositions from the store.

        Unreadable or corrupt data is logged and leaves the library empty;
        individual malformed entries are skipped.
        """
        try:
            raw_items = load_items(self.store, self.key)
        except StorageFailure as e:
            logger.error(f"Could not load saved compositions: {e}")
            self._items = []
            return []

        items: list[SavedComposition] = []
        for raw in raw_items:
            try:
                items.append(SavedComposition.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed saved composition: {e}")

        self._items = items
        logger.info(f"Loaded {len(items)} saved compositions")
        return list(items)

    def _persist(self) -> None:
        dump_items(self.store, self.key, [item.to_dict() for item in self._items])

    def save(
        self, composition: Composition, now: datetime | None = None
    ) -> SavedComposition | None:
        """Save a copy of a composition under the next default name.

        Args:
            composition: Composition to save.
            now: Save time; the current time when omitted.

        Returns:
            The saved entry, or None if an entry with the same id exists.

        Raises:
            InvalidComposition: If the composition has no or malformed tracks.
            StorageFailure: If the list cannot be written; the library is
                left unchanged.
        """
        composition = validate_composition(composition)
        now = now or datetime.now()
        saved_id = int(now.timestamp() * 1000)

        with self._lock:
            if any(item.id == saved_id for item in self._items):
                logger.warning(f"Composition {saved_id} is already saved")
                return None

            saved = SavedComposition.model_validate(
                {
                    **composition.to_dict(),
                    "id": saved_id,
                    "name": f"Composition {len(self._items) + 1}",
                    "date": now.strftime(DATE_FORMAT),
                }
            )

            self._items.append(saved)
            try:
                self._persist()
            except StorageFailure:
                self._items.pop()
                raise

        logger.info(f"Saved {saved.name} ({saved.id})")
        return saved

    def delete(self, index: int) -> SavedComposition:
        """Remove the entry at ``index`` and rewrite the stored list.

        Raises:
            IndexError: If there is no entry at ``index``.
            StorageFailure: If the list cannot be written; the entry is kept.
        """
        with self._lock:
            if not 0 <= index < len(self._items):
                raise IndexError(f"No saved composition at index {index}")

            removed = self._items.pop(index)
            try:
                self._persist()
            except StorageFailure:
                self._items.insert(index, removed)
                raise

        logger.info(f"Deleted {removed.name} ({removed.id})")
        return removed

    def get(self, index: int) -> SavedComposition:
        """Return a fresh copy of the entry at ``index`` for playback.

        Raises:
            IndexError: If there is no entry at ``index``.
            InvalidComposition: If the stored entry has no playable tracks.
        """
        if not 0 <= index < len(self._items):
            raise IndexError(f"No saved composition at index {index}")
        return validate_composition(self._items[index].model_copy(deep=True))


class UploadHistory:
    """Recently uploaded images, newest first, capped at ``max_items``.

    History is a convenience: failures to read or write it are logged and
    never raised.
    """

    def __init__(
        self, store: KeyValueStore, key: str = HISTORY_KEY, max_items: int = 20
    ):
        self.store = store
        self.key = key
        self.max_items = max_items
        self._items: list[HistoryEntry] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[HistoryEntry]:
        return list(self._items)

    def load(self) -> list[HistoryEntry]:
        try:
            raw_items = load_items(self.store, self.key)
        except StorageFailure as e:
            logger.error(f"Error loading history: {e}")
            self._items = []
            return []

        items: list[HistoryEntry] = []
        for raw in raw_items:
            try:
                items.append(HistoryEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e}")

        self._items = items[: self.max_items]
        return list(self._items)

    def _persist(self) -> None:
        try:
            dump_items(self.store, self.key, [item.to_dict() for item in self._items])
        except StorageFailure as e:
            logger.error(f"Error saving history: {e}")

    def add(self, entry: HistoryEntry) -> None:
        """Put an entry at the front of the history, dropping the oldest."""
        with self._lock:
            self._items.insert(0, entry)
            del self._items[self.max_items :]
            self._persist()

    def add_image(
        self,
        image_data: str,
        filename: str,
        composition: Composition | None = None,
        now: datetime | None = None,
    ) -> HistoryEntry:
        """Create and add a history entry for an uploaded or generated image."""
        now = now or datetime.now()
        entry = HistoryEntry(
            image_data=image_data,
            date=now.strftime(DATE_FORMAT),
            filename=filename,
            composition=composition,
        )
        self.add(entry)
        return entry

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self._persist()