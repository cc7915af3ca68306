"""Tests for saved compositions, upload history and their stores."""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

from image_to_music.errors import InvalidComposition, StorageFailure
from image_to_music.models import Composition
from image_to_music.storage import (
    COMPOSITIONS_KEY,
    HISTORY_KEY,
    SCHEMA_VERSION,
    CompositionLibrary,
    FileStore,
    MemoryStore,
    UploadHistory,
    dump_items,
    load_items,
)

NOW = datetime(2024, 3, 5, 14, 30, 0)


class FailingStore(MemoryStore):
    """Memory store whose writes always fail."""

    def set(self, key, value):
        raise StorageFailure("disk full")


@pytest.fixture
def library():
    return CompositionLibrary(MemoryStore())


def test_save_assigns_id_name_and_date(library, sample_composition):
    saved = library.save(sample_composition, now=NOW)
    assert saved.id == int(NOW.timestamp() * 1000)
    assert saved.name == "Composition 1"
    assert saved.date == "03/05/2024, 02:30:00 PM"
    assert saved.tracks == sample_composition.tracks
    assert len(library) == 1


def test_save_is_persisted_in_envelope(library, sample_composition):
    library.save(sample_composition, now=NOW)
    stored = json.loads(library.store.get(COMPOSITIONS_KEY))
    assert stored["version"] == SCHEMA_VERSION
    assert stored["items"][0]["imageData"] == sample_composition.image_data

    reloaded = CompositionLibrary(library.store)
    assert reloaded.load() == library.items


def test_save_rejects_duplicate_id(library, sample_composition):
    assert library.save(sample_composition, now=NOW) is not None
    assert library.save(sample_composition, now=NOW) is None
    assert len(library) == 1


def test_names_follow_library_size(library, sample_composition):
    for i in range(3):
        library.save(sample_composition, now=NOW + timedelta(seconds=i))
    assert [item.name for item in library.items] == [
        "Composition 1",
        "Composition 2",
        "Composition 3",
    ]


def test_save_rejects_empty_composition(library):
    with pytest.raises(InvalidComposition):
        library.save(Composition(id=1, tempo=100, tracks=[]))
    assert len(library) == 0


def test_save_failure_leaves_library_unchanged(sample_composition):
    library = CompositionLibrary(FailingStore())
    with pytest.raises(StorageFailure):
        library.save(sample_composition, now=NOW)
    assert len(library) == 0


def test_delete_and_get(library, sample_composition):
    for i in range(2):
        library.save(sample_composition, now=NOW + timedelta(seconds=i))

    first = library.get(0)
    assert first == library.items[0]
    assert first is not library.items[0]

    removed = library.delete(0)
    assert removed.name == "Composition 1"
    assert [item.name for item in library.items] == ["Composition 2"]

    with pytest.raises(IndexError):
        library.delete(5)
    with pytest.raises(IndexError):
        library.get(-1)


def test_load_migrates_bare_list(sample_composition):
    entry = {**sample_composition.to_dict(), "name": "Old", "date": "01/01/2020"}
    store = MemoryStore({COMPOSITIONS_KEY: json.dumps([entry])})

    library = CompositionLibrary(store)
    assert [item.name for item in library.load()] == ["Old"]

    library.save(sample_composition, now=NOW)
    assert json.loads(store.get(COMPOSITIONS_KEY))["version"] == SCHEMA_VERSION


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        json.dumps({"version": SCHEMA_VERSION + 1, "items": []}),
        json.dumps({"something": "else"}),
    ],
)
def test_load_unreadable_data_gives_empty_library(raw):
    library = CompositionLibrary(MemoryStore({COMPOSITIONS_KEY: raw}))
    assert library.load() == []
    assert len(library) == 0


def test_load_skips_malformed_entries(sample_composition):
    good = {**sample_composition.to_dict(), "name": "Good", "date": "d"}
    items = [good, {"id": "x"}]
    store = MemoryStore()
    dump_items(store, COMPOSITIONS_KEY, items)
    assert [item.name for item in CompositionLibrary(store).load()] == ["Good"]


def test_load_items_missing_key():
    assert load_items(MemoryStore(), "nothing") == []


def test_history_newest_first_and_capped():
    history = UploadHistory(MemoryStore(), max_items=20)
    for i in range(25):
        history.add_image(f"data:{i}", f"img{i}.png", now=NOW)

    assert len(history) == 20
    assert history.items[0].filename == "img24.png"
    assert history.items[-1].filename == "img5.png"

    reloaded = UploadHistory(history.store)
    assert [e.filename for e in reloaded.load()] == [
        e.filename for e in history.items
    ]


def test_history_keeps_composition(sample_composition):
    history = UploadHistory(MemoryStore())
    history.add_image("data:x", "x.png", composition=sample_composition)
    reloaded = UploadHistory(history.store)
    assert reloaded.load()[0].composition == sample_composition


def test_history_write_failure_is_not_raised():
    history = UploadHistory(FailingStore())
    history.add_image("data:x", "x.png")
    assert len(history) == 1


def test_history_clear():
    store = MemoryStore()
    history = UploadHistory(store)
    history.add_image("data:x", "x.png")
    history.clear()
    assert len(history) == 0
    assert load_items(store, HISTORY_KEY) == []


def test_file_store_roundtrip(tmp_path):
    store = FileStore(tmp_path / "data")
    assert store.get("k") is None
    store.set("k", "value")
    assert store.get("k") == "value"
    assert (tmp_path / "data" / "k.json").exists()
    store.delete("k")
    assert store.get("k") is None


def test_file_store_rejects_path_keys(tmp_path):
    with pytest.raises(ValueError):
        FileStore(tmp_path).get("../escape")


def test_file_store_library_survives_restart(tmp_path, sample_composition):
    CompositionLibrary(FileStore(tmp_path)).save(sample_composition, now=NOW)
    library = CompositionLibrary(FileStore(tmp_path))
    assert len(library.load()) == 1


def test_concurrent_saves_get_distinct_names(sample_composition):
    library = CompositionLibrary(MemoryStore())
    times = [NOW + timedelta(seconds=i) for i in range(40)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda t: library.save(sample_composition, now=t), times))

    names = [item.name for item in library.items]
    assert len(names) == 40
    assert len(set(names)) == 40
    assert len(CompositionLibrary(library.store).load()) == 40


def test_concurrent_history_adds_respect_cap():
    history = UploadHistory(MemoryStore(), max_items=10)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: history.add_image("data:x", f"{i}.png"), range(50)))

    assert len(history) == 10
    assert len(UploadHistory(history.store).load()) == 10
