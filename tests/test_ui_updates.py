"""Tests for UI update functions and session management.

This module tests the behavioral contracts of the UI callbacks and the
session-based file management without testing library code.
"""

import cv2
import numpy as np
import pytest

from image_to_music.app_state import clear_registry, get_image_by_id
from image_to_music.cache import cached_analysis, clear_all_caches
from image_to_music.image_analysis import analyze_image
from image_to_music.image_processing import decode_data_url
from image_to_music.models import AppFeatures, AppSettings
from image_to_music.storage import CompositionLibrary, MemoryStore, UploadHistory
from image_to_music.ui_updates import (
    CORRUPT_MESSAGE,
    _file_managers,
    cleanup_cache,
    cleanup_session,
    clear_history,
    delete_saved,
    generate_music,
    get_or_create_file_manager,
    handle_upload,
    load_history_item,
    play_composition,
    play_saved,
    save_composition,
    seek_timeline,
)


@pytest.fixture(autouse=True)
def clean_registry(monkeypatch):
    """Clean the session, image and cache registries around each test.

    Audio synthesis is replaced so the tests only write MIDI files.
    """
    monkeypatch.setattr(
        "image_to_music.midi_utils.midi_to_audio", lambda *args: None
    )
    _file_managers.clear()
    clear_registry()
    clear_all_caches()
    yield
    cleanup_cache(session_id=None)
    clear_registry()


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "splash.png"
    rgb = np.random.default_rng(3).integers(0, 256, (20, 20, 3), dtype=np.uint8)
    cv2.imwrite(str(path), rgb)
    return str(path)


@pytest.fixture
def history():
    return UploadHistory(MemoryStore())


@pytest.fixture
def library():
    return CompositionLibrary(MemoryStore())


def test_get_or_create_returns_consistent_manager():
    """Behavior: Same session ID should return the same file manager instance."""
    session_id = "test-session-123"

    manager1 = get_or_create_file_manager(session_id)
    manager2 = get_or_create_file_manager(session_id)

    assert manager1 is manager2


def test_cleanup_session_removes_from_registry():
    """Behavior: Cleanup should remove the session from the active registry."""
    session_id = "test-session-456"

    get_or_create_file_manager(session_id)
    assert session_id in _file_managers

    cleanup_session(session_id)
    assert session_id not in _file_managers


def test_cleanup_session_is_idempotent():
    """Behavior: Cleaning up a non-existent session should not raise errors."""
    cleanup_session("never-existed")


def test_cleanup_cache_with_specific_session():
    """Behavior: Cache cleanup with session ID should only remove that session."""
    get_or_create_file_manager("keep-this")
    get_or_create_file_manager("remove-this")

    cleanup_cache(session_id="remove-this")

    assert "keep-this" in _file_managers
    assert "remove-this" not in _file_managers


def test_handle_upload_registers_image(image_file, history):
    """Behavior: An uploaded file is registered and recorded in the history."""
    image_id, preview, status = handle_upload(image_file, history)

    assert get_image_by_id(image_id) is not None
    assert preview.shape == (20, 20, 3)
    assert "20x20" in status
    assert history.items[0].filename == "splash.png"


@pytest.mark.parametrize("path", [None, "", "/no/such/file.png"])
def test_handle_upload_rejects_missing_files(path, history):
    """Behavior: Unusable uploads return a message instead of raising."""
    image_id, preview, status = handle_upload(path, history)
    assert image_id is None and preview is None
    assert status
    assert len(history) == 0


def test_generate_music_returns_all_outputs(image_file, history):
    """Behavior: Generation fills every output and records the result."""
    image_id, _, _ = handle_upload(image_file, history)
    outputs = generate_music(image_id, "s1", AppSettings(), history, seed=4)

    assert len(outputs) == 11
    composition, img_desc, music_desc = outputs[:3]
    assert len(composition["tracks"]) == 3
    assert img_desc and music_desc
    assert outputs[7].endswith(".mid")
    assert outputs[8].startswith("0:00 / 0:")
    assert history.items[0].composition is not None


def test_generate_music_same_seed_same_tracks(image_file):
    image_id, _, _ = handle_upload(image_file)
    first = generate_music(image_id, "s1", AppSettings(), seed=11)[0]
    second = generate_music(image_id, "s1", AppSettings(), seed=11)[0]
    assert first["tracks"] == second["tracks"]


def test_generate_music_unknown_image():
    """Behavior: A missing image yields an error status and empty outputs."""
    outputs = generate_music("img_missing", "s1", AppSettings())
    assert outputs[0] is None
    assert outputs[-1].startswith("Error")


def test_generate_music_respects_disabled_features(image_file):
    settings = AppSettings(features=AppFeatures(timeline=False, waveform=False))
    image_id, _, _ = handle_upload(image_file)
    outputs = generate_music(image_id, "s1", settings)
    assert outputs[8] == ""
    assert outputs[9] is None


def test_play_composition_corrupt():
    """Behavior: Corrupt compositions produce the corruption message."""
    outputs = play_composition({"tracks": "nope"}, "s1", AppSettings())
    assert outputs[-1] == CORRUPT_MESSAGE


@pytest.mark.parametrize("note", ["H4", "B9"])
def test_play_composition_unplayable_note(note):
    """Behavior: Unknown or out-of-range pitches are reported, not raised."""
    data = {
        "id": 1,
        "tempo": 100,
        "tracks": [{"instrument": "piano", "notes": [note], "rhythm": [1]}],
    }
    outputs = play_composition(data, "s1", AppSettings())
    assert outputs[0] is None
    assert outputs[-1] == CORRUPT_MESSAGE


def test_play_composition(sample_composition):
    audio, midi, piano_roll, timeline, status = play_composition(
        sample_composition.to_dict(), "s1", AppSettings()
    )
    assert midi.endswith(".mid")
    assert piano_roll is not None
    assert str(sample_composition.tempo) in status


def test_save_play_delete_flow(sample_composition, library):
    rows, status = save_composition(sample_composition.to_dict(), library)
    assert len(rows) == 1 and rows[0][0] == 1
    assert "Composition 1" in status

    outputs = play_saved(1, library, "s1", AppSettings())
    assert outputs[0]["tracks"] == sample_composition.to_dict()["tracks"]

    rows, status = delete_saved(1, library)
    assert rows == []
    assert "Deleted" in status


def test_save_without_composition(library):
    rows, status = save_composition(None, library)
    assert rows == []
    assert "generate music first" in status


@pytest.mark.parametrize("number", [None, 0, 2])
def test_saved_row_numbers_out_of_range(number, library, sample_composition):
    library.save(sample_composition)
    assert play_saved(number, library, "s1", AppSettings())[0] is None
    rows, _ = delete_saved(number, library)
    assert len(rows) == 1


def test_load_history_item(image_file, history):
    handle_upload(image_file, history)
    image_id, preview, composition, status = load_history_item(1, history)
    assert get_image_by_id(image_id) is not None
    assert preview.shape == (20, 20, 3)
    assert composition is None
    assert "splash.png" in status

    assert load_history_item(5, history)[0] is None
    assert clear_history(history) == []


def test_seek_timeline(sample_composition):
    # 32 beats at the composition's tempo
    label = seek_timeline(100, sample_composition.to_dict())
    total = 60 / sample_composition.tempo * 32
    assert label.endswith(f"{int(total // 60)}:{int(total % 60):02d}")
    assert seek_timeline(50, None) == "0:00 / 0:00"


def test_history_replay_analyzes_the_uploaded_pixels(tmp_path, history):
    """Behavior: Images loaded back from history keep their full resolution."""
    path = tmp_path / "large.png"
    rgb = np.random.default_rng(7).integers(0, 256, (300, 512, 3), dtype=np.uint8)
    cv2.imwrite(str(path), rgb)

    image_id, _, _ = handle_upload(str(path), history)
    entry = history.items[0]
    replayed = decode_data_url(entry.image_data)

    assert (replayed.width, replayed.height) == (512, 300)
    assert analyze_image(replayed) == analyze_image(get_image_by_id(image_id))

    replay_id, _, _, _ = load_history_item(1, history)
    assert cached_analysis(replay_id) == cached_analysis(image_id)
