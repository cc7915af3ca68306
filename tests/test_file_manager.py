from image_to_music.file_manager import GradioFileManager


def test_write_file_replaces_previous(tmp_path, monkeypatch):
    monkeypatch.setenv("GRADIO_TEMP_DIR", str(tmp_path))
    manager = GradioFileManager("abc")

    first = manager.write_file("midi", b"one", ".mid")
    second = manager.write_file("midi", b"two", ".mid")

    assert first == second
    assert manager.session_dir == tmp_path / "image-to-music-abc"
    with open(second, "rb") as f:
        assert f.read() == b"two"


def test_cleanup_all_removes_files_and_directory(tmp_path, monkeypatch):
    monkeypatch.setenv("GRADIO_TEMP_DIR", str(tmp_path))
    manager = GradioFileManager()
    manager.write_file("midi", b"data", ".mid")
    manager.get_temp_path("wav", ".wav")

    manager.cleanup_all()
    manager.cleanup_all()

    assert not manager.session_dir.exists()
    assert manager.current_files == {}
