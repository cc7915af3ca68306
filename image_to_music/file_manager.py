"""Per-session temporary files for rendered compositions.

Each web session gets its own directory holding at most one file of each
kind (the current MIDI file, the current WAV file). Rendering a new
composition overwrites the previous files instead of accumulating them.
"""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class GradioFileManager:
    """Manages temporary files for a Gradio session.

    Attributes:
        session_dir: Path to the session's temporary directory.
        current_files: Current file of each type, keyed by type.
    """

    def __init__(self, session_id: str | None = None):
        """Create the session directory.

        Args:
            session_id: Optional session identifier used in the directory
                name. A unique directory is created when omitted.
        """
        base_dir = os.environ.get("GRADIO_TEMP_DIR", tempfile.gettempdir())

        if session_id:
            self.session_dir = Path(base_dir) / f"image-to-music-{session_id}"
        else:
            self.session_dir = Path(
                tempfile.mkdtemp(prefix="image-to-music-", dir=base_dir)
            )

        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.current_files: dict[str, Path] = {}

    def get_temp_path(self, file_type: str, extension: str = "") -> str:
        """Return the single path used for files of ``file_type``.

        Args:
            file_type: Kind of file, e.g. "midi" or "wav".
            extension: File extension including the dot.

        Returns:
            Absolute path of the file as a string.
        """
        file_path = self.session_dir / f"current_{file_type}{extension}"
        self.current_files[file_type] = file_path
        return str(file_path)

    def write_file(self, file_type: str, content: bytes, extension: str = "") -> str:
        """Write ``content`` to the file for ``file_type``, replacing it atomically.

        Returns:
            Path to the written file as a string.
        """
        file_path = self.get_temp_path(file_type, extension)

        temp_path = file_path + ".tmp"
        with open(temp_path, "wb") as f:
            f.write(content)
        os.replace(temp_path, file_path)

        return file_path

    def cleanup_file(self, file_type: str) -> None:
        """Remove the current file of ``file_type`` if there is one."""
        file_path = self.current_files.pop(file_type, None)
        if file_path is not None:
            self._unlink(file_path)

    def cleanup_all(self) -> None:
        """Remove all tracked files and, if empty, the session directory.

        Safe to call multiple times.
        """
        for file_path in list(self.current_files.values()):
            self._unlink(file_path)
        self.current_files.clear()

        if self.session_dir.exists():
            try:
                self.session_dir.rmdir()
            except OSError as e:
                logger.debug(f"Keeping session directory {self.session_dir}: {e}")

    @staticmethod
    def _unlink(file_path: Path) -> None:
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            # File might still be open by the audio player
            logger.debug(f"Could not remove {file_path}: {e}")
