"""Playback timeline arithmetic for compositions."""

from image_to_music.models import Composition


def composition_seconds(composition: Composition) -> float:
    """Length of a composition in seconds at its own tempo."""
    return (60 / composition.tempo) * composition.duration


def seek(position: float, total_seconds: float) -> float:
    """Convert a timeline position (0.0-1.0, clamped) into seconds."""
    position = max(0.0, min(1.0, position))
    return position * total_seconds


def format_time(seconds: float) -> str:
    """Format seconds as ``m:ss``."""
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def timeline_label(current_seconds: float, total_seconds: float) -> str:
    """Return the ``current / total`` readout shown under the timeline."""
    return f"{format_time(current_seconds)} / {format_time(total_seconds)}"


def progress_fraction(current_seconds: float, total_seconds: float) -> float:
    if total_seconds <= 0:
        return 0.0
    return max(0.0, min(1.0, current_seconds / total_seconds))
