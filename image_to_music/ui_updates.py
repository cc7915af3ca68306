"""UI update functions for the Gradio interface.

This module sits between the Gradio components and the image-to-music
pipeline. Each function handles one user action (upload, generate, play,
save, delete, load from history) and returns plain values ready for
display. Compositions travel between callbacks in their plain dictionary
form. Pipeline and storage errors are caught here and turned into status
messages so a failed action never takes the interface down.
"""

import logging
import os
import random

import numpy as np

from image_to_music.app_state import get_image_by_id, register_image
from image_to_music.cache import (
    cached_analysis,
    cached_data_url,
    cached_thumbnail,
    clear_all_caches,
)
from image_to_music.composition import create_composition, validate_composition
from image_to_music.descriptions import describe_image, describe_music
from image_to_music.errors import InvalidComposition, InvalidImage, StorageFailure
from image_to_music.file_manager import GradioFileManager
from image_to_music.image_processing import decode_data_url, load_image_file
from image_to_music.midi_utils import load_audio, render_composition
from image_to_music.models import AppSettings, Composition
from image_to_music.storage import CompositionLibrary, UploadHistory
from image_to_music.timeline import composition_seconds, seek, timeline_label
from image_to_music.visualization import (
    create_all_visualizations,
    create_piano_roll_visualization,
)

logger = logging.getLogger(__name__)

CORRUPT_MESSAGE = "Unable to play this composition. It may be corrupted."
RETRY_MESSAGE = "Could not save the music. Please try generating it again."

# Active file managers by session id
_file_managers: dict[str, GradioFileManager] = {}


def get_or_create_file_manager(session_id: str) -> GradioFileManager:
    """Return the file manager of a session, creating it on first use."""
    manager = _file_managers.get(session_id)
    if manager is None:
        manager = GradioFileManager(session_id)
        _file_managers[session_id] = manager
    return manager


def cleanup_session(session_id: str) -> None:
    """Remove a session's files and forget its file manager.

    Unknown sessions are ignored.
    """
    manager = _file_managers.pop(session_id, None)
    if manager is not None:
        manager.cleanup_all()


def cleanup_cache(session_id: str | None = None) -> None:
    """Clean up one session, or every session plus the pipeline caches."""
    if session_id is not None:
        cleanup_session(session_id)
        return

    for sid in list(_file_managers):
        cleanup_session(sid)
    clear_all_caches()


def playlist_rows(library: CompositionLibrary) -> list[list]:
    """Rows for the saved-compositions table: number, name, date, tempo."""
    return [
        [index + 1, item.name, item.date, item.tempo]
        for index, item in enumerate(library.items)
    ]


def history_rows(history: UploadHistory) -> list[list]:
    """Rows for the history table: number, file name, date, has music."""
    return [
        [index + 1, entry.filename, entry.date, "yes" if entry.composition else "no"]
        for index, entry in enumerate(history.items)
    ]


def _timeline_text(composition: Composition, settings: AppSettings) -> str:
    if not settings.features.timeline:
        return ""
    return timeline_label(0, composition_seconds(composition))


def handle_upload(
    file_path: str | None, history: UploadHistory | None = None
) -> tuple[str | None, np.ndarray | None, str]:
    """Register an uploaded image file.

    Args:
        file_path: Path of the uploaded file, or None if cleared.
        history: Upload history to record the image in, if enabled.

    Returns:
        Tuple of (image_id, rgb_preview, status_message). The id and
        preview are None when the file could not be used.
    """
    if not file_path:
        return None, None, "No image selected."

    try:
        image = load_image_file(file_path)
        image_id = register_image(image)
        image_data = cached_data_url(image_id)
    except InvalidImage as e:
        logger.warning(f"Rejected upload {file_path!r}: {e}")
        return None, None, f"Could not use this image: {e}"

    if history is not None:
        history.add_image(image_data, os.path.basename(file_path))

    return image_id, image.rgb, f"Loaded {image.width}x{image.height} image."


def generate_music(
    image_id: str | None,
    session_id: str,
    settings: AppSettings,
    history: UploadHistory | None = None,
    seed: int | None = None,
) -> tuple:
    """Generate, render and visualize a composition for a registered image.

    Args:
        image_id: Identifier of the registered image.
        session_id: Session whose files receive the rendered output.
        settings: Application settings.
        history: Upload history to record the result in, if enabled.
        seed: Optional seed for the rhythm pattern choices.

    Returns:
        Tuple of (composition_dict, image_description, music_description,
        section_grid, palette, piano_roll, audio_path, midi_path,
        timeline_text, waveform, status_message). Everything but the status
        is None or empty when generation failed.
    """
    try:
        analysis = cached_analysis(image_id)
        composition = create_composition(
            analysis,
            image_data=cached_thumbnail(image_id),
            rng=random.Random(seed),
            params=settings.composition,
        )
        render = render_composition(
            composition,
            get_or_create_file_manager(session_id),
            settings.render,
            random.Random(seed),
        )
    except (InvalidImage, InvalidComposition) as e:
        logger.error(f"Music generation failed: {e}")
        return (None, "", "", None, None, None, None, None, "", None, f"Error: {e}")

    audio = None
    if settings.features.waveform and render.audio_file_path:
        audio = load_audio(render.audio_file_path)

    visuals = create_all_visualizations(
        get_image_by_id(image_id), analysis, composition, audio, settings.features
    )

    if history is not None and settings.features.history:
        history.add_image(
            cached_data_url(image_id),
            f"Generated Music {composition.id}",
            composition=composition,
        )

    return (
        composition.to_dict(),
        describe_image(analysis),
        describe_music(analysis, composition.tempo),
        visuals.section_grid,
        visuals.palette,
        visuals.piano_roll,
        render.audio_file_path,
        render.midi_file_path,
        _timeline_text(composition, settings),
        visuals.waveform,
        f"Generated {len(composition.tracks)} tracks at {composition.tempo} BPM.",
    )


def play_composition(
    composition_data: dict | None, session_id: str, settings: AppSettings
) -> tuple:
    """Render a composition for playback.

    Returns:
        Tuple of (audio_path, midi_path, piano_roll, timeline_text,
        status_message).
    """
    try:
        composition = validate_composition(composition_data)
        render = render_composition(
            composition, get_or_create_file_manager(session_id), settings.render
        )
    except InvalidComposition as e:
        logger.error(f"Playback error: {e}")
        return None, None, None, "", CORRUPT_MESSAGE

    return (
        render.audio_file_path,
        render.midi_file_path,
        create_piano_roll_visualization(composition),
        _timeline_text(composition, settings),
        f"Playing composition at {composition.tempo} BPM.",
    )


def save_composition(
    composition_data: dict | None, library: CompositionLibrary
) -> tuple[list[list], str]:
    """Save the current composition to the library.

    Returns:
        Tuple of (playlist_rows, status_message).
    """
    if not composition_data:
        return playlist_rows(library), "No music to save. Please generate music first."

    try:
        saved = library.save(validate_composition(composition_data))
    except InvalidComposition as e:
        logger.error(f"Error saving composition: {e}")
        return playlist_rows(library), RETRY_MESSAGE
    except StorageFailure as e:
        logger.error(f"Error saving composition: {e}")
        return playlist_rows(library), f"Could not write the music collection: {e}"

    if saved is None:
        return playlist_rows(library), "This composition is already saved!"
    return playlist_rows(library), f"Music saved to collection as {saved.name}!"


def _row_index(number: float | int | None, size: int) -> int | None:
    """Convert a 1-based table row number to a list index, or None if invalid."""
    if number is None:
        return None
    index = int(number) - 1
    return index if 0 <= index < size else None


def play_saved(
    number: float | int | None,
    library: CompositionLibrary,
    session_id: str,
    settings: AppSettings,
) -> tuple:
    """Load a saved composition by its 1-based row number and render it.

    Returns:
        Tuple of (composition_dict, audio_path, midi_path, piano_roll,
        timeline_text, status_message).
    """
    index = _row_index(number, len(library))
    if index is None:
        return None, None, None, None, "", "Pick a saved composition by its number."

    try:
        composition = library.get(index)
    except InvalidComposition as e:
        logger.error(f"Error playing composition: {e}")
        return None, None, None, None, "", CORRUPT_MESSAGE

    audio_path, midi_path, piano_roll, timeline_text, status = play_composition(
        composition.to_dict(), session_id, settings
    )
    return (
        composition.to_dict(),
        audio_path,
        midi_path,
        piano_roll,
        timeline_text,
        status,
    )


def delete_saved(
    number: float | int | None, library: CompositionLibrary
) -> tuple[list[list], str]:
    """Delete a saved composition by its 1-based row number.

    Returns:
        Tuple of (playlist_rows, status_message).
    """
    index = _row_index(number, len(library))
    if index is None:
        return playlist_rows(library), "Pick a saved composition by its number."

    try:
        removed = library.delete(index)
    except StorageFailure as e:
        logger.error(f"Error deleting composition: {e}")
        return playlist_rows(library), f"Could not write the music collection: {e}"

    return playlist_rows(library), f"Deleted {removed.name}."


def load_history_item(
    number: float | int | None, history: UploadHistory
) -> tuple[str | None, np.ndarray | None, dict | None, str]:
    """Bring back an image (and its composition, if any) from the history.

    Returns:
        Tuple of (image_id, rgb_preview, composition_dict, status_message).
    """
    items = history.items
    index = _row_index(number, len(items))
    if index is None:
        return None, None, None, "Pick a history entry by its number."

    entry = items[index]
    try:
        image = decode_data_url(entry.image_data)
    except InvalidImage as e:
        logger.error(f"Error loading history item: {e}")
        return None, None, None, f"Could not load this history entry: {e}"

    image_id = register_image(image)
    composition = entry.composition.to_dict() if entry.composition else None
    return image_id, image.rgb, composition, f"Loaded {entry.filename}."


def clear_history(history: UploadHistory) -> list[list]:
    history.clear()
    return history_rows(history)


def seek_timeline(position: float, composition_data: dict | None) -> str:
    """Return the timeline readout for a position (0-100 percent)."""
    if not composition_data:
        return timeline_label(0, 0)
    try:
        composition = validate_composition(composition_data)
    except InvalidComposition:
        return timeline_label(0, 0)

    total = composition_seconds(composition)
    return timeline_label(seek(position / 100, total), total)
