"""
Musical derivation utilities for image analyses.

This module turns the brightness of an analyzed image into a tempo and a
transposition, and applies that transposition to the three fixed base
scales the tracks are drawn from. It also converts between pitch names
and MIDI note numbers.
"""

import logging
import math
import re

import music21

from image_to_music.models import CompositionParams, ImageAnalysis, ScaleSet

logger = logging.getLogger(__name__)

# Sharps only; index is the pitch class
NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_PATTERN = re.compile(r"([A-G]#?)(-?\d+)")

BASE_SCALES: dict[str, list[str]] = {
    "pentatonic": ["C4", "D4", "E4", "G4", "A4"],
    "major": ["C3", "E3", "G3", "B3", "D4"],
    "minor": ["A3", "C4", "D4", "E4", "G4"],
}

MAX_BRIGHTNESS = 255


def parse_note(note: str) -> tuple[str, int]:
    """Split a pitch name like "G#3" into its pitch class and octave.

    Raises:
        ValueError: If the name is not a sharp-only pitch with an octave.
    """
    match = NOTE_PATTERN.fullmatch(note.strip())
    if match is None:
        raise ValueError(f"Invalid note name {note!r}")
    pitch, octave = match.groups()
    return pitch, int(octave)


def transpose_note(note: str, semitones: int) -> str:
    """Shift a pitch name by a number of semitones.

    The pitch class wraps around the twelve sharps-only names and the
    octave is carried up or down on each wrap.

    Args:
        note: Pitch name such as "C4" or "A#2".
        semitones: Signed number of semitones to shift.

    Returns:
        The transposed pitch name, e.g. ``transpose_note("A3", -1) == "G#3"``.
    """
    pitch, octave = parse_note(note)
    octave_shift, index = divmod(NOTE_NAMES.index(pitch) + semitones, 12)
    return f"{NOTE_NAMES[index]}{octave + octave_shift}"


def transpose_scale(scale: list[str], semitones: int) -> list[str]:
    """Transpose every note of a scale by the same number of semitones."""
    return [transpose_note(note, semitones) for note in scale]


def average_brightness(analysis: ImageAnalysis) -> float:
    """Mean brightness of an analysis' sections (0-255)."""
    return analysis.average_brightness


def calculate_tempo(
    analysis: ImageAnalysis, params: CompositionParams | None = None
) -> int:
    """Map average brightness to a tempo.

    With default parameters a black image plays at 80 BPM and a white one
    at 140 BPM; tempo never decreases as brightness rises.

    Returns:
        Tempo in whole beats per minute.
    """
    params = params or CompositionParams()
    ratio = average_brightness(analysis) / MAX_BRIGHTNESS
    return math.floor(params.min_tempo + ratio * params.tempo_span)


def calculate_transpose(
    analysis: ImageAnalysis, params: CompositionParams | None = None
) -> int:
    """Map average brightness to a scale transposition in semitones.

    Brightness is split into buckets of ``brightness_buckets`` levels
    (five buckets of 51 by default) centred on zero, giving -2 to +2.
    Exactly 255 would open a sixth bucket (``floor(255 / 51) - 2 == 3``)
    and is held in the top one, so a pure-white image transposes by +2.
    """
    params = params or CompositionParams()
    bucket_count = MAX_BRIGHTNESS // params.brightness_buckets
    centre = bucket_count // 2

    bucket = math.floor(average_brightness(analysis) / params.brightness_buckets)
    return max(-centre, min(bucket_count - 1 - centre, bucket - centre))


def create_scales(
    analysis: ImageAnalysis, params: CompositionParams | None = None
) -> ScaleSet:
    """Derive the tempo and the three transposed scales for a composition.

    Returns:
        ScaleSet with the pentatonic, major and minor base scales transposed
        by the brightness-derived amount, in piano, pad, bell order.
    """
    tempo = calculate_tempo(analysis, params)
    transpose = calculate_transpose(analysis, params)
    scales = [transpose_scale(scale, transpose) for scale in BASE_SCALES.values()]

    logger.debug(f"Derived tempo {tempo} BPM, transpose {transpose:+d}")
    return ScaleSet(tempo=tempo, transpose=transpose, scales=scales)


def note_to_midi(note: str) -> int:
    """Convert a pitch name (e.g. "C4") to its MIDI note number (60).

    Raises:
        ValueError: If the name is invalid or lies outside MIDI 0-127.
    """
    pitch_class, octave = parse_note(note)
    # Octave set separately: music21 reads "-" in a name as a flat
    pitch = music21.pitch.Pitch(pitch_class)
    pitch.octave = octave
    # Pitch.midi folds out-of-range pitches back into range
    midi = int(round(pitch.ps))
    if not 0 <= midi <= 127:
        raise ValueError(f"Note {note!r} is outside the MIDI range")
    return midi


def get_key_name(midi_note: int) -> str:
    """Convert a MIDI note number to a sharps-only pitch name (e.g. "C#4")."""
    return f"{NOTE_NAMES[midi_note % 12]}{(midi_note // 12) - 1}"
