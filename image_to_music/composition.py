"""Track building and composition assembly.

Each track walks the 16 image sections in order, turning each section's
brightness into a scale degree and repeating that note over a rhythm
pattern until the beat budget is filled. Three tracks, one per instrument,
make up a composition.

The only random element is the choice of rhythm pattern per track. It is
drawn from an explicitly passed ``random.Random`` so that results can be
reproduced from a seed.
"""

import logging
import random
import time

from pydantic import ValidationError

from image_to_music.errors import InvalidComposition
from image_to_music.models import (
    Composition,
    CompositionParams,
    ImageAnalysis,
    Track,
)
from image_to_music.music_transformations import (
    MAX_BRIGHTNESS,
    create_scales,
    note_to_midi,
)

logger = logging.getLogger(__name__)

INSTRUMENTS = ("piano", "pad", "bell")

RHYTHM_PATTERNS: tuple[list[float], ...] = (
    [1, 1, 1, 1],  # quarter notes
    [0.5, 0.5, 1, 1],  # two eighths, two quarters
)


def choose_rhythm_pattern(rng: random.Random) -> list[float]:
    """Pick one of the fixed rhythm patterns."""
    return list(rng.choice(RHYTHM_PATTERNS))


def note_index(brightness: float, scale_length: int) -> int:
    """Map a brightness (0-255) to a scale degree index.

    Full brightness would index one past the end of the scale and is
    clamped to the last degree.
    """
    index = int((brightness / MAX_BRIGHTNESS) * scale_length)
    return max(0, min(scale_length - 1, index))


def build_track(
    analysis: ImageAnalysis,
    scale: list[str],
    instrument: str,
    rng: random.Random,
    beat_budget: int = 32,
) -> Track:
    """Build one instrument's note and rhythm sequence from an image analysis.

    The sections are visited in order, repeatedly, until the budget is
    reached. Each section contributes its note once per duration of the
    chosen rhythm pattern; a duration is only appended while the running
    total is still below ``beat_budget``, so the last appended value may
    carry the total past the budget.

    Args:
        analysis: Image analysis with 16 sections.
        scale: Pitch names indexed by brightness.
        instrument: Instrument identifier for the track.
        rng: Random source used to choose the rhythm pattern.
        beat_budget: Number of beats to fill.

    Returns:
        Track with index-aligned notes and rhythm values.
    """
    if not scale:
        raise InvalidComposition(f"Empty scale for {instrument} track")

    pattern = choose_rhythm_pattern(rng)
    notes: list[str] = []
    rhythm: list[float] = []
    current_beat = 0.0

    while current_beat < beat_budget:
        for section in analysis.sections:
            note = scale[note_index(section.brightness, len(scale))]

            for duration in pattern:
                if current_beat < beat_budget:
                    notes.append(note)
                    rhythm.append(duration)
                    current_beat += duration

    return Track(instrument=instrument, notes=notes, rhythm=rhythm)


def create_composition(
    analysis: ImageAnalysis,
    image_data: str = "",
    rng: random.Random | None = None,
    params: CompositionParams | None = None,
    created_at: int | None = None,
) -> Composition:
    """Assemble a three-track composition from an image analysis.

    Args:
        analysis: Image analysis to derive tempo, scales and notes from.
        image_data: Thumbnail data URL stored with the composition.
        rng: Random source for rhythm pattern choices. A fresh unseeded
            ``random.Random`` is used when omitted.
        params: Composition parameters; defaults apply when omitted.
        created_at: Creation timestamp in milliseconds; the current time
            when omitted.

    Returns:
        Composition with piano, pad and bell tracks.
    """
    params = params or CompositionParams()
    rng = rng or random.Random()

    scale_set = create_scales(analysis, params)
    tracks = [
        build_track(analysis, scale, instrument, rng, params.beat_budget)
        for scale, instrument in zip(scale_set.scales, INSTRUMENTS)
    ]

    composition = Composition(
        id=created_at if created_at is not None else int(time.time() * 1000),
        tempo=scale_set.tempo,
        duration=params.beat_budget,
        image_data=image_data,
        tracks=tracks,
    )
    logger.info(
        f"Created composition {composition.id} at {composition.tempo} BPM "
        f"with {len(tracks)} tracks"
    )
    return composition


def validate_composition(composition: Composition | dict | None) -> Composition:
    """Check that a composition can be played or saved.

    Args:
        composition: A Composition or its plain structured form.

    Returns:
        The validated Composition.

    Raises:
        InvalidComposition: If the composition is missing, has no tracks,
            or any track's data is malformed.
    """
    if composition is None:
        raise InvalidComposition("No composition provided")

    if isinstance(composition, dict):
        try:
            composition = Composition.model_validate(composition)
        except ValidationError as e:
            raise InvalidComposition(f"Malformed composition data: {e}") from e

    if not composition.tracks:
        raise InvalidComposition(f"Composition {composition.id} has no tracks")

    for track in composition.tracks:
        if not track.notes:
            raise InvalidComposition(
                f"Track {track.instrument!r} of composition {composition.id} is empty"
            )
        for note in track.notes:
            try:
                note_to_midi(note)
            except ValueError as e:
                raise InvalidComposition(
                    f"Track {track.instrument!r} of composition {composition.id}: {e}"
                ) from e

    return composition
