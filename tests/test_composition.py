import random

import pytest

from image_to_music.composition import (
    INSTRUMENTS,
    RHYTHM_PATTERNS,
    build_track,
    create_composition,
    note_index,
    validate_composition,
)
from image_to_music.errors import InvalidComposition
from image_to_music.models import CompositionParams, ImageAnalysis, SectionStat


def uniform_analysis(level: float) -> ImageAnalysis:
    section = SectionStat(average_color=(level, level, level))
    return ImageAnalysis(sections=[section] * 16)


@pytest.mark.parametrize(
    "brightness, expected", [(0, 0), (50, 0), (51, 1), (128, 2), (254, 4), (255, 4)]
)
def test_note_index(brightness, expected):
    assert note_index(brightness, 5) == expected


@pytest.mark.parametrize("seed", range(8))
def test_track_fills_exactly_the_beat_budget(gradient_analysis, seed):
    track = build_track(
        gradient_analysis, ["C4", "D4", "E4"], "piano", random.Random(seed)
    )
    assert track.total_beats == pytest.approx(32)
    assert len(track.notes) == len(track.rhythm)


def test_track_uses_one_pattern(gradient_analysis):
    track = build_track(gradient_analysis, ["C4"], "bell", random.Random(3))
    pattern = track.rhythm[:4]
    assert pattern in [list(map(float, p)) for p in RHYTHM_PATTERNS]
    assert track.rhythm == (pattern * 16)[: len(track.rhythm)]


def test_track_repeats_section_note_per_pattern_value():
    analysis = uniform_analysis(255)
    track = build_track(analysis, ["C4", "E4"], "pad", random.Random(0))
    assert set(track.notes) == {"E4"}


def test_track_short_budget_stops_early(gradient_analysis):
    track = build_track(gradient_analysis, ["C4"], "piano", random.Random(0), 2)
    assert track.total_beats == pytest.approx(2)


def test_track_empty_scale_raises(gradient_analysis, rng):
    with pytest.raises(InvalidComposition):
        build_track(gradient_analysis, [], "piano", rng)


def test_composition_structure(sample_composition):
    assert sample_composition.id == 1700000000000
    assert sample_composition.duration == 32
    assert [t.instrument for t in sample_composition.tracks] == list(INSTRUMENTS)
    for track in sample_composition.tracks:
        assert track.total_beats == pytest.approx(32)


def test_composition_is_deterministic_for_a_seed(gradient_analysis):
    a = create_composition(gradient_analysis, rng=random.Random(5), created_at=1)
    b = create_composition(gradient_analysis, rng=random.Random(5), created_at=1)
    assert a == b


def test_composition_tempo_follows_brightness():
    dark = create_composition(uniform_analysis(0), rng=random.Random(0))
    bright = create_composition(uniform_analysis(255), rng=random.Random(0))
    assert dark.tempo == 80
    assert bright.tempo == 140


def test_composition_custom_budget(gradient_analysis, rng):
    params = CompositionParams(beat_budget=8)
    composition = create_composition(gradient_analysis, rng=rng, params=params)
    assert composition.duration == 8
    assert all(t.total_beats == pytest.approx(8) for t in composition.tracks)


def test_validate_accepts_dict(sample_composition):
    assert validate_composition(sample_composition.to_dict()) == sample_composition


@pytest.mark.parametrize(
    "data",
    [
        None,
        {"id": 1, "tempo": 100, "tracks": []},
        {
            "id": 1,
            "tempo": 100,
            "tracks": [{"instrument": "piano", "notes": [], "rhythm": []}],
        },
        {
            "id": 1,
            "tempo": 100,
            "tracks": [{"instrument": "piano", "notes": ["C4"], "rhythm": []}],
        },
        {"tempo": "fast"},
        {
            "id": 1,
            "tempo": 100,
            "tracks": [{"instrument": "piano", "notes": ["H4"], "rhythm": [1]}],
        },
        {
            "id": 1,
            "tempo": 100,
            "tracks": [{"instrument": "bell", "notes": ["B9"], "rhythm": [1]}],
        },
    ],
)
def test_validate_rejects(data):
    with pytest.raises(InvalidComposition):
        validate_composition(data)
