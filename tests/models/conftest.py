import pytest
from image_to_music.models import MidiEvent, SectionStat, Track


@pytest.fixture
def valid_track():
    return Track(instrument="piano", notes=["C4", "D4"], rhythm=[1, 0.5])


@pytest.fixture
def valid_midievent():
    return MidiEvent(note=60, start_tick=0, duration_tick=1)


@pytest.fixture
def gray_sections():
    return [SectionStat(average_color=(100.0, 100.0, 100.0)) for _ in range(16)]
