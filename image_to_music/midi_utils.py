"""MIDI generation and audio synthesis utilities.

This module realizes a composition as sound. Each track becomes a sequence
of MIDI note events laid end to end by its rhythm values, all tracks are
written into one standard MIDI file with a General MIDI program per
instrument, and the file can be synthesized to a WAV file for playback.
"""

import io
import logging
import os
import random

import mido
import numpy as np
import pretty_midi
import soundfile as sf
from mido import MidiFile, MidiTrack, Message, MetaMessage

from image_to_music.composition import validate_composition
from image_to_music.models import (
    Composition,
    MidiEvent,
    RenderParams,
    RenderResult,
    Track,
)
from image_to_music.music_transformations import note_to_midi

logger = logging.getLogger(__name__)

# General MIDI programs (0-based): Acoustic Grand Piano, Pad 2 (warm), Tubular Bells
INSTRUMENT_PROGRAMS = {"piano": 0, "pad": 89, "bell": 14}


def _velocity(params: RenderParams, rng: random.Random | None) -> int:
    """Return a fixed velocity, or a random one between 0.3 and 0.6 of full scale."""
    if not params.humanize or rng is None:
        return params.base_velocity
    return max(1, int(127 * (0.3 + rng.random() * 0.3)))


def build_track_events(
    track: Track,
    params: RenderParams | None = None,
    rng: random.Random | None = None,
) -> list[MidiEvent]:
    """Convert a track's notes and rhythm into consecutive MIDI events.

    Each note starts where the previous one ended; durations in beats are
    converted to ticks with ``params.ticks_per_beat``.

    Args:
        track: Track to convert.
        params: Rendering parameters; defaults apply when omitted.
        rng: Random source for velocities when ``params.humanize`` is set.

    Returns:
        List of MidiEvent objects in playing order.
    """
    params = params or RenderParams()

    events: list[MidiEvent] = []
    current_tick = 0
    for note, beats in zip(track.notes, track.rhythm):
        duration_tick = max(int(round(beats * params.ticks_per_beat)), 1)
        events.append(
            MidiEvent(
                note=note_to_midi(note),
                start_tick=current_tick,
                duration_tick=duration_tick,
                velocity=_velocity(params, rng),
            )
        )
        current_tick += duration_tick

    return events


def _events_to_track(
    events: list[MidiEvent], channel: int, program: int, name: str
) -> MidiTrack:
    """Build a mido track with note_on/note_off pairs for the given events."""
    track = MidiTrack()
    track.append(MetaMessage("track_name", name=name, time=0))
    track.append(Message("program_change", program=program, channel=channel, time=0))

    # Create timeline of all note on/off events
    timeline: list[tuple[int, int, str, int, int]] = []
    for event in events:
        end_tick = event.start_tick + event.duration_tick
        # note_off sorts before note_on at equal ticks
        timeline.append((event.start_tick, 1, "note_on", event.note, event.velocity))
        timeline.append((end_tick, 0, "note_off", event.note, 0))
    timeline.sort(key=lambda x: (x[0], x[1]))

    # Convert to MIDI messages with delta times
    previous_tick = 0
    for tick, _, message_type, note, velocity in timeline:
        track.append(
            Message(
                message_type,
                note=note,
                velocity=velocity,
                channel=channel,
                time=tick - previous_tick,
            )
        )
        previous_tick = tick

    return track


def write_midi_file(
    composition: Composition,
    params: RenderParams | None = None,
    rng: random.Random | None = None,
) -> bytes:
    """Generate a multi-track MIDI file from a composition.

    Creates a type 1 MIDI file whose first track carries the tempo and whose
    following tracks hold one instrument each, on its own channel and
    General MIDI program.

    Args:
        composition: Composition to render.
        params: Rendering parameters; defaults apply when omitted.
        rng: Random source for velocities when ``params.humanize`` is set.

    Returns:
        MIDI file data as bytes.

    Raises:
        InvalidComposition: If the composition has no or malformed tracks.
    """
    composition = validate_composition(composition)
    params = params or RenderParams()

    midi_file = MidiFile(type=1, ticks_per_beat=params.ticks_per_beat)

    tempo_track = MidiTrack()
    tempo_track.append(
        MetaMessage("set_tempo", tempo=mido.bpm2tempo(composition.tempo), time=0)
    )
    midi_file.tracks.append(tempo_track)

    for channel, track in enumerate(composition.tracks):
        events = build_track_events(track, params, rng)
        program = INSTRUMENT_PROGRAMS.get(track.instrument, 0)
        midi_file.tracks.append(
            _events_to_track(events, channel, program, track.instrument)
        )

    # Serialize to bytes
    buffer = io.BytesIO()
    midi_file.save(file=buffer)
    buffer.seek(0)
    return buffer.getvalue()


def midi_to_audio(
    midi_path: str, sample_rate: int = 44100, wav_path: str | None = None
) -> str | None:
    """Synthesize a MIDI file to audio using software synthesis.

    Converts a MIDI file to a WAV audio file using the pretty_midi library's
    built-in synthesizer. The output is normalized to prevent clipping.

    Args:
        midi_path: Path to the input MIDI file to synthesize.
        sample_rate: Output sample rate in Hz.
        wav_path: Output path; defaults to the MIDI path with a .wav suffix.

    Returns:
        Path to the generated WAV file, or None if synthesis failed.
    """
    try:
        # Load MIDI file and synthesize to audio
        pretty_midi_obj = pretty_midi.PrettyMIDI(midi_path)
        audio_data = pretty_midi_obj.synthesize(fs=sample_rate)

        # Normalize audio to prevent clipping
        peak_amplitude = np.max(np.abs(audio_data)) if audio_data.size else 0
        if peak_amplitude > 0:
            audio_data = audio_data / peak_amplitude

        wav_path = wav_path or os.path.splitext(midi_path)[0] + ".wav"
        sf.write(wav_path, audio_data, sample_rate)

        return wav_path

    except Exception as e:
        logger.error(f"Failed to synthesize MIDI to audio: {e}")
        return None


def render_composition(
    composition: Composition,
    file_manager,
    params: RenderParams | None = None,
    rng: random.Random | None = None,
) -> RenderResult:
    """Write a composition's MIDI file and synthesized audio to session files.

    Args:
        composition: Composition to render.
        file_manager: Session file manager providing the output paths.
        params: Rendering parameters; defaults apply when omitted.
        rng: Random source for velocities when ``params.humanize`` is set.

    Returns:
        RenderResult with the MIDI bytes and file paths. ``audio_file_path``
        is None when synthesis failed.
    """
    params = params or RenderParams()
    midi_bytes = write_midi_file(composition, params, rng)
    midi_path = file_manager.write_file("midi", midi_bytes, ".mid")

    wav_path = file_manager.get_temp_path("wav", ".wav")
    audio_path = midi_to_audio(midi_path, params.sample_rate, wav_path)

    return RenderResult(
        midi_bytes=midi_bytes,
        midi_file_path=midi_path,
        audio_file_path=audio_path,
    )


def load_audio(audio_path: str) -> tuple[np.ndarray, int]:
    """Read a WAV file as mono float samples and its sample rate."""
    samples, sample_rate = sf.read(audio_path, dtype="float32", always_2d=True)
    return samples.mean(axis=1), sample_rate
