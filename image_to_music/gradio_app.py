"""Gradio web interface for the image-to-music generator.

This module creates and configures the Gradio web application. Users upload
an image, generate a three-track composition from it and listen to the
result, with the analysis shown alongside:
- Section grid and dominant colour palette of the image
- Piano roll of the generated tracks
- Playback timeline and waveform of the rendered audio
- Saved compositions and the upload history, kept across restarts

The timeline, waveform and history panels can each be switched off.
"""

import argparse
import asyncio
import logging
import sys

import gradio as gr

from image_to_music.models import AppFeatures, AppSettings
from image_to_music.storage import CompositionLibrary, UploadHistory, create_store
from image_to_music.ui_updates import (
    cleanup_session,
    clear_history,
    delete_saved,
    generate_music,
    handle_upload,
    history_rows,
    load_history_item,
    play_composition,
    play_saved,
    playlist_rows,
    save_composition,
    seek_timeline,
)

logger = logging.getLogger(__name__)

PLAYLIST_HEADERS = ["#", "Name", "Date", "Tempo"]
HISTORY_HEADERS = ["#", "File", "Date", "Music"]


def create_gradio_interface(settings: AppSettings | None = None) -> gr.Blocks:
    """Create and configure the main Gradio web interface.

    Args:
        settings: Application settings; defaults enable every feature.

    Returns:
        Configured Gradio Blocks interface ready for launching.
    """
    settings = settings or AppSettings()
    features = settings.features

    store = create_store(settings.storage)
    library = CompositionLibrary(store)
    library.load()
    history = UploadHistory(store, max_items=features.max_history)
    history.load()
    tracked_history = history if features.history else None

    # Callbacks get the session from the request; the same key is used on unload
    def on_upload(file_path):
        return handle_upload(file_path, tracked_history)

    def on_generate(image_id, seed, request: gr.Request):
        seed = int(seed) if seed is not None else None
        *outputs, status = generate_music(
            image_id, request.session_hash, settings, tracked_history, seed
        )
        return (*outputs, status, history_rows(history))

    def on_play(composition_data, request: gr.Request):
        return play_composition(composition_data, request.session_hash, settings)

    def on_play_saved(number, request: gr.Request):
        return play_saved(number, library, request.session_hash, settings)

    def on_unload(request: gr.Request) -> None:
        cleanup_session(request.session_hash)

    # Check every 30 minutes, delete files older than 1 hour
    with gr.Blocks(
        title="Image to Music Generator", delete_cache=(1800, 3600)
    ) as interface:
        gr.Markdown("# 🎵 Image to Music Generator")
        gr.Markdown(
            "Upload an image and turn its colours into a short three-track "
            "composition. Brighter images play faster and higher."
        )

        # Current image id and composition across callbacks
        image_state = gr.State(None)
        composition_state = gr.State(None)

        with gr.Row():
            with gr.Column(scale=1):
                upload = gr.Image(
                    label="Upload Image",
                    type="filepath",
                    sources=["upload"],
                    height=240,
                )
                preview = gr.Image(
                    label="Current Image", interactive=False, height=240
                )
                seed = gr.Number(
                    label="Seed",
                    value=None,
                    precision=0,
                    info="Optional; the same seed gives the same rhythms.",
                )
                with gr.Row():
                    generate_button = gr.Button("Generate Music", variant="primary")
                    play_button = gr.Button("Play Again")
                    save_button = gr.Button("Save to Collection")
                status = gr.Textbox(label="Status", interactive=False)

                with gr.Group():
                    gr.Markdown("### Image Analysis")
                    image_description = gr.Textbox(
                        label="Image", interactive=False, lines=2
                    )
                    with gr.Row():
                        section_grid = gr.Image(label="Sections", height=200)
                        palette = gr.Image(label="Dominant Colours", height=60)

            with gr.Column(scale=2):
                with gr.Group():
                    gr.Markdown("### Composition")
                    music_description = gr.Textbox(
                        label="Music", interactive=False, lines=2
                    )
                    piano_roll = gr.Plot(
                        label="Piano Roll Visualization", elem_id="piano-roll-plot"
                    )
                    with gr.Row():
                        audio_player = gr.Audio(
                            label="Listen to the Music",
                            type="filepath",
                            format="wav",
                            autoplay=False,
                        )
                        midi_download = gr.File(
                            label="Download MIDI File", type="filepath"
                        )

                with gr.Group(visible=features.timeline):
                    timeline = gr.Slider(
                        0, 100, value=0, step=0.5, label="Position (%)"
                    )
                    timeline_text = gr.Textbox(
                        label="Timeline", value="0:00 / 0:00", interactive=False
                    )

                with gr.Group(visible=features.waveform):
                    waveform = gr.Plot(label="Waveform and Spectrum")

                with gr.Group():
                    gr.Markdown("### My Music Collection")
                    playlist = gr.Dataframe(
                        headers=PLAYLIST_HEADERS,
                        value=playlist_rows(library),
                        interactive=False,
                    )
                    with gr.Row():
                        saved_number = gr.Number(label="Number", precision=0)
                        play_saved_button = gr.Button("Play")
                        delete_saved_button = gr.Button("Delete", variant="stop")

                with gr.Group(visible=features.history):
                    gr.Markdown("### Upload History")
                    history_table = gr.Dataframe(
                        headers=HISTORY_HEADERS,
                        value=history_rows(history),
                        interactive=False,
                    )
                    with gr.Row():
                        history_number = gr.Number(label="Number", precision=0)
                        load_history_button = gr.Button("Load")
                        clear_history_button = gr.Button("Clear History")

        upload.upload(
            fn=on_upload,
            inputs=[upload],
            outputs=[image_state, preview, status],
        ).then(
            fn=lambda: history_rows(history),
            outputs=[history_table],
        )

        generate_button.click(
            fn=on_generate,
            inputs=[image_state, seed],
            outputs=[
                composition_state,
                image_description,
                music_description,
                section_grid,
                palette,
                piano_roll,
                audio_player,
                midi_download,
                timeline_text,
                waveform,
                status,
                history_table,
            ],
        )

        play_button.click(
            fn=on_play,
            inputs=[composition_state],
            outputs=[audio_player, midi_download, piano_roll, timeline_text, status],
        )

        save_button.click(
            fn=lambda data: save_composition(data, library),
            inputs=[composition_state],
            outputs=[playlist, status],
        )

        play_saved_button.click(
            fn=on_play_saved,
            inputs=[saved_number],
            outputs=[
                composition_state,
                audio_player,
                midi_download,
                piano_roll,
                timeline_text,
                status,
            ],
        )

        delete_saved_button.click(
            fn=lambda number: delete_saved(number, library),
            inputs=[saved_number],
            outputs=[playlist, status],
        )

        load_history_button.click(
            fn=lambda number: load_history_item(number, history),
            inputs=[history_number],
            outputs=[image_state, preview, composition_state, status],
        )

        clear_history_button.click(
            fn=lambda: clear_history(history),
            outputs=[history_table],
        )

        timeline.change(
            fn=seek_timeline,
            inputs=[timeline, composition_state],
            outputs=[timeline_text],
        )

        interface.unload(on_unload)

    return interface


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Image to music web interface")
    parser.add_argument("--no-history", action="store_true", help="Disable history")
    parser.add_argument(
        "--no-timeline", action="store_true", help="Hide the playback timeline"
    )
    parser.add_argument(
        "--no-waveform", action="store_true", help="Hide the waveform view"
    )
    parser.add_argument("--port", type=int, default=7860, help="Server port")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    # Reduce logging verbosity for asyncio to suppress connection noise
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    # Windows-specific: Use SelectorEventLoop to avoid ProactorEventLoop issues
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    settings = AppSettings(
        features=AppFeatures(
            history=not args.no_history,
            timeline=not args.no_timeline,
            waveform=not args.no_waveform,
        )
    )
    demo = create_gradio_interface(settings)
    demo.launch(share=False, show_error=True, server_port=args.port)


if __name__ == "__main__":
    main()
