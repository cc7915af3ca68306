"""Image-to-music generation library.

This package turns an uploaded image into a short generative composition.
It analyzes the image's colours, derives a tempo and three transposed
scales from its brightness, builds a piano, pad and bell track from the
brightness of each image section, and renders the result to MIDI and audio.
Compositions and upload history can be kept in a small key-value store.

The main processing pipeline consists of:
1. Image decoding and normalization to an RGBA raster
2. Colour analysis (dominant colours and a 4x4 section grid)
3. Tempo and scale derivation
4. Track building and composition assembly
5. MIDI rendering, audio synthesis and visualization

Example:
    Basic usage through the pipeline API:

    >>> import random
    >>> from image_to_music.image_processing import load_image_file
    >>> from image_to_music.pipeline import process_complete_pipeline
    >>>
    >>> image = load_image_file("sunset.png")
    >>> result = process_complete_pipeline(image, rng=random.Random(7))
    >>> result.composition.tempo
"""
