"""Plain-language descriptions of analyzed images and generated music."""

from image_to_music.models import ImageAnalysis


def describe_image(analysis: ImageAnalysis) -> str:
    """Describe an image's brightness and palette in one or two sentences."""
    brightness = analysis.average_brightness
    colorfulness = len(analysis.dominant_colors)

    if brightness > 200:
        mood = "very bright and vibrant"
    elif brightness > 150:
        mood = "well-lit and clear"
    elif brightness > 100:
        mood = "moderately lit"
    else:
        mood = "dark and moody"

    description = f"I see an image that's {mood} with {colorfulness} dominant colors. "
    if colorfulness > 3:
        description += "The variety of colors suggests a dynamic and lively scene."
    else:
        description += (
            "The limited color palette creates a focused and harmonious atmosphere."
        )
    return description


def describe_music(analysis: ImageAnalysis, tempo: int) -> str:
    """Describe the character and tempo of the music made from an image."""
    if analysis.average_brightness > 150:
        character = "bright and uplifting melody"
    else:
        character = "gentle and contemplative piece"

    return (
        f"I've created a {character} at {tempo} BPM, "
        "featuring piano, atmospheric pads, and gentle bells."
    )
