"""Locally drawn placeholder covers used when image generation fails."""

import base64
import io
import random
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

COVER_SIZE = 1024

# Gradient colour pairs, picked by 1-based variant number.
GRADIENTS = [
    ("667eea", "764ba2"),
    ("f093fb", "f5576c"),
    ("4facfe", "00f2fe"),
    ("43e97b", "38f9d7"),
]


def _hex_to_rgb(value: str):
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def _diagonal_gradient(size: int, start: str, end: str) -> Image.Image:
    vertical = Image.linear_gradient("L").resize((size, size))
    horizontal = vertical.transpose(Image.Transpose.TRANSPOSE)
    mask = Image.blend(vertical, horizontal, 0.5)
    return Image.composite(
        Image.new("RGB", (size, size), _hex_to_rgb(end)),
        Image.new("RGB", (size, size), _hex_to_rgb(start)),
        mask,
    )


def render_placeholder(
    title: str,
    artist: str,
    variant: int,
    size: int = COVER_SIZE,
    rng: Optional[random.Random] = None,
) -> Image.Image:
    """Draw a gradient cover with the title, artist and variant number."""
    rng = rng or random.Random()
    start, end = GRADIENTS[variant - 1] if 1 <= variant <= len(GRADIENTS) else GRADIENTS[0]

    cover = _diagonal_gradient(size, start, end)

    # RGBA drawing on an RGB image blends each circle, so overlaps darken.
    draw = ImageDraw.Draw(cover, "RGBA")
    for _ in range(50):
        x = rng.random() * size
        y = rng.random() * size
        radius = rng.random() * 100 + 50
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=(0, 0, 0, 77))
    cover = cover.convert("RGBA")

    text_layer = Image.new("RGBA", cover.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(text_layer)
    center = size / 2
    draw.text((center, center - 40), title[:20], font=ImageFont.load_default(size=60),
              fill=(255, 255, 255, 230), anchor="mm")
    draw.text((center, center + 40), artist[:20], font=ImageFont.load_default(size=40),
              fill=(255, 255, 255, 179), anchor="mm")
    draw.text((center, size - 50), f"Variation {variant}", font=ImageFont.load_default(size=24),
              fill=(255, 255, 255, 128), anchor="mm")

    return Image.alpha_composite(cover, text_layer).convert("RGB")


def placeholder_data_url(title: str, artist: str, variant: int, rng: Optional[random.Random] = None) -> str:
    """Render a placeholder cover and return it as a PNG data URL."""
    buffer = io.BytesIO()
    render_placeholder(title, artist, variant, rng=rng).save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{encoded}"
