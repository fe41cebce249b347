"""Image generation module for Ledger Cover Studio."""

from .imagen_client import CoverArtGenerator, GenerationOptions, build_prompt
from .placeholder import placeholder_data_url, render_placeholder

__all__ = [
    "CoverArtGenerator",
    "GenerationOptions",
    "build_prompt",
    "placeholder_data_url",
    "render_placeholder",
]
