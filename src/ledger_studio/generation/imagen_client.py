"""
Cover art generation with Google Imagen.

This module wraps the google-genai client: it builds a compact prompt from a
creative brief, requests one image per call, and loops to produce several
variations. A variation that fails is replaced with a locally drawn
placeholder so the wizard never blocks on the image API.
"""

import base64
import logging
import random
from typing import List, Optional

from google import genai
from google.genai import types
from pydantic import BaseModel, Field

from ..database.models import GeneratedImage
from ..errors import ServiceError
from .placeholder import placeholder_data_url

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "imagen-4.0-generate-001"

VARIATIONS = [
    "vibrant and bold colors",
    "dark and moody atmosphere",
    "minimalist and clean design",
    "dynamic and energetic composition",
]

MISSING_KEY_MESSAGE = (
    "Google AI API key is not configured. Please set GOOGLE_AI_API_KEY in the environment."
)


class GenerationOptions(BaseModel):
    """Inputs for a batch of cover variations."""
    lyrics: str = ""
    additional_prompt: str = ""
    genre: Optional[str] = None
    style: Optional[str] = None
    mood: Optional[str] = None
    song_title: Optional[str] = None
    artist_name: Optional[str] = None
    featured_artist: Optional[str] = None
    number_of_images: int = Field(default=4, ge=1, le=8)


def lyric_sample(lyrics: str, limit: int = 200) -> str:
    """First `limit` characters of the lyrics on a single line."""
    return " ".join(lyrics[:limit].split())


def build_prompt(options: GenerationOptions) -> str:
    """Compose the base prompt for a single cover."""
    text_elements = []
    if options.song_title:
        text_elements.append(f'Song: "{options.song_title}"')
    if options.artist_name:
        text_elements.append(f"Artist: {options.artist_name}")
    if options.featured_artist:
        text_elements.append(f"feat. {options.featured_artist}")

    prompt = "Design a professional music cover art:\n\n"
    if text_elements:
        prompt += "TEXT: " + " | ".join(text_elements) + "\n\n"

    direction = []
    if options.genre:
        direction.append(f"Genre: {options.genre}")
    if options.mood:
        direction.append(f"Mood: {options.mood}")
    if options.style:
        direction.append(f"Style: {options.style}")
    if direction:
        prompt += "VISUAL DIRECTION: " + " | ".join(direction) + "\n\n"

    if options.lyrics:
        prompt += (
            "Mood inspiration (for visual concept only, DO NOT display this text): "
            f"{lyric_sample(options.lyrics)}\n\n"
        )

    prompt += "NO photorealistic people or characters - use illustrations, abstract art, or objects only\n"

    if options.additional_prompt:
        prompt += f"\nCUSTOM REQUESTS: {options.additional_prompt}"

    return prompt


def friendly_error(error: Exception) -> str:
    """Turn an Imagen failure into a message fit for the user."""
    message = str(error)
    lowered = message.lower()
    if "quota" in lowered:
        return (
            "Google AI API quota exceeded. Please check your API limits at "
            "https://aistudio.google.com/app/apikey"
        )
    if "api key" in lowered or "not found" in lowered:
        return "Invalid Google AI API key or insufficient permissions. Please check your configuration."
    return message or "Failed to generate image"


class CoverArtGenerator:
    """Imagen-backed generator for cover art variations."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        client: Optional[genai.Client] = None,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.rng = rng or random.Random()
        self.client = client
        if self.client is None and self.validate_api_key():
            self.client = genai.Client(api_key=api_key)

    def validate_api_key(self) -> bool:
        return bool(self.api_key)

    def _require_client(self) -> genai.Client:
        if not self.validate_api_key() or self.client is None:
            raise ServiceError(MISSING_KEY_MESSAGE)
        return self.client

    async def generate_image(self, prompt: str) -> str:
        """Generate one image and return it as a JPEG data URL."""
        client = self._require_client()

        try:
            response = await client.aio.models.generate_images(
                model=self.model,
                prompt=prompt,
                config=types.GenerateImagesConfig(number_of_images=1),
            )
        except Exception as e:
            logger.error(f"Imagen API error: {e}")
            raise ServiceError(friendly_error(e)) from e

        images = response.generated_images
        if not images or images[0].image is None or not images[0].image.image_bytes:
            raise ServiceError("No images were generated. The prompt may have been blocked.")

        encoded = base64.b64encode(images[0].image.image_bytes).decode("utf-8")
        return f"data:image/jpeg;base64,{encoded}"

    async def generate_variations(self, options: GenerationOptions) -> List[GeneratedImage]:
        """Generate `options.number_of_images` variations one call at a time.

        A failed variation yields a placeholder image instead of an error.
        """
        self._require_client()

        base_prompt = build_prompt(options)
        images: List[GeneratedImage] = []

        for i in range(options.number_of_images):
            final_prompt = f"{base_prompt}\n\nVariation style: {VARIATIONS[i % len(VARIATIONS)]}"
            try:
                url = await self.generate_image(final_prompt)
            except ServiceError as e:
                logger.error(f"Failed to generate variation {i + 1}: {e.message}")
                url = placeholder_data_url(
                    options.song_title or "Untitled",
                    options.artist_name or "Artist",
                    i + 1,
                    rng=self.rng,
                )
            images.append(GeneratedImage(url=url, prompt=final_prompt))

        logger.info(f"Generated {len(images)} cover variations")
        return images
