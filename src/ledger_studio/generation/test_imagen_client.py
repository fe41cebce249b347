import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from ledger_studio.errors import ServiceError
from ledger_studio.generation.imagen_client import (
    MISSING_KEY_MESSAGE,
    VARIATIONS,
    CoverArtGenerator,
    GenerationOptions,
    build_prompt,
    friendly_error,
)


def test_prompt_includes_brief():
    prompt = build_prompt(GenerationOptions(
        song_title="Static",
        artist_name="Rae",
        featured_artist="Oso",
        genre="Trap",
        mood="Aggressive",
        style="Cyberpunk",
        lyrics="line one\nline two",
        additional_prompt="purple sky",
    ))

    assert 'Song: "Static" | Artist: Rae | feat. Oso' in prompt
    assert "Genre: Trap | Mood: Aggressive | Style: Cyberpunk" in prompt
    assert "line one line two" in prompt
    assert prompt.rstrip().endswith("CUSTOM REQUESTS: purple sky")


def test_prompt_truncates_lyrics():
    prompt = build_prompt(GenerationOptions(lyrics="x" * 500))

    assert "x" * 200 in prompt
    assert "x" * 201 not in prompt


@pytest.mark.parametrize("message, expected", [
    ("429 Quota exceeded for requests", "quota exceeded"),
    ("API key not valid", "Invalid Google AI API key"),
    ("models/imagen is not found", "Invalid Google AI API key"),
    ("socket closed", "socket closed"),
])
def test_friendly_error(message, expected):
    assert expected in friendly_error(RuntimeError(message))


def test_missing_key_is_rejected_before_any_call():
    generator = CoverArtGenerator(api_key="")

    assert not generator.validate_api_key()
    with pytest.raises(ServiceError) as exc_info:
        generator._require_client()
    assert exc_info.value.message == MISSING_KEY_MESSAGE


@pytest.mark.asyncio
async def test_generate_image_returns_jpeg_data_url(generator, imagen_client):
    url = await generator.generate_image("a prompt")

    assert url == "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode()
    kwargs = imagen_client.aio.models.generate_images.await_args.kwargs
    assert kwargs["model"] == "imagen-4.0-generate-001"
    assert kwargs["config"].number_of_images == 1


@pytest.mark.asyncio
async def test_empty_result_is_an_error(generator, imagen_client):
    imagen_client.aio.models.generate_images = AsyncMock(return_value=SimpleNamespace(generated_images=[]))

    with pytest.raises(ServiceError) as exc_info:
        await generator.generate_image("a prompt")

    assert "No images were generated" in exc_info.value.message


@pytest.mark.asyncio
async def test_variation_prompts_cycle_suffixes(generator, imagen_client):
    images = await generator.generate_variations(GenerationOptions(song_title="Loop", number_of_images=5))

    assert len(images) == 5
    assert images[0].prompt.endswith(f"\n\nVariation style: {VARIATIONS[0]}")
    assert images[4].prompt.endswith(f"\n\nVariation style: {VARIATIONS[0]}")
    assert images[3].prompt.endswith(f"\n\nVariation style: {VARIATIONS[3]}")


@pytest.mark.asyncio
async def test_single_failed_variation_uses_placeholder(generator, imagen_client, monkeypatch):
    ok = SimpleNamespace(generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"ok"))])
    imagen_client.aio.models.generate_images = AsyncMock(
        side_effect=[ok, RuntimeError("boom"), ok, ok]
    )

    images = await generator.generate_variations(GenerationOptions(song_title="Mixed"))

    assert [image.url.split(";")[0] for image in images] == [
        "data:image/jpeg",
        "data:image/png",
        "data:image/jpeg",
        "data:image/jpeg",
    ]


@pytest.mark.asyncio
async def test_variations_without_key_fail():
    with pytest.raises(ServiceError):
        await CoverArtGenerator(api_key=None).generate_variations(GenerationOptions())
