"""
Title/description generation over an OpenAI-compatible chat completions API
(OpenRouter by default), fed with the video's auto-generated transcript.
"""
import logging
from typing import Optional

import httpx

from app.config import get_settings
from app.services.errors import ProviderError

logger = logging.getLogger(__name__)

TITLE_SYSTEM_PROMPT = """Your task is to generate an SEO-focused title for a YouTube video based on its transcript. Please follow these guidelines:
- Be concise but descriptive, using relevant keywords to improve discoverability.
- Highlight the most compelling or unique aspect of the video content.
- Avoid jargon or overly complex language unless it directly supports searchability.
- Use action-oriented phrasing or clear value propositions where applicable.
- Ensure the title is 3-8 words long and no more than 100 characters.
- ONLY return the title as plain text. Do not add quotes or any additional formatting."""

DESCRIPTION_SYSTEM_PROMPT = """Your task is to summarize the transcript of a video. Please follow these guidelines:
- Be brief. Condense the content into a summary that captures the key points and main ideas without losing important details.
- Avoid jargon or overly complex language unless necessary for the context.
- Focus on the most critical information, ignoring filler, repetitive statements, or irrelevant tangents.
- ONLY return the summary, no other text, annotations, or comments.
- Aim for a summary that is 3-5 sentences long and no more than 200 characters."""


async def fetch_transcript(url: str) -> str:
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
    except httpx.HTTPError as e:
        logger.error(f"Transcript download failed: {e}")
        raise ProviderError(f"Transcript download failed: {e}") from e


async def generate_text(system_prompt: str, transcript: str) -> Optional[str]:
    """Return the first completion's content, or None if the model gave nothing."""
    settings = get_settings()
    body = {
        "model": settings.generation_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": transcript},
        ],
    }
    try:
        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.post(
                f"{settings.generation_api_base}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {settings.open_router_api_key}"},
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.error(f"Generation API call failed: {e}")
        raise ProviderError(f"Generation API call failed: {e}") from e

    choices = data.get("choices") or []
    if not choices:
        return None
    content = (choices[0].get("message") or {}).get("content")
    return content.strip() if content else None
