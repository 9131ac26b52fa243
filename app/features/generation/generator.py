"""Presentation content generation on top of the Bedrock client."""

from __future__ import annotations

import logging
import secrets
import string
import time
from typing import Any, Dict, List

from pydantic import ValidationError

from app.features.presentations.schemas import AffectedSlide, Presentation, parse_slide
from . import prompts
from .bedrock_client import GenerationError, invoke_json

logger = logging.getLogger("generation")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_presentation_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"presentation-{int(time.time() * 1000)}-{suffix}"


def _context(presentation: Presentation) -> Dict[str, Any]:
    return presentation.model_dump(by_alias=True, exclude_none=True, exclude={"status", "error_message"})


def _slides(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        raise GenerationError("Invalid presentation structure from model: slides must be a list")
    try:
        return [parse_slide(slide) for slide in raw]
    except ValidationError as exc:
        raise GenerationError(f"Invalid slide from model: {exc.errors()[0].get('msg')}") from exc


def _affected(parsed: Dict[str, Any]) -> List[AffectedSlide]:
    raw = parsed.get("affectedSlides")
    if not isinstance(raw, list):
        raise GenerationError("Invalid response structure from model: affectedSlides must be a list")
    try:
        return [
            AffectedSlide(slide_index=entry["slideIndex"], slide=parse_slide(entry["slide"]))
            for entry in raw
        ]
    except (KeyError, TypeError, ValidationError) as exc:
        raise GenerationError(f"Invalid affected slide from model: {exc}") from exc


async def generate_presentation(title: str, description: str) -> Dict[str, Any]:
    """Generate a full presentation; the result always carries ``id`` and ``slides``."""
    parsed = await invoke_json(
        prompts.GENERATION_SYSTEM_PROMPT,
        prompts.generation_prompt(title, description),
    )
    if "slides" not in parsed:
        raise GenerationError("Invalid presentation structure from model: missing slides")
    parsed["slides"] = _slides(parsed["slides"])
    if not parsed.get("id"):
        parsed["id"] = new_presentation_id()
    logger.info("generated presentation title=%r slides=%d", title, len(parsed["slides"]))
    return parsed


async def update_slides(presentation: Presentation, slide_index: int, instruction: str) -> List[AffectedSlide]:
    parsed = await invoke_json(
        prompts.UPDATE_SYSTEM_PROMPT,
        prompts.update_prompt(_context(presentation), slide_index, instruction),
    )
    return _affected(parsed)


async def generate_slide(presentation: Presentation, slide_type: str, instruction: str) -> Dict[str, Any]:
    parsed = await invoke_json(
        prompts.SLIDE_SYSTEM_PROMPT,
        prompts.slide_prompt(_context(presentation), slide_type, instruction),
    )
    # Some replies wrap the slide as {"slide": {...}}
    if "type" not in parsed and isinstance(parsed.get("slide"), dict):
        parsed = parsed["slide"]
    parsed.setdefault("type", slide_type)
    try:
        return parse_slide(parsed)
    except ValidationError as exc:
        raise GenerationError(f"Invalid slide from model: {exc.errors()[0].get('msg')}") from exc


async def refine_presentation(presentation: Presentation, instruction: str) -> List[AffectedSlide]:
    parsed = await invoke_json(
        prompts.REFINE_SYSTEM_PROMPT,
        prompts.refine_prompt(_context(presentation), instruction),
    )
    return _affected(parsed)
