from __future__ import annotations

import json
from typing import Any, Dict

BACKGROUNDS = "/images/background1.jpg through /images/background12.jpg"

SLIDE_TYPES_GUIDE = """Supported slide types and their fields:
- "title": tagline, title, subtitle, metrics[{value, label}], cards[{title, description}]
- "section": title, sections[{number, title}]
- "content": title, content{sections[{title, content}], deliverables[{title, description}], benefits{title, items[]}, tips[{title, description}]}
- "split": title, subtitle, content{sections[]}, reverse (bool)
- "quote": quote{text, author}
- "metrics-enhanced": title, enhancedMetrics[{value, label, sublabel, keyDeals[]}]
- "multi-column": title, subtitle, columns[{icon, title, description}]
- "timeline": title, timeline[{date, phase, duration, description}]
- "metrics": title, metrics[{value, label}]
Every slide has a "type" and a "background"."""

TEXT_ONLY_RULES = f"""Slides are text only: no image URLs or custom graphics.
Backgrounds must come from {BACKGROUNDS}."""

AFFECTED_SLIDES_FORMAT = """Return JSON of the form:
{"affectedSlides": [{"slideIndex": 0, "slide": { ...slide object... }}]}"""

GENERATION_SYSTEM_PROMPT = f"""You are a professional presentation designer producing presentations as JSON.

{TEXT_ONLY_RULES}

{SLIDE_TYPES_GUIDE}

Return a single JSON object:
{{"title": "...", "description": "...", "theme": {{"logo": "image", "logoImage": "/logo.svg", "colors": "qodea", "videoBackground": "/videos/qodea-video.mp4"}}, "slides": [ ... ]}}

Create 8-12 slides that tell a coherent story, vary the backgrounds and keep text concise.
Respond with JSON only."""

UPDATE_SYSTEM_PROMPT = f"""You are a professional presentation editor. Given a presentation and an
instruction about one slide, return every slide the change affects.

{TEXT_ONLY_RULES}

{AFFECTED_SLIDES_FORMAT}

A change may touch more than one slide (an agenda slide after a section rename, for example).
Keep the existing style. Respond with JSON only."""

SLIDE_SYSTEM_PROMPT = f"""You are a professional presentation designer. Generate one slide that fits
into an existing presentation.

{TEXT_ONLY_RULES}

{SLIDE_TYPES_GUIDE}

Return only the slide JSON object."""

REFINE_SYSTEM_PROMPT = f"""You are a professional presentation editor. Given a presentation and an
instruction to refine it, return every slide the refinement changes.

{TEXT_ONLY_RULES}

{AFFECTED_SLIDES_FORMAT}

Keep the existing style. Respond with JSON only."""


def _dump(presentation: Dict[str, Any]) -> str:
    return json.dumps(presentation, indent=2, ensure_ascii=False)


def generation_prompt(title: str, description: str) -> str:
    return (
        f"Create a presentation with:\nTitle: {title}\nDescription: {description}\n\n"
        "Generate the complete presentation JSON with 8-12 slides."
    )


def update_prompt(presentation: Dict[str, Any], slide_index: int, instruction: str) -> str:
    return (
        f"Presentation:\n{_dump(presentation)}\n\n"
        f"Instruction: Update slide {slide_index} - {instruction}\n\n"
        "Return the affected slides with their updated content."
    )


def slide_prompt(presentation: Dict[str, Any], slide_type: str, instruction: str) -> str:
    return (
        "Existing presentation:\n"
        f"Title: {presentation.get('title')}\n"
        f"Description: {presentation.get('description') or ''}\n"
        f"Current slide count: {len(presentation.get('slides') or [])}\n\n"
        f'Generate a "{slide_type}" slide for: {instruction}'
    )


def refine_prompt(presentation: Dict[str, Any], instruction: str) -> str:
    return (
        f"Presentation:\n{_dump(presentation)}\n\n"
        f"Instruction: {instruction}\n\n"
        "Return all affected slides with their updated content."
    )
