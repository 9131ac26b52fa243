from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, Dict, List, Optional

import boto3

from app.Core.config import get_settings

logger = logging.getLogger("generation.bedrock")

_client: Optional[Any] = None
_client_lock = threading.Lock()


class GenerationError(ValueError):
    """The model returned nothing usable."""


def get_client() -> Any:
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            _client = boto3.client(service_name="bedrock-runtime", region_name=get_settings().aws_region)
    return _client


def reset_client() -> None:
    """Drop the cached client (tests only)."""
    global _client
    _client = None


def extract_text(resp_body: Dict[str, Any]) -> str:
    content_list = resp_body.get("content") or []
    parts: List[str] = []
    for block in content_list:
        if isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text") or ""))
        elif isinstance(block, str):
            parts.append(block)
    return "".join(parts).strip()


_FENCE = "```"


def strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith(_FENCE):
        stripped = stripped.strip("`").strip()
        if stripped.lower().startswith("json"):
            stripped = stripped[4:].lstrip()
    return stripped


def parse_json_object(text: str) -> Dict[str, Any]:
    """Pull a JSON object out of model text: raw, fenced, or the first balanced ``{...}``."""
    for candidate in (text, strip_code_fences(text)):
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
        raise GenerationError("Model response is not a JSON object")

    start = text.find("{")
    if start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index, ch in enumerate(text[start:], start=start):
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(text[start : index + 1])
                    except ValueError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
    raise GenerationError("Model response is not valid JSON")


async def invoke_json(system: str, prompt: str, max_tokens: Optional[int] = None) -> Dict[str, Any]:
    """Invoke the configured Bedrock model and return its reply as a JSON object."""
    settings = get_settings()
    payload: Dict[str, Any] = {
        "anthropic_version": "bedrock-2023-05-31",
        "max_tokens": max_tokens or settings.bedrock_max_tokens,
        "temperature": settings.bedrock_temperature,
        "system": system,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                ],
            }
        ],
    }
    body_json = json.dumps(payload)

    def _call() -> Dict[str, Any]:
        response = get_client().invoke_model(
            modelId=settings.bedrock_model_id,
            body=body_json,
            contentType="application/json",
            accept="application/json",
        )
        return json.loads(response["body"].read())

    loop = asyncio.get_running_loop()
    try:
        response_body = await loop.run_in_executor(None, _call)
    except Exception:
        logger.exception("Bedrock invoke failed model=%s", settings.bedrock_model_id)
        raise

    if not isinstance(response_body, dict):
        raise GenerationError("Bedrock response is not a JSON object")
    full_text = extract_text(response_body)
    if not full_text:
        raise GenerationError(f"No response from model: {json.dumps(response_body)[:500]}")
    if response_body.get("stop_reason") == "max_tokens":
        logger.warning("Model output truncated at max_tokens=%s", payload["max_tokens"])
    return parse_json_object(full_text)
