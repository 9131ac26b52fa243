from __future__ import annotations

import asyncio
import functools
import logging
import threading
from typing import Any, Dict, List, Optional

import boto3

from app.Core.config import get_settings
from app.features.presentations.schemas import GeneratePresentationMessage

logger = logging.getLogger("queue")

_client: Optional[Any] = None
_lock = threading.Lock()


def get_client() -> Any:
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is None:
            _client = boto3.client("sqs", region_name=get_settings().aws_region)
    return _client


def reset_client() -> None:
    global _client
    _client = None


async def _run(fn, /, **kwargs) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, **kwargs))


async def send_generation_job(message: GeneratePresentationMessage) -> bool:
    """Enqueue a generation job. Returns ``False`` when no queue is configured."""
    queue_url = get_settings().sqs_queue_url
    if not queue_url:
        logger.warning("SQS_QUEUE_URL not configured - presentation %s will not be generated", message.presentation_id)
        return False
    body = message.model_dump_json(by_alias=True, exclude_none=True)
    await _run(get_client().send_message, QueueUrl=queue_url, MessageBody=body)
    logger.info("queued generation job presentation_id=%s", message.presentation_id)
    return True


async def receive_messages(max_messages: int = 10, wait_seconds: int = 20) -> List[Dict[str, Any]]:
    resp = await _run(
        get_client().receive_message,
        QueueUrl=get_settings().sqs_queue_url,
        MaxNumberOfMessages=max_messages,
        WaitTimeSeconds=wait_seconds,
    )
    return list(resp.get("Messages") or [])


async def delete_message(receipt_handle: str) -> None:
    await _run(
        get_client().delete_message,
        QueueUrl=get_settings().sqs_queue_url,
        ReceiptHandle=receipt_handle,
    )
