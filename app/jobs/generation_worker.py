# app/jobs/generation_worker.py
"""Queue consumer for asynchronous presentation generation.

Status flow per job: ``processing -> completed`` or ``processing -> failed``.
A failure is recorded on the presentation and then re-raised so the queue's
own redelivery / dead-letter policy applies. Jobs are not deduplicated: a
redelivered message regenerates and overwrites the slides. A presentation
deleted while its job runs ends the job quietly and its new slides are removed.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional, Union

from app.adapters import sqs_client
from app.features.generation import generator
from app.features.notifications.service import NotificationService
from app.features.presentations.repository import PresentationNotFoundError, PresentationRepository
from app.features.presentations.schemas import GeneratePresentationMessage, NotificationMessage

logger = logging.getLogger("generation_worker")


def _parse(body: Union[str, bytes, Dict[str, Any]]) -> GeneratePresentationMessage:
    if isinstance(body, (str, bytes)):
        body = json.loads(body)
    return GeneratePresentationMessage.model_validate(body)


async def _notify(connection_id: Optional[str], message: NotificationMessage) -> None:
    if not connection_id:
        return
    try:
        await NotificationService.notify_connection(connection_id, message)
    except Exception:
        logger.exception("Notification for %s failed", message.presentation_id)


async def _discard(presentation_id: str) -> None:
    """The owner deleted the presentation mid-job: drop any slides this job wrote."""
    logger.info("Presentation %s was deleted during generation, discarding output", presentation_id)
    await PresentationRepository.delete_presentation(presentation_id)


async def process_message(body: Union[str, bytes, Dict[str, Any]]) -> None:
    job = _parse(body)
    presentation_id = job.presentation_id
    logger.info("Processing presentation generation for: %s", presentation_id)

    try:
        generated = await generator.generate_presentation(job.title, job.description)
        await PresentationRepository.save_slides(presentation_id, generated["slides"])
        await PresentationRepository.update_presentation_status(presentation_id, "completed")
    except PresentationNotFoundError:
        await _discard(presentation_id)
        return
    except Exception as exc:
        error_message = str(exc) or type(exc).__name__
        logger.exception("Failed to generate presentation %s", presentation_id)
        try:
            await PresentationRepository.update_presentation_status(presentation_id, "failed", error_message)
        except PresentationNotFoundError:
            await _discard(presentation_id)
            return
        await _notify(
            job.connection_id,
            NotificationMessage(type="presentation-failed", presentation_id=presentation_id, error=error_message),
        )
        raise

    await _notify(
        job.connection_id,
        NotificationMessage(type="presentation-completed", presentation_id=presentation_id),
    )
    logger.info("Successfully generated presentation: %s", presentation_id)


async def process_records(records: Iterable[Dict[str, Any]]) -> None:
    """Process SQS records in order; the first failure stops the batch and propagates."""
    for record in records:
        try:
            await process_message(record["body"])
        except Exception:
            logger.error("Error processing message %s", record.get("messageId"))
            raise


def handler(event: Dict[str, Any], context: Any = None) -> None:
    """Lambda entry point for an SQS event source."""
    asyncio.run(process_records(event.get("Records") or []))


async def run_poller(idle_sleep: float = 5.0) -> None:
    """Long-poll the generation queue; messages are deleted only after success."""
    logger.info("Generation worker started")
    while True:
        try:
            messages = await sqs_client.receive_messages()
            for msg in messages:
                try:
                    await process_message(msg["Body"])
                except Exception:
                    # Left on the queue; visibility timeout drives redelivery
                    continue
                await sqs_client.delete_message(msg["ReceiptHandle"])
        except asyncio.CancelledError:
            logger.info("Generation worker cancelled")
            break
        except Exception as e:
            logger.exception("Generation worker error: %s, retrying in %ss", e, idle_sleep)
            await asyncio.sleep(idle_sleep)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_poller())
