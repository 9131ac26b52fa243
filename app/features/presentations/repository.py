"""Presentation persistence on a single DynamoDB table.

Access patterns:
  * metadata:            pk=PRESENTATION#{id}, sk=METADATA
  * slides:              pk=PRESENTATION#{id}, sk begins_with SLIDE#
  * presentations by user: GSI1 gsi1pk=USER#{userId}, gsi1sk=PRESENTATION#{id}

Key strings must stay byte-for-byte stable; existing deployments hold data
written with them.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.Core.config import get_settings
from app.DB.dynamodb import get_table
from .schemas import (
    Presentation,
    PresentationMetadata,
    PresentationStatus,
    PresentationTheme,
)

logger = logging.getLogger("presentations.repo")

# Hard ceiling of BatchWriteItem
BATCH_SIZE = 25
BATCH_RETRY_DELAY_SECONDS = 1.0
MAX_SLIDES = 1000

METADATA_SK = "METADATA"
SLIDE_SK_PREFIX = "SLIDE#"

_METADATA_FIELDS = (
    "id",
    "title",
    "description",
    "userId",
    "status",
    "createdAt",
    "updatedAt",
    "theme",
    "errorMessage",
)


class PresentationNotFoundError(LookupError):
    """The presentation's metadata record does not exist (e.g. deleted mid-update)."""


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


# ------------------------
# Keys
# ------------------------
def presentation_pk(presentation_id: str) -> str:
    return f"PRESENTATION#{presentation_id}"


def slide_sk(slide_index: int) -> str:
    # Three-digit padding keeps lexicographic and numeric order identical
    if slide_index < 0 or slide_index >= MAX_SLIDES:
        raise ValueError(f"Slide index {slide_index} outside supported range 0..{MAX_SLIDES - 1}")
    return f"{SLIDE_SK_PREFIX}{slide_index:03d}"


def user_gsi_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def user_gsi_sk(presentation_id: str) -> str:
    return f"PRESENTATION#{presentation_id}"


def _now_ms() -> int:
    return int(time.time() * 1000)


# ------------------------
# Value conversion
# ------------------------
def to_dynamo(value: Any) -> Any:
    """Drop ``None`` values and turn floats into ``Decimal`` for DynamoDB."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _to_metadata(item: Dict[str, Any]) -> PresentationMetadata:
    data = from_dynamo(item)
    return PresentationMetadata.model_validate({k: data[k] for k in _METADATA_FIELDS if k in data})


async def _run(fn, /, **kwargs) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, **kwargs))


async def _query_all(table: Any, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    while True:
        resp = await _run(table.query, **kwargs)
        items.extend(resp.get("Items") or [])
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


async def _batch_write(table: Any, requests: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    resp = await _run(table.meta.client.batch_write_item, RequestItems={table.name: requests})
    unprocessed = resp.get("UnprocessedItems") or {}
    return list(unprocessed.get(table.name) or [])


class PresentationRepository:
    """Every method propagates storage errors after logging them."""

    @staticmethod
    async def get_presentation(presentation_id: str) -> Optional[Presentation]:
        """Metadata plus slides ordered by ``slideIndex``; ``None`` if unknown."""
        table = get_table()
        pk = presentation_pk(presentation_id)
        try:
            resp = await _run(table.get_item, Key={"pk": pk, "sk": METADATA_SK})
            item = resp.get("Item")
            if not item:
                return None
            metadata = _to_metadata(item)

            slide_items = await _query_all(
                table,
                KeyConditionExpression=Key("pk").eq(pk) & Key("sk").begins_with(SLIDE_SK_PREFIX),
            )
            slide_items = [from_dynamo(it) for it in slide_items]
            slide_items.sort(key=lambda it: it["slideIndex"])

            return Presentation(
                id=metadata.id,
                title=metadata.title,
                description=metadata.description,
                theme=metadata.theme,
                status=metadata.status,
                error_message=metadata.error_message,
                slides=[it["slide"] for it in slide_items],
            )
        except Exception:
            logger.exception("Error getting presentation %s", presentation_id)
            raise

    @staticmethod
    async def get_presentation_metadata(presentation_id: str) -> Optional[PresentationMetadata]:
        table = get_table()
        try:
            resp = await _run(
                table.get_item,
                Key={"pk": presentation_pk(presentation_id), "sk": METADATA_SK},
            )
            item = resp.get("Item")
            return _to_metadata(item) if item else None
        except Exception:
            logger.exception("Error getting presentation metadata %s", presentation_id)
            raise

    @staticmethod
    async def save_presentation_metadata(metadata: PresentationMetadata) -> None:
        """Upsert metadata, keeping the original ``createdAt`` if one exists.

        The read and the write are separate calls; concurrent saves of the same
        id may race on ``createdAt``.
        """
        table = get_table()
        try:
            now = _now_ms()
            existing = await PresentationRepository.get_presentation_metadata(metadata.id)
            created_at = existing.created_at if existing and existing.created_at else now

            record = metadata.model_dump(by_alias=True, exclude_none=True)
            record.update({"createdAt": created_at, "updatedAt": now})
            item = {
                "pk": presentation_pk(metadata.id),
                "sk": METADATA_SK,
                "gsi1pk": user_gsi_pk(metadata.user_id),
                "gsi1sk": user_gsi_sk(metadata.id),
                **record,
            }
            await _run(table.put_item, Item=to_dynamo(item))
        except Exception:
            logger.exception("Error saving presentation metadata %s", metadata.id)
            raise

    @staticmethod
    async def save_slide(presentation_id: str, slide_index: int, slide: Dict[str, Any]) -> None:
        table = get_table()
        try:
            item = {
                "pk": presentation_pk(presentation_id),
                "sk": slide_sk(slide_index),
                "slideIndex": slide_index,
                "slide": slide,
                "updatedAt": _now_ms(),
            }
            await _run(table.put_item, Item=to_dynamo(item))
        except Exception:
            logger.exception("Error saving slide %s of %s", slide_index, presentation_id)
            raise

    @staticmethod
    async def save_slides(presentation_id: str, slides: List[Dict[str, Any]]) -> None:
        """Write one record per list position, 25 per batch.

        Records left unprocessed by a batch are re-sent once after a fixed delay.
        Whatever the retry leaves unprocessed is logged and dropped: this is not
        a durability guarantee. Records past ``len(slides)`` are left untouched.
        """
        if len(slides) > MAX_SLIDES:
            raise ValueError(f"A presentation holds at most {MAX_SLIDES} slides")
        table = get_table()
        try:
            now = _now_ms()
            pk = presentation_pk(presentation_id)
            requests = [
                {
                    "PutRequest": {
                        "Item": to_dynamo({
                            "pk": pk,
                            "sk": slide_sk(index),
                            "slideIndex": index,
                            "slide": slide,
                            "updatedAt": now,
                        })
                    }
                }
                for index, slide in enumerate(slides)
            ]

            for start in range(0, len(requests), BATCH_SIZE):
                batch = requests[start : start + BATCH_SIZE]
                unprocessed = await _batch_write(table, batch)
                if unprocessed:
                    logger.warning(
                        "%d slide writes unprocessed for %s, retrying once",
                        len(unprocessed),
                        presentation_id,
                    )
                    await asyncio.sleep(BATCH_RETRY_DELAY_SECONDS)
                    remaining = await _batch_write(table, unprocessed)
                    if remaining:
                        logger.warning(
                            "%d slide writes still unprocessed for %s after retry; dropping",
                            len(remaining),
                            presentation_id,
                        )
        except Exception:
            logger.exception("Error saving slides for %s", presentation_id)
            raise

    @staticmethod
    async def delete_slide(presentation_id: str, slide_index: int) -> None:
        table = get_table()
        try:
            await _run(
                table.delete_item,
                Key={"pk": presentation_pk(presentation_id), "sk": slide_sk(slide_index)},
            )
        except Exception:
            logger.exception("Error deleting slide %s of %s", slide_index, presentation_id)
            raise

    @staticmethod
    async def update_presentation_status(
        presentation_id: str,
        status: PresentationStatus,
        error_message: Optional[str] = None,
    ) -> None:
        """Set ``status``; an existing ``errorMessage`` is never cleared here.

        Raises ``PresentationNotFoundError`` when the metadata record is gone.
        """
        table = get_table()
        try:
            expressions = ["#status = :status", "updatedAt = :updatedAt"]
            values: Dict[str, Any] = {":status": status, ":updatedAt": _now_ms()}
            if error_message:
                expressions.append("errorMessage = :errorMessage")
                values[":errorMessage"] = error_message

            await _run(
                table.update_item,
                Key={"pk": presentation_pk(presentation_id), "sk": METADATA_SK},
                UpdateExpression="SET " + ", ".join(expressions),
                ConditionExpression=Attr("pk").exists(),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues=values,
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                logger.warning("Status update skipped, presentation %s no longer exists", presentation_id)
                raise PresentationNotFoundError(presentation_id) from exc
            logger.exception("Error updating presentation status %s", presentation_id)
            raise
        except Exception:
            logger.exception("Error updating presentation status %s", presentation_id)
            raise

    @staticmethod
    async def update_presentation_metadata(
        presentation_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        theme: Optional[PresentationTheme] = None,
    ) -> None:
        """Partial update; a field left as ``None`` is not written. Never creates the record."""
        table = get_table()
        try:
            expressions = ["updatedAt = :updatedAt"]
            names: Dict[str, str] = {}
            values: Dict[str, Any] = {":updatedAt": _now_ms()}
            fields = {
                "title": title,
                "description": description,
                "theme": theme.model_dump(by_alias=True, exclude_none=True) if theme is not None else None,
            }
            for name, value in fields.items():
                if value is None:
                    continue
                expressions.append(f"#{name} = :{name}")
                names[f"#{name}"] = name
                values[f":{name}"] = to_dynamo(value)

            kwargs: Dict[str, Any] = {
                "Key": {"pk": presentation_pk(presentation_id), "sk": METADATA_SK},
                "UpdateExpression": "SET " + ", ".join(expressions),
                "ConditionExpression": Attr("pk").exists(),
                "ExpressionAttributeValues": values,
            }
            if names:
                kwargs["ExpressionAttributeNames"] = names
            await _run(table.update_item, **kwargs)
        except ClientError as exc:
            if _is_condition_failure(exc):
                logger.warning("Metadata update skipped, presentation %s no longer exists", presentation_id)
                raise PresentationNotFoundError(presentation_id) from exc
            logger.exception("Error updating presentation metadata %s", presentation_id)
            raise
        except Exception:
            logger.exception("Error updating presentation metadata %s", presentation_id)
            raise

    @staticmethod
    async def get_user_presentations(user_id: str) -> List[PresentationMetadata]:
        """Owner's presentations, newest ``createdAt`` first (sorted here, not by the index)."""
        table = get_table()
        try:
            items = await _query_all(
                table,
                IndexName=get_settings().table_gsi_name,
                KeyConditionExpression=Key("gsi1pk").eq(user_gsi_pk(user_id)),
            )
            presentations = [_to_metadata(it) for it in items]
            presentations.sort(key=lambda m: m.created_at or 0, reverse=True)
            return presentations
        except Exception:
            logger.exception("Error getting presentations for user %s", user_id)
            raise

    @staticmethod
    async def delete_presentation(presentation_id: str) -> None:
        """Delete metadata and every slide; unknown ids are a no-op.

        Slides go first and metadata last, so an interrupted delete leaves a
        presentation that can still be found and deleted again.
        """
        table = get_table()
        try:
            items = await _query_all(
                table,
                KeyConditionExpression=Key("pk").eq(presentation_pk(presentation_id)),
            )
            if not items:
                return

            items.sort(key=lambda it: it["sk"] == METADATA_SK)
            requests = [{"DeleteRequest": {"Key": {"pk": it["pk"], "sk": it["sk"]}}} for it in items]
            for start in range(0, len(requests), BATCH_SIZE):
                unprocessed = await _batch_write(table, requests[start : start + BATCH_SIZE])
                if unprocessed:
                    raise RuntimeError(
                        f"Delete of presentation {presentation_id} left {len(unprocessed)} records unprocessed"
                    )
        except Exception:
            logger.exception("Error deleting presentation %s", presentation_id)
            raise
