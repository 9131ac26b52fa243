"""Presentation orchestration behind the HTTP routes.

Every slide edit re-saves the full slide list so stored indices stay
contiguous from 0.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Any, Optional

from fastapi import HTTPException, status

from app.adapters import sqs_client
from app.common.deps import CurrentUser, require_owner
from app.features.generation import generator
from app.features.notifications.service import NotificationService
from .repository import MAX_SLIDES, PresentationNotFoundError, PresentationRepository
from .schemas import (
    DEFAULT_THEME,
    AddSlideRequest,
    AddSlideResponse,
    AffectedSlide,
    AffectedSlidesResponse,
    CreatePresentationRequest,
    CreatePresentationResponse,
    GeneratePresentationMessage,
    NotificationMessage,
    Presentation,
    PresentationListResponse,
    PresentationMetadata,
    RefinePresentationRequest,
    SuccessResponse,
    UpdatePresentationRequest,
    UpdateSlideRequest,
)

logger = logging.getLogger("presentations")


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Presentation not found")


def _require_id(presentation_id: Optional[str]) -> str:
    if not presentation_id or not presentation_id.strip():
        raise _bad_request("Presentation ID is required")
    return presentation_id


def _parse_slide_index(raw: Optional[str]) -> int:
    if raw is None or raw == "":
        raise _bad_request("Slide index is required")
    try:
        index = int(raw)
    except ValueError:
        raise _bad_request("Invalid slide index")
    if index < 0:
        raise _bad_request("Invalid slide index")
    return index


def _apply_affected(slides: List[Dict[str, Any]], affected: List[AffectedSlide]) -> None:
    for entry in affected:
        if 0 <= entry.slide_index < len(slides):
            slides[entry.slide_index] = entry.slide


class PresentationService:
    async def _owned_metadata(self, user: CurrentUser, presentation_id: str) -> PresentationMetadata:
        metadata = await PresentationRepository.get_presentation_metadata(presentation_id)
        if metadata is None:
            raise _not_found()
        require_owner(user, metadata)
        return metadata

    async def _presentation(self, presentation_id: str) -> Presentation:
        presentation = await PresentationRepository.get_presentation(presentation_id)
        if presentation is None:
            raise _not_found()
        return presentation

    async def _push_slide_update(
        self, connection_id: Optional[str], presentation_id: str, affected: List[AffectedSlide]
    ) -> None:
        if not connection_id:
            return
        await NotificationService.notify_connection(
            connection_id,
            NotificationMessage(type="slide-updated", presentation_id=presentation_id, affected_slides=affected),
        )

    async def create(self, user: CurrentUser, req: CreatePresentationRequest) -> CreatePresentationResponse:
        if not req.title or not req.description:
            raise _bad_request("Title and description are required")

        presentation_id = generator.new_presentation_id()
        await PresentationRepository.save_presentation_metadata(
            PresentationMetadata(
                id=presentation_id,
                title=req.title,
                description=req.description,
                user_id=user.email,
                status="processing",
                theme=DEFAULT_THEME,
            )
        )
        # Without a queue the presentation stays in "processing"
        await sqs_client.send_generation_job(
            GeneratePresentationMessage(
                presentation_id=presentation_id,
                user_id=user.email,
                title=req.title,
                description=req.description,
                connection_id=req.connection_id,
            )
        )
        return CreatePresentationResponse(
            presentation_id=presentation_id,
            status="processing",
            message="Presentation generation started",
        )

    async def list_for_user(self, user: CurrentUser) -> PresentationListResponse:
        presentations = await PresentationRepository.get_user_presentations(user.email)
        return PresentationListResponse(presentations=presentations, count=len(presentations))

    async def get(self, presentation_id: str) -> Presentation:
        # Presentations are publicly viewable by id
        return await self._presentation(_require_id(presentation_id))

    async def update(
        self, user: CurrentUser, presentation_id: str, req: UpdatePresentationRequest
    ) -> SuccessResponse:
        _require_id(presentation_id)
        await self._owned_metadata(user, presentation_id)
        try:
            await PresentationRepository.update_presentation_metadata(
                presentation_id,
                title=req.title,
                description=req.description,
                theme=req.theme,
            )
        except PresentationNotFoundError:
            # Deleted between the ownership read and the write
            raise _not_found()
        return SuccessResponse(success=True)

    async def delete(self, user: CurrentUser, presentation_id: str) -> SuccessResponse:
        _require_id(presentation_id)
        await self._owned_metadata(user, presentation_id)
        await PresentationRepository.delete_presentation(presentation_id)
        return SuccessResponse(success=True, message="Presentation deleted")

    async def update_slide(
        self, user: CurrentUser, presentation_id: str, raw_index: Optional[str], req: UpdateSlideRequest
    ) -> AffectedSlidesResponse:
        _require_id(presentation_id)
        slide_index = _parse_slide_index(raw_index)
        if not req.instruction:
            raise _bad_request("Instruction is required")

        await self._owned_metadata(user, presentation_id)
        presentation = await self._presentation(presentation_id)
        if slide_index >= len(presentation.slides):
            raise _bad_request(f"Slide index out of range (max: {len(presentation.slides) - 1})")

        affected = await generator.update_slides(presentation, slide_index, req.instruction)
        _apply_affected(presentation.slides, affected)
        await PresentationRepository.save_slides(presentation_id, presentation.slides)
        await self._push_slide_update(req.connection_id, presentation_id, affected)
        return AffectedSlidesResponse(success=True, affected_slides=affected)

    async def add_slide(self, user: CurrentUser, presentation_id: str, req: AddSlideRequest) -> AddSlideResponse:
        _require_id(presentation_id)
        if not req.instruction:
            raise _bad_request("Instruction is required")
        if req.position is None or req.position < 0:
            raise _bad_request("Position must be a non-negative integer")

        await self._owned_metadata(user, presentation_id)
        presentation = await self._presentation(presentation_id)
        # position == len(slides) appends
        if req.position > len(presentation.slides):
            raise _bad_request(f"Position out of range (max: {len(presentation.slides)})")
        if len(presentation.slides) >= MAX_SLIDES:
            raise _bad_request(f"A presentation holds at most {MAX_SLIDES} slides")

        new_slide = await generator.generate_slide(presentation, req.slide_type or "content", req.instruction)
        presentation.slides.insert(req.position, new_slide)
        await PresentationRepository.save_slides(presentation_id, presentation.slides)
        return AddSlideResponse(success=True, slide=new_slide, slide_index=req.position)

    async def delete_slide(self, user: CurrentUser, presentation_id: str, raw_index: Optional[str]) -> SuccessResponse:
        _require_id(presentation_id)
        slide_index = _parse_slide_index(raw_index)

        await self._owned_metadata(user, presentation_id)
        presentation = await self._presentation(presentation_id)
        count = len(presentation.slides)
        if slide_index >= count:
            raise _bad_request(f"Slide index out of range (max: {count - 1})")
        if count <= 1:
            raise _bad_request("Cannot delete the last slide in a presentation")

        del presentation.slides[slide_index]
        await PresentationRepository.save_slides(presentation_id, presentation.slides)
        # save_slides never shrinks the stored list; drop the stale tail record
        await PresentationRepository.delete_slide(presentation_id, count - 1)
        return SuccessResponse(success=True, message=f"Slide {slide_index} deleted successfully")

    async def refine(
        self, user: CurrentUser, presentation_id: str, req: RefinePresentationRequest
    ) -> AffectedSlidesResponse:
        _require_id(presentation_id)
        if not req.instruction:
            raise _bad_request("Instruction is required")

        await self._owned_metadata(user, presentation_id)
        presentation = await self._presentation(presentation_id)

        affected = await generator.refine_presentation(presentation, req.instruction)
        _apply_affected(presentation.slides, affected)
        await PresentationRepository.save_slides(presentation_id, presentation.slides)
        await self._push_slide_update(req.connection_id, presentation_id, affected)
        return AffectedSlidesResponse(success=True, affected_slides=affected)


presentation_service = PresentationService()
