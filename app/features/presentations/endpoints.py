from __future__ import annotations

from fastapi import APIRouter, Depends

from app.common.deps import CurrentUser, get_current_user
from .schemas import (
    AddSlideRequest,
    AddSlideResponse,
    AffectedSlidesResponse,
    CreatePresentationRequest,
    CreatePresentationResponse,
    Presentation,
    PresentationListResponse,
    RefinePresentationRequest,
    SuccessResponse,
    UpdatePresentationRequest,
    UpdateSlideRequest,
)
from .service import presentation_service

router = APIRouter(prefix="/presentations", tags=["presentations"])


@router.post("", response_model=CreatePresentationResponse)
async def create_presentation(
    req: CreatePresentationRequest,
    user: CurrentUser = Depends(get_current_user),
):
    """Store the presentation as ``processing`` and queue it for generation."""
    return await presentation_service.create(user, req)


@router.get("", response_model=PresentationListResponse, response_model_exclude_none=True)
async def list_presentations(user: CurrentUser = Depends(get_current_user)):
    return await presentation_service.list_for_user(user)


@router.get("/{presentation_id}", response_model=Presentation, response_model_exclude_none=True)
async def get_presentation(presentation_id: str):
    """Public: anyone holding the id can view the presentation."""
    return await presentation_service.get(presentation_id)


@router.put("/{presentation_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def update_presentation(
    presentation_id: str,
    req: UpdatePresentationRequest,
    user: CurrentUser = Depends(get_current_user),
):
    return await presentation_service.update(user, presentation_id, req)


@router.delete("/{presentation_id}", response_model=SuccessResponse)
async def delete_presentation(presentation_id: str, user: CurrentUser = Depends(get_current_user)):
    return await presentation_service.delete(user, presentation_id)


@router.put("/{presentation_id}/slides/{index}", response_model=AffectedSlidesResponse)
async def update_slide(
    presentation_id: str,
    index: str,
    req: UpdateSlideRequest,
    user: CurrentUser = Depends(get_current_user),
):
    """Rewrite one slide from an instruction; the model may touch related slides too."""
    return await presentation_service.update_slide(user, presentation_id, index, req)


@router.post("/{presentation_id}/slides", response_model=AddSlideResponse)
async def add_slide(
    presentation_id: str,
    req: AddSlideRequest,
    user: CurrentUser = Depends(get_current_user),
):
    return await presentation_service.add_slide(user, presentation_id, req)


@router.delete("/{presentation_id}/slides/{index}", response_model=SuccessResponse)
async def delete_slide(presentation_id: str, index: str, user: CurrentUser = Depends(get_current_user)):
    return await presentation_service.delete_slide(user, presentation_id, index)


@router.post("/{presentation_id}/refine", response_model=AffectedSlidesResponse)
async def refine_presentation(
    presentation_id: str,
    req: RefinePresentationRequest,
    user: CurrentUser = Depends(get_current_user),
):
    return await presentation_service.refine(user, presentation_id, req)
