from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SlideType = Literal[
    "title",
    "section",
    "content",
    "split",
    "quote",
    "metrics-enhanced",
    "multi-column",
    "timeline",
    "metrics",
]
LogoType = Literal["qodea", "custom", "text", "image"]
ColorTheme = Literal["qodea", "custom"]
PresentationStatus = Literal["processing", "completed", "failed"]
NotificationType = Literal["presentation-completed", "presentation-failed", "slide-updated"]


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire and in storage."""

    model_config = ConfigDict(populate_by_name=True)


# SLIDE VARIANTS
#
# Storage and transport treat a slide as an opaque document; these models only
# pin the ``type`` discriminant and the fields each layout is known to use.

class _SlideBase(CamelModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    background: Optional[str] = None


class TitleSlide(_SlideBase):
    type: Literal["title"]
    tagline: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    metrics: Optional[List[Dict[str, Any]]] = None
    cards: Optional[List[Dict[str, Any]]] = None


class SectionSlide(_SlideBase):
    type: Literal["section"]
    title: Optional[str] = None
    sections: Optional[List[Dict[str, Any]]] = None


class ContentSlide(_SlideBase):
    type: Literal["content"]
    title: Optional[str] = None
    content: Optional[Dict[str, Any]] = None


class SplitSlide(_SlideBase):
    type: Literal["split"]
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    reverse: Optional[bool] = None


class QuoteSlide(_SlideBase):
    type: Literal["quote"]
    quote: Optional[Dict[str, Any]] = None
    author: Optional[str] = None


class EnhancedMetricsSlide(_SlideBase):
    type: Literal["metrics-enhanced"]
    title: Optional[str] = None
    enhanced_metrics: Optional[List[Dict[str, Any]]] = Field(default=None, alias="enhancedMetrics")


class MultiColumnSlide(_SlideBase):
    type: Literal["multi-column"]
    title: Optional[str] = None
    subtitle: Optional[str] = None
    columns: Optional[List[Dict[str, Any]]] = None


class TimelineSlide(_SlideBase):
    type: Literal["timeline"]
    title: Optional[str] = None
    timeline: Optional[List[Dict[str, Any]]] = None


class MetricsSlide(_SlideBase):
    type: Literal["metrics"]
    title: Optional[str] = None
    metrics: Optional[List[Dict[str, Any]]] = None


Slide = Annotated[
    Union[
        TitleSlide,
        SectionSlide,
        ContentSlide,
        SplitSlide,
        QuoteSlide,
        EnhancedMetricsSlide,
        MultiColumnSlide,
        TimelineSlide,
        MetricsSlide,
    ],
    Field(discriminator="type"),
]

_slide_adapter: TypeAdapter = TypeAdapter(Slide)


def parse_slide(data: Any) -> Dict[str, Any]:
    """Validate a slide document and return it as a plain dict (camelCase, no nulls)."""
    slide = _slide_adapter.validate_python(data)
    return slide.model_dump(by_alias=True, exclude_none=True)


# PRESENTATION RECORDS

class PresentationTheme(CamelModel):
    logo: LogoType
    logo_text: Optional[str] = Field(default=None, alias="logoText")
    logo_image: Optional[str] = Field(default=None, alias="logoImage")
    colors: ColorTheme
    video_background: Optional[str] = Field(default=None, alias="videoBackground")


DEFAULT_THEME = PresentationTheme(
    logo="image",
    logo_image="/logo.svg",
    colors="qodea",
    video_background="/videos/qodea-video.mp4",
)


class PresentationMetadata(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    user_id: str = Field(alias="userId")
    status: PresentationStatus
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")
    theme: Optional[PresentationTheme] = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")


class Presentation(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    theme: Optional[PresentationTheme] = None
    status: Optional[PresentationStatus] = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    slides: List[Dict[str, Any]] = Field(default_factory=list)


class AffectedSlide(CamelModel):
    slide_index: int = Field(alias="slideIndex")
    slide: Dict[str, Any]


# REQUESTS

class CreatePresentationRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    connection_id: Optional[str] = Field(default=None, alias="connectionId")


class UpdatePresentationRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    theme: Optional[PresentationTheme] = None


class UpdateSlideRequest(CamelModel):
    instruction: Optional[str] = None
    connection_id: Optional[str] = Field(default=None, alias="connectionId")


class AddSlideRequest(CamelModel):
    instruction: Optional[str] = None
    position: Optional[int] = None
    slide_type: Optional[SlideType] = Field(default=None, alias="slideType")


class RefinePresentationRequest(CamelModel):
    instruction: Optional[str] = None
    connection_id: Optional[str] = Field(default=None, alias="connectionId")


# RESPONSES

class CreatePresentationResponse(CamelModel):
    presentation_id: str = Field(alias="presentationId")
    status: PresentationStatus
    message: str


class PresentationListResponse(CamelModel):
    presentations: List[PresentationMetadata]
    count: int


class SuccessResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


class AffectedSlidesResponse(CamelModel):
    success: bool = True
    affected_slides: List[AffectedSlide] = Field(alias="affectedSlides")


class AddSlideResponse(CamelModel):
    success: bool = True
    slide: Dict[str, Any]
    slide_index: int = Field(alias="slideIndex")


# ASYNC JOB / NOTIFICATIONS

class GeneratePresentationMessage(CamelModel):
    presentation_id: str = Field(alias="presentationId")
    user_id: str = Field(alias="userId")
    title: str
    description: str
    connection_id: Optional[str] = Field(default=None, alias="connectionId")


class NotificationMessage(CamelModel):
    type: NotificationType
    presentation_id: Optional[str] = Field(default=None, alias="presentationId")
    error: Optional[str] = None
    affected_slides: Optional[List[AffectedSlide]] = Field(default=None, alias="affectedSlides")
