"""Campaign, form schema and submission API schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.campaign_constants import CampaignStatus


class FormFieldDescriptor(BaseModel):
    """One input of a campaign's dynamic form."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = Field(..., description="Key used in the submitted payload.")
    label: Optional[str] = None
    type: str = Field("text", description="Open-ended input type (text, email, phone, select, ...).")
    required: bool = False
    placeholder: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[str]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("name must not be blank")
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if value is None:
            return "text"
        if isinstance(value, str):
            return value.strip().lower() or "text"
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item is not None]
        return value

    @model_validator(mode="after")
    def _fill_defaults(self) -> "FormFieldDescriptor":
        if not self.id:
            self.id = self.name
        if not self.label:
            self.label = self.name
        return self


class CampaignCtaInput(BaseModel):
    label: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class CampaignCtaSchema(BaseModel):
    label: str
    url: str
    order: int


class CampaignCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    shortDescription: Optional[str] = None
    content: Optional[str] = None
    imageUrls: List[str] = Field(default_factory=list)
    videoUrls: List[str] = Field(default_factory=list)
    status: CampaignStatus = CampaignStatus.DRAFT
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    enableForm: bool = False
    formFields: List[FormFieldDescriptor] = Field(default_factory=list)
    successMessage: Optional[str] = None
    redirectUrl: Optional[str] = None
    ctas: List[CampaignCtaInput] = Field(default_factory=list)


class CampaignUpdateRequest(BaseModel):
    """Partial update; only keys present in the body are applied."""

    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    shortDescription: Optional[str] = None
    content: Optional[str] = None
    imageUrls: Optional[List[str]] = None
    videoUrls: Optional[List[str]] = None
    status: Optional[CampaignStatus] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    enableForm: Optional[bool] = None
    formFields: Optional[List[FormFieldDescriptor]] = None
    successMessage: Optional[str] = None
    redirectUrl: Optional[str] = None
    ctas: Optional[List[CampaignCtaInput]] = None


class CampaignSummaryResponse(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    shortDescription: Optional[str] = None
    status: CampaignStatus
    imageUrls: List[str] = Field(default_factory=list)
    videoUrls: List[str] = Field(default_factory=list)
    enableForm: bool
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    views: int = 0
    ctas: List[CampaignCtaSchema] = Field(default_factory=list)
    submissionCount: int = 0
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class CampaignDetailResponse(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    shortDescription: Optional[str] = None
    content: Optional[str] = None
    status: CampaignStatus
    imageUrls: List[str] = Field(default_factory=list)
    videoUrls: List[str] = Field(default_factory=list)
    enableForm: bool
    formFields: List[FormFieldDescriptor] = Field(default_factory=list)
    ctas: List[CampaignCtaSchema] = Field(default_factory=list)
    successMessage: Optional[str] = None
    redirectUrl: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None


class CampaignSubmissionSchema(BaseModel):
    id: uuid.UUID
    campaignId: uuid.UUID
    data: Dict[str, Any]
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    createdAt: datetime
    submittedAt: datetime


class CampaignAdminResponse(CampaignDetailResponse):
    views: int = 0
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    submissionCount: int = 0
    recentSubmissions: List[CampaignSubmissionSchema] = Field(default_factory=list)


class CampaignRefSchema(BaseModel):
    id: uuid.UUID
    title: str
    slug: str


class CampaignSubmissionWithCampaignSchema(CampaignSubmissionSchema):
    campaign: Optional[CampaignRefSchema] = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class CampaignSubmissionPageResponse(BaseModel):
    submissions: List[CampaignSubmissionSchema]
    pagination: PaginationSchema


class CampaignSubmissionFeedResponse(BaseModel):
    submissions: List[CampaignSubmissionWithCampaignSchema]
    pagination: PaginationSchema


class CampaignSubmissionRequest(BaseModel):
    """Visitor payload; the shape of ``formData`` is checked by the validator."""

    formData: Any = None


class CampaignSubmissionIntakeRequest(BaseModel):
    campaignId: str = Field(..., min_length=1)
    data: Any = None


class CampaignSubmissionAcceptedResponse(BaseModel):
    success: bool = True
    submissionId: uuid.UUID


class CampaignDeleteResponse(BaseModel):
    success: bool = True
    deletedSubmissions: int = 0


class CampaignAnalyticsResponse(BaseModel):
    campaignId: uuid.UUID
    views: int
    totalSubmissions: int
    submissionsToday: int
    submissionsThisWeek: int
    submissionsThisMonth: int
    averageSubmissionsPerDay: float
    conversionRate: float


__all__ = [
    "CampaignAdminResponse",
    "CampaignAnalyticsResponse",
    "CampaignCreateRequest",
    "CampaignCtaInput",
    "CampaignCtaSchema",
    "CampaignDeleteResponse",
    "CampaignDetailResponse",
    "CampaignRefSchema",
    "CampaignSubmissionAcceptedResponse",
    "CampaignSubmissionFeedResponse",
    "CampaignSubmissionIntakeRequest",
    "CampaignSubmissionPageResponse",
    "CampaignSubmissionRequest",
    "CampaignSubmissionSchema",
    "CampaignSubmissionWithCampaignSchema",
    "CampaignSummaryResponse",
    "CampaignUpdateRequest",
    "FormFieldDescriptor",
    "PaginationSchema",
]
