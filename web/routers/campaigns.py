"""Campaign pages, dynamic-form submissions and admin maintenance endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from core.campaign_constants import CampaignStatus
from database import get_db
from models.campaign import Campaign, CampaignSubmission
from schemas.api.campaign import (
    CampaignAdminResponse,
    CampaignAnalyticsResponse,
    CampaignCreateRequest,
    CampaignCtaSchema,
    CampaignDeleteResponse,
    CampaignDetailResponse,
    CampaignRefSchema,
    CampaignSubmissionAcceptedResponse,
    CampaignSubmissionPageResponse,
    CampaignSubmissionRequest,
    CampaignSubmissionSchema,
    CampaignSubmissionWithCampaignSchema,
    CampaignSummaryResponse,
    CampaignUpdateRequest,
    PaginationSchema,
)
from services import campaign_service, campaign_submission_service
from services.campaign_errors import CampaignServiceError
from services.campaign_submission_service import DEFAULT_PAGE_SIZE, SubmissionMetadata
from services.form_schema import load_form_fields
from services.submission_rate_limiter import SubmissionRateLimiter
from web.deps import get_submission_metadata, get_submission_rate_limiter
from web.deps_admin import AdminSession, require_admin_session

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


def serialize_ctas(campaign: Campaign) -> List[CampaignCtaSchema]:
    ordered = sorted(campaign.ctas or [], key=lambda cta: cta.order)
    return [CampaignCtaSchema(label=cta.label, url=cta.url, order=cta.order) for cta in ordered]


def serialize_summary(campaign: Campaign, *, submission_count: int = 0) -> CampaignSummaryResponse:
    return CampaignSummaryResponse(
        id=campaign.id,
        title=campaign.title,
        slug=campaign.slug,
        shortDescription=campaign.short_description,
        status=campaign.status,
        imageUrls=list(campaign.image_urls or []),
        videoUrls=list(campaign.video_urls or []),
        enableForm=bool(campaign.enable_form),
        startDate=campaign.start_date,
        endDate=campaign.end_date,
        views=int(campaign.views or 0),
        ctas=serialize_ctas(campaign),
        submissionCount=submission_count,
        createdAt=campaign.created_at,
        updatedAt=campaign.updated_at,
    )


def serialize_detail(campaign: Campaign) -> CampaignDetailResponse:
    return CampaignDetailResponse(
        id=campaign.id,
        title=campaign.title,
        slug=campaign.slug,
        shortDescription=campaign.short_description,
        content=campaign.content,
        status=campaign.status,
        imageUrls=list(campaign.image_urls or []),
        videoUrls=list(campaign.video_urls or []),
        enableForm=bool(campaign.enable_form),
        formFields=load_form_fields(campaign.form_fields),
        ctas=serialize_ctas(campaign),
        successMessage=campaign.success_message,
        redirectUrl=campaign.redirect_url,
        startDate=campaign.start_date,
        endDate=campaign.end_date,
    )


def serialize_submission(submission: CampaignSubmission) -> CampaignSubmissionSchema:
    return CampaignSubmissionSchema(
        id=submission.id,
        campaignId=submission.campaign_id,
        data=dict(submission.data or {}),
        ipAddress=submission.ip_address,
        userAgent=submission.user_agent,
        createdAt=submission.created_at,
        submittedAt=submission.created_at,
    )


def serialize_submission_with_campaign(submission: CampaignSubmission) -> CampaignSubmissionWithCampaignSchema:
    base = serialize_submission(submission).model_dump()
    campaign = submission.campaign
    ref = CampaignRefSchema(id=campaign.id, title=campaign.title, slug=campaign.slug) if campaign else None
    return CampaignSubmissionWithCampaignSchema(**base, campaign=ref)


def _admin_detail(db: Session, campaign: Campaign, *, include_recent: bool = True) -> CampaignAdminResponse:
    counts = campaign_service.count_submissions(db, [campaign.id])
    recent = campaign_submission_service.recent_submissions(db, campaign.id) if include_recent else []
    detail = serialize_detail(campaign).model_dump()
    return CampaignAdminResponse(
        **detail,
        views=int(campaign.views or 0),
        createdBy=campaign.created_by,
        createdAt=campaign.created_at,
        updatedAt=campaign.updated_at,
        submissionCount=counts.get(campaign.id, 0),
        recentSubmissions=[serialize_submission(item) for item in recent],
    )


@router.get("", response_model=List[CampaignSummaryResponse], summary="List campaign summaries")
def list_campaigns(
    status_filter: Optional[CampaignStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> List[CampaignSummaryResponse]:
    try:
        campaigns = campaign_service.list_campaigns(db, status=status_filter)
        counts = campaign_service.count_submissions(db, [campaign.id for campaign in campaigns])
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return [serialize_summary(campaign, submission_count=counts.get(campaign.id, 0)) for campaign in campaigns]


@router.get("/slug/{slug}", response_model=CampaignDetailResponse, summary="Fetch a published campaign")
def read_campaign_by_slug(slug: str, db: Session = Depends(get_db)) -> CampaignDetailResponse:
    try:
        campaign = campaign_service.get_public_campaign_by_slug(db, slug)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return serialize_detail(campaign)


@router.post(
    "",
    response_model=CampaignAdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a campaign",
)
def create_campaign(
    payload: CampaignCreateRequest,
    db: Session = Depends(get_db),
    admin: AdminSession = Depends(require_admin_session),
) -> CampaignAdminResponse:
    try:
        campaign = campaign_service.create_campaign(db, payload, actor=admin.actor)
        return _admin_detail(db, campaign, include_recent=False)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc


@router.get("/{campaign_id}", response_model=CampaignAdminResponse, summary="Fetch a campaign (admin)")
def read_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignAdminResponse:
    try:
        campaign = campaign_service.get_campaign(db, campaign_id)
        return _admin_detail(db, campaign)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc


@router.put("/{campaign_id}", response_model=CampaignAdminResponse, summary="Update a campaign and replace its CTAs")
def update_campaign(
    campaign_id: str,
    payload: CampaignUpdateRequest,
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignAdminResponse:
    try:
        campaign = campaign_service.update_campaign(db, campaign_id, payload)
        return _admin_detail(db, campaign)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc


@router.delete("/{campaign_id}", response_model=CampaignDeleteResponse, summary="Delete a campaign and its submissions")
def delete_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignDeleteResponse:
    try:
        deleted = campaign_service.delete_campaign(db, campaign_id)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return CampaignDeleteResponse(success=True, deletedSubmissions=deleted)


@router.post(
    "/{campaign_id}/submissions",
    response_model=CampaignSubmissionAcceptedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a campaign form",
)
def submit_campaign_form(
    campaign_id: str,
    payload: CampaignSubmissionRequest,
    request: Request,
    db: Session = Depends(get_db),
    metadata: SubmissionMetadata = Depends(get_submission_metadata),
    limiter: SubmissionRateLimiter = Depends(get_submission_rate_limiter),
) -> CampaignSubmissionAcceptedResponse:
    limiter.enforce(campaign_id, request)
    try:
        submission = campaign_submission_service.submit_to_campaign(db, campaign_id, payload.formData, metadata)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return CampaignSubmissionAcceptedResponse(success=True, submissionId=submission.id)


@router.get(
    "/{campaign_id}/submissions",
    response_model=CampaignSubmissionPageResponse,
    summary="Paginated submissions for a campaign",
)
def list_campaign_submissions(
    campaign_id: str,
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignSubmissionPageResponse:
    try:
        result = campaign_submission_service.list_submissions(db, campaign_id, page=page, limit=limit)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return CampaignSubmissionPageResponse(
        submissions=[serialize_submission(item) for item in result.items],
        pagination=PaginationSchema(**result.pagination()),
    )


@router.get(
    "/{campaign_id}/analytics",
    response_model=CampaignAnalyticsResponse,
    summary="Submission and conversion figures for a campaign",
)
def read_campaign_analytics(
    campaign_id: str,
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignAnalyticsResponse:
    try:
        campaign = campaign_service.get_campaign(db, campaign_id)
        return CampaignAnalyticsResponse(**campaign_service.campaign_analytics(db, campaign))
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc


__all__ = [
    "router",
    "serialize_detail",
    "serialize_submission",
    "serialize_submission_with_campaign",
    "serialize_summary",
]
