"""Cross-campaign submission feed and the standalone intake endpoint used by embedded forms."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from schemas.api.campaign import (
    CampaignSubmissionAcceptedResponse,
    CampaignSubmissionFeedResponse,
    CampaignSubmissionIntakeRequest,
    PaginationSchema,
)
from services import campaign_submission_service
from services.campaign_errors import CampaignServiceError
from services.campaign_submission_service import DEFAULT_PAGE_SIZE, SubmissionMetadata
from services.submission_rate_limiter import SubmissionRateLimiter
from web.deps import get_submission_metadata, get_submission_rate_limiter
from web.deps_admin import AdminSession, require_admin_session
from web.routers.campaigns import serialize_submission_with_campaign

router = APIRouter(prefix="/campaign-submissions", tags=["Campaign Submissions"])


@router.get("", response_model=CampaignSubmissionFeedResponse, summary="Submissions across campaigns")
def list_submissions(
    campaign_id: Optional[str] = Query(None, alias="campaignId"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    _admin: AdminSession = Depends(require_admin_session),
) -> CampaignSubmissionFeedResponse:
    try:
        result = campaign_submission_service.list_all_submissions(
            db, campaign_id=campaign_id, page=page, limit=limit
        )
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return CampaignSubmissionFeedResponse(
        submissions=[serialize_submission_with_campaign(item) for item in result.items],
        pagination=PaginationSchema(**result.pagination()),
    )


@router.post(
    "",
    response_model=CampaignSubmissionAcceptedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a campaign form by campaign id",
)
def create_submission(
    payload: CampaignSubmissionIntakeRequest,
    request: Request,
    db: Session = Depends(get_db),
    metadata: SubmissionMetadata = Depends(get_submission_metadata),
    limiter: SubmissionRateLimiter = Depends(get_submission_rate_limiter),
) -> CampaignSubmissionAcceptedResponse:
    limiter.enforce(payload.campaignId, request)
    try:
        submission = campaign_submission_service.submit_to_campaign(db, payload.campaignId, payload.data, metadata)
    except CampaignServiceError as exc:
        raise exc.to_http_exception() from exc
    return CampaignSubmissionAcceptedResponse(success=True, submissionId=submission.id)


__all__ = ["router"]
