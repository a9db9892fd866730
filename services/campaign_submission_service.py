"""Persistence and paginated retrieval of campaign form submissions."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from core.env import env_int
from core.logging import get_logger
from models.campaign import CampaignSubmission
from services.campaign_errors import CampaignPersistenceError, CampaignServiceError
from services.campaign_service import get_campaign, increment_views
from services.db_retry import run_with_retry
from services.id_utils import normalize_uuid
from services.submission_validator import validate_submission

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = env_int("CAMPAIGN_SUBMISSIONS_MAX_PAGE_SIZE", 100, minimum=1)
RECENT_SUBMISSIONS_LIMIT = 10
UNKNOWN = "unknown"


@dataclass(frozen=True)
class SubmissionMetadata:
    """Best-effort request details recorded with each submission."""

    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN


@dataclass(frozen=True)
class SubmissionPage:
    items: List[CampaignSubmission]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def normalize_page_params(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    safe_page = max(1, int(page or 1))
    safe_limit = min(max(1, int(limit or DEFAULT_PAGE_SIZE)), MAX_PAGE_SIZE)
    return safe_page, safe_limit


def create_submission(
    db: Session,
    campaign_id: uuid.UUID,
    payload: Mapping[str, Any],
    metadata: Optional[SubmissionMetadata] = None,
) -> CampaignSubmission:
    """Insert one submission row, then bump the campaign view counter.

    No duplicate detection: every call produces a distinct row.
    """

    meta = metadata or SubmissionMetadata()

    def _insert() -> CampaignSubmission:
        submission = CampaignSubmission(
            campaign_id=campaign_id,
            data=dict(payload),
            ip_address=(meta.ip_address or UNKNOWN)[:64],
            user_agent=(meta.user_agent or UNKNOWN)[:512],
        )
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    try:
        submission = run_with_retry(_insert, description="submission insert", on_retry=db.rollback)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Submission insert failed for campaign %s: %s", campaign_id, exc, exc_info=True)
        raise CampaignPersistenceError("Failed to submit form") from exc

    submission_id = submission.id
    # Detach the stored row so the view bump's commit or rollback cannot expire it.
    db.expunge(submission)
    increment_views(db, campaign_id)
    logger.info("Submission %s accepted for campaign %s.", submission_id, campaign_id)
    return submission


def submit_to_campaign(
    db: Session,
    campaign_id: Any,
    payload: Any,
    metadata: Optional[SubmissionMetadata] = None,
    *,
    now: Optional[datetime] = None,
) -> CampaignSubmission:
    """Resolve the campaign, validate the payload against its form and store it."""
    try:
        campaign = get_campaign(db, campaign_id)
        accepted = validate_submission(campaign, payload, now=now)
    except CampaignServiceError as exc:
        logger.info("Submission rejected for campaign %s: %s", campaign_id, exc.code)
        raise
    return create_submission(db, campaign.id, accepted, metadata)


def _page(db: Session, *, campaign_id: Optional[uuid.UUID], page: int, limit: int, with_campaign: bool) -> SubmissionPage:
    safe_page, safe_limit = normalize_page_params(page, limit)

    def _query() -> SubmissionPage:
        base = db.query(CampaignSubmission)
        counter = db.query(func.count(CampaignSubmission.id))
        if campaign_id is not None:
            base = base.filter(CampaignSubmission.campaign_id == campaign_id)
            counter = counter.filter(CampaignSubmission.campaign_id == campaign_id)
        if with_campaign:
            base = base.options(joinedload(CampaignSubmission.campaign))
        total = int(counter.scalar() or 0)
        offset = (safe_page - 1) * safe_limit
        if offset >= total:
            # Pages past the end never reach the driver; huge offsets overflow its integer type.
            return SubmissionPage(items=[], total=total, page=safe_page, limit=safe_limit)
        items = (
            base.order_by(CampaignSubmission.created_at.desc(), CampaignSubmission.id.desc())
            .offset(offset)
            .limit(safe_limit)
            .all()
        )
        return SubmissionPage(items=items, total=total, page=safe_page, limit=safe_limit)

    try:
        return run_with_retry(_query, description="submission listing", on_retry=db.rollback)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Submission listing failed: %s", exc, exc_info=True)
        raise CampaignPersistenceError("Failed to fetch submissions", code="campaign.fetch_failed") from exc


def list_submissions(
    db: Session,
    campaign_id: Any,
    *,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> SubmissionPage:
    """Newest-first page of one campaign's submissions."""
    campaign = get_campaign(db, campaign_id)
    return _page(db, campaign_id=campaign.id, page=page, limit=limit, with_campaign=False)


def list_all_submissions(
    db: Session,
    *,
    campaign_id: Any = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> SubmissionPage:
    """Cross-campaign feed, optionally narrowed to one campaign."""
    parsed: Optional[uuid.UUID] = None
    if campaign_id:
        parsed = normalize_uuid(campaign_id)
        if parsed is None:
            safe_page, safe_limit = normalize_page_params(page, limit)
            return SubmissionPage(items=[], total=0, page=safe_page, limit=safe_limit)
    return _page(db, campaign_id=parsed, page=page, limit=limit, with_campaign=True)


def recent_submissions(db: Session, campaign_id: uuid.UUID, *, limit: int = RECENT_SUBMISSIONS_LIMIT) -> List[CampaignSubmission]:
    return _page(db, campaign_id=campaign_id, page=1, limit=limit, with_campaign=False).items


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "SubmissionMetadata",
    "SubmissionPage",
    "create_submission",
    "list_all_submissions",
    "list_submissions",
    "normalize_page_params",
    "recent_submissions",
    "submit_to_campaign",
]
