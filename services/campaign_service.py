"""Campaign lookup, listing, view counting and admin maintenance."""

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.campaign_constants import PUBLIC_CAMPAIGN_STATUSES, CampaignStatus
from core.env import env_bool
from core.logging import get_logger
from models.campaign import Campaign, CampaignCta, CampaignSubmission
from schemas.api.campaign import CampaignCreateRequest, CampaignCtaInput, CampaignUpdateRequest
from services.campaign_errors import (
    CampaignNotFoundError,
    CampaignPersistenceError,
    CampaignSlugConflictError,
    CampaignValidationError,
)
from services.db_retry import run_with_retry
from services.form_schema import dump_form_fields, ensure_unique_names
from services.id_utils import normalize_uuid

logger = get_logger(__name__)

T = TypeVar("T")

ENFORCE_SCHEDULE_WINDOW = env_bool("CAMPAIGN_ENFORCE_SCHEDULE_WINDOW", False)

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")

# Request keys that map one-to-one onto columns.
_SIMPLE_UPDATE_COLUMNS = {
    "title": "title",
    "shortDescription": "short_description",
    "content": "content",
    "imageUrls": "image_urls",
    "videoUrls": "video_urls",
    "startDate": "start_date",
    "endDate": "end_date",
    "enableForm": "enable_form",
    "successMessage": "success_message",
    "redirectUrl": "redirect_url",
}
_NON_NULLABLE_KEYS = {"title", "slug", "status", "imageUrls", "videoUrls", "enableForm", "formFields"}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def slugify(value: str) -> str:
    return _SLUG_STRIP_RE.sub("-", (value or "").lower()).strip("-")


def is_within_schedule(campaign: Campaign, *, now: Optional[datetime] = None) -> bool:
    current = _as_utc(now) or datetime.now(timezone.utc)
    start = _as_utc(campaign.start_date)
    end = _as_utc(campaign.end_date)
    if start is not None and current < start:
        return False
    if end is not None and current > end:
        return False
    return True


def is_publicly_visible(
    campaign: Campaign,
    *,
    now: Optional[datetime] = None,
    enforce_window: Optional[bool] = None,
) -> bool:
    """PUBLISHED campaigns are public; the start/end window only counts when enforcement is on."""
    if campaign.status not in {status.value for status in PUBLIC_CAMPAIGN_STATUSES}:
        return False
    enforce = ENFORCE_SCHEDULE_WINDOW if enforce_window is None else enforce_window
    if enforce and not is_within_schedule(campaign, now=now):
        return False
    return True


def _read(db: Session, operation: Callable[[], T], *, description: str) -> T:
    try:
        return run_with_retry(operation, description=description, on_retry=db.rollback)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s failed: %s", description, exc, exc_info=True)
        raise CampaignPersistenceError("Failed to fetch campaigns", code="campaign.fetch_failed") from exc


def get_campaign(db: Session, campaign_id: Any) -> Campaign:
    """Return the campaign regardless of status (admin and submission paths)."""
    parsed = normalize_uuid(campaign_id)
    if parsed is None:
        raise CampaignNotFoundError()
    campaign = _read(
        db,
        lambda: db.query(Campaign).options(selectinload(Campaign.ctas)).filter(Campaign.id == parsed).first(),
        description="campaign lookup",
    )
    if campaign is None:
        raise CampaignNotFoundError()
    return campaign


def get_public_campaign_by_slug(db: Session, slug: str, *, now: Optional[datetime] = None) -> Campaign:
    """Public lookup; hidden campaigns are reported exactly like missing ones."""
    campaign = _read(
        db,
        lambda: db.query(Campaign).options(selectinload(Campaign.ctas)).filter(Campaign.slug == slug).first(),
        description="campaign slug lookup",
    )
    if campaign is None or not is_publicly_visible(campaign, now=now):
        raise CampaignNotFoundError()
    return campaign


def list_campaigns(db: Session, *, status: Optional[CampaignStatus] = None) -> List[Campaign]:
    """Most recently started first; campaigns without a start date trail the list."""

    def _query() -> List[Campaign]:
        query = db.query(Campaign).options(selectinload(Campaign.ctas))
        if status is not None:
            query = query.filter(Campaign.status == CampaignStatus(status).value)
        return query.order_by(
            Campaign.start_date.is_(None),
            Campaign.start_date.desc(),
            Campaign.created_at.desc(),
        ).all()

    return _read(db, _query, description="campaign listing")


def count_submissions(db: Session, campaign_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
    ids = list(campaign_ids)
    if not ids:
        return {}

    def _query() -> Dict[uuid.UUID, int]:
        rows = (
            db.query(CampaignSubmission.campaign_id, func.count(CampaignSubmission.id))
            .filter(CampaignSubmission.campaign_id.in_(ids))
            .group_by(CampaignSubmission.campaign_id)
            .all()
        )
        return {campaign_id: int(total) for campaign_id, total in rows}

    return _read(db, _query, description="submission count")


def increment_views(db: Session, campaign_id: uuid.UUID) -> None:
    """Best-effort counter bump; failures are logged and swallowed."""
    try:
        db.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(views=Campaign.views + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("View counter update failed for campaign %s: %s", campaign_id, exc)


def _build_ctas(ctas: Optional[List[CampaignCtaInput]]) -> List[CampaignCta]:
    return [CampaignCta(label=cta.label, url=cta.url, order=index) for index, cta in enumerate(ctas or [])]


def _ensure_schedule(start: Optional[datetime], end: Optional[datetime]) -> None:
    start_utc, end_utc = _as_utc(start), _as_utc(end)
    if start_utc is not None and end_utc is not None and end_utc < start_utc:
        raise CampaignValidationError(
            "Campaign end date precedes its start date",
            errors={"endDate": ["End date must be after the start date."]},
        )


def _resolve_slug(db: Session, raw: Optional[str], *, fallback: str, exclude_id: Optional[uuid.UUID] = None) -> str:
    slug = slugify(raw or fallback)
    if not slug:
        raise CampaignValidationError("Slug is required", errors={"slug": ["Slug must contain letters or digits."]})
    query = db.query(Campaign.id).filter(Campaign.slug == slug)
    if exclude_id is not None:
        query = query.filter(Campaign.id != exclude_id)
    if query.first() is not None:
        raise CampaignSlugConflictError()
    return slug


def _commit(db: Session, *, description: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("%s rejected by constraint: %s", description, exc.orig)
        raise CampaignSlugConflictError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s failed: %s", description, exc, exc_info=True)
        raise CampaignPersistenceError() from exc


def create_campaign(db: Session, payload: CampaignCreateRequest, *, actor: Optional[str] = None) -> Campaign:
    ensure_unique_names(payload.formFields)
    _ensure_schedule(payload.startDate, payload.endDate)
    slug = _resolve_slug(db, payload.slug, fallback=payload.title)

    campaign = Campaign(
        title=payload.title,
        slug=slug,
        short_description=payload.shortDescription,
        content=payload.content,
        image_urls=list(payload.imageUrls),
        video_urls=list(payload.videoUrls),
        status=payload.status.value,
        start_date=payload.startDate,
        end_date=payload.endDate,
        enable_form=payload.enableForm,
        form_fields=dump_form_fields(payload.formFields),
        success_message=payload.successMessage,
        redirect_url=payload.redirectUrl,
        created_by=actor,
    )
    campaign.ctas = _build_ctas(payload.ctas)
    db.add(campaign)
    _commit(db, description="campaign create")
    db.refresh(campaign)
    logger.info("Campaign %s created (slug=%s, actor=%s).", campaign.id, campaign.slug, actor)
    return campaign


def update_campaign(db: Session, campaign_id: Any, payload: CampaignUpdateRequest) -> Campaign:
    """Apply the keys present in ``payload``; a provided ``ctas`` list replaces the old one wholesale.

    Field updates and the CTA replacement are flushed in a single commit, so a
    failure leaves the previous CTA list untouched.
    """

    campaign = get_campaign(db, campaign_id)
    provided = payload.model_fields_set

    nulls = sorted(key for key in provided & _NON_NULLABLE_KEYS if getattr(payload, key) is None)
    if nulls:
        raise CampaignValidationError(
            "Required campaign fields cannot be cleared",
            errors={key: ["This field cannot be null."] for key in nulls},
        )

    if "formFields" in provided:
        ensure_unique_names(payload.formFields or [])
    start = payload.startDate if "startDate" in provided else campaign.start_date
    end = payload.endDate if "endDate" in provided else campaign.end_date
    _ensure_schedule(start, end)

    if "slug" in provided and payload.slug != campaign.slug:
        campaign.slug = _resolve_slug(db, payload.slug, fallback="", exclude_id=campaign.id)

    for key, column in _SIMPLE_UPDATE_COLUMNS.items():
        if key in provided:
            value = getattr(payload, key)
            setattr(campaign, column, list(value) if isinstance(value, list) else value)
    if "status" in provided:
        campaign.status = payload.status.value
    if "formFields" in provided:
        campaign.form_fields = dump_form_fields(payload.formFields or [])
    if "ctas" in provided:
        campaign.ctas = _build_ctas(payload.ctas)

    _commit(db, description="campaign update")
    db.refresh(campaign)
    logger.info("Campaign %s updated (fields=%s).", campaign.id, sorted(provided))
    return campaign


def delete_campaign(db: Session, campaign_id: Any) -> int:
    """Delete the campaign with its CTAs and submissions; returns the number of submissions removed."""
    campaign = get_campaign(db, campaign_id)
    target_id = campaign.id
    try:
        deleted = (
            db.query(CampaignSubmission)
            .filter(CampaignSubmission.campaign_id == target_id)
            .delete(synchronize_session=False)
        )
        db.delete(campaign)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Campaign %s delete failed: %s", target_id, exc, exc_info=True)
        raise CampaignPersistenceError() from exc
    logger.info("Campaign %s deleted with %d submissions.", target_id, deleted)
    return int(deleted or 0)


def campaign_analytics(db: Session, campaign: Campaign, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    current = _as_utc(now) or datetime.now(timezone.utc)
    today = current.replace(hour=0, minute=0, second=0, microsecond=0)

    def _count_since(since: Optional[datetime]) -> int:
        query = db.query(func.count(CampaignSubmission.id)).filter(CampaignSubmission.campaign_id == campaign.id)
        if since is not None:
            query = query.filter(CampaignSubmission.created_at >= since)
        return int(query.scalar() or 0)

    def _query() -> Dict[str, int]:
        return {
            "total": _count_since(None),
            "today": _count_since(today),
            "week": _count_since(current - timedelta(days=7)),
            "month": _count_since(current - timedelta(days=30)),
        }

    counts = _read(db, _query, description="campaign analytics")
    created = _as_utc(campaign.created_at) or current
    days_active = max(1, math.ceil((current - created).total_seconds() / 86400))
    views = int(campaign.views or 0)
    return {
        "campaignId": campaign.id,
        "views": views,
        "totalSubmissions": counts["total"],
        "submissionsToday": counts["today"],
        "submissionsThisWeek": counts["week"],
        "submissionsThisMonth": counts["month"],
        "averageSubmissionsPerDay": round(counts["total"] / days_active, 2),
        "conversionRate": round(counts["total"] / views * 100, 2) if views else 0.0,
    }


__all__ = [
    "ENFORCE_SCHEDULE_WINDOW",
    "campaign_analytics",
    "count_submissions",
    "create_campaign",
    "delete_campaign",
    "get_campaign",
    "get_public_campaign_by_slug",
    "increment_views",
    "is_publicly_visible",
    "is_within_schedule",
    "list_campaigns",
    "slugify",
    "update_campaign",
]
