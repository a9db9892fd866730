"""SQLAlchemy models for marketing campaigns, their CTAs and visitor submissions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.campaign_constants import CampaignStatus
from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Campaign(Base):
    """Campaign landing page with embedded form schema and media lists."""

    __tablename__ = "campaigns"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    short_description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    image_urls = Column(JSONB, nullable=False, default=list)
    video_urls = Column(JSONB, nullable=False, default=list)
    status = Column(String(16), nullable=False, default=CampaignStatus.DRAFT.value, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True, index=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    enable_form = Column(Boolean, nullable=False, default=False)
    form_fields = Column(JSONB, nullable=False, default=list)
    success_message = Column(Text, nullable=True)
    redirect_url = Column(String(2048), nullable=True)
    views = Column(Integer, nullable=False, default=0)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    ctas = relationship(
        "CampaignCta",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="CampaignCta.order",
    )


class CampaignCta(Base):
    __tablename__ = "campaign_ctas"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(
        UUID(as_uuid=True),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    order = Column("order", Integer, nullable=False, default=0)

    campaign = relationship("Campaign", back_populates="ctas")


class CampaignSubmission(Base):
    """One visitor payload; written once, never updated."""

    __tablename__ = "campaign_submissions"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(
        UUID(as_uuid=True),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    data = Column(JSONB, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    campaign = relationship("Campaign")


__all__ = ["Campaign", "CampaignCta", "CampaignSubmission"]
