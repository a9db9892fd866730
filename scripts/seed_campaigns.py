"""Insert a published demo campaign with a small contact form."""

from __future__ import annotations

import logging

from scripts._path import add_root

add_root()

from core.campaign_constants import CampaignStatus
from database import session_scope
from models.campaign import Campaign
from schemas.api.campaign import CampaignCreateRequest
from services import campaign_service

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

DEMO_SLUG = "demo"


def _demo_payload() -> CampaignCreateRequest:
    return CampaignCreateRequest(
        title="Demo Campaign",
        slug=DEMO_SLUG,
        shortDescription="Sample landing page used to check the public form flow.",
        content="<p>Leave your details and we will get back to you.</p>",
        status=CampaignStatus.PUBLISHED,
        enableForm=True,
        formFields=[
            {"name": "name", "label": "Full name", "type": "text", "required": True},
            {"name": "email", "label": "Email", "type": "email", "required": True},
            {"name": "phone", "label": "Phone", "type": "tel"},
            {"name": "topic", "label": "Topic", "type": "select", "options": ["Sales", "Support", "Other"]},
            {"name": "consent", "label": "I agree to be contacted", "type": "checkbox", "required": True},
        ],
        successMessage="Thanks, we received your request.",
        ctas=[
            {"label": "Book a call", "url": "https://example.com/book"},
            {"label": "Read the docs", "url": "https://example.com/docs"},
        ],
    )


def seed_campaigns() -> None:
    with session_scope() as db:
        existing = db.query(Campaign).filter(Campaign.slug == DEMO_SLUG).one_or_none()
        if existing is not None:
            logger.info("Demo campaign already present (id=%s); skipping.", existing.id)
            return
        campaign = campaign_service.create_campaign(db, _demo_payload(), actor="seed")
        logger.info("Seeded demo campaign id=%s slug=%s.", campaign.id, campaign.slug)


if __name__ == "__main__":
    seed_campaigns()
