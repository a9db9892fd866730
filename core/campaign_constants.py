"""Campaign lifecycle constants shared by models, schemas and services."""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet


class CampaignStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


PUBLIC_CAMPAIGN_STATUSES: FrozenSet[CampaignStatus] = frozenset([CampaignStatus.PUBLISHED])

__all__ = ["CampaignStatus", "PUBLIC_CAMPAIGN_STATUSES"]
