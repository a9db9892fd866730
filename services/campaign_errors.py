"""Exception types raised by the campaign and submission services."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException, status

FieldErrors = Dict[str, List[str]]


class CampaignServiceError(RuntimeError):
    """Base error carrying a stable code, an HTTP status and optional field errors."""

    code = "campaign.error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Campaign request failed."

    def __init__(self, message: Optional[str] = None, *, errors: Optional[Mapping[str, List[str]]] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors: FieldErrors = {key: list(value) for key, value in (errors or {}).items()}

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.errors:
            detail["errors"] = self.errors
        return detail

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_detail())


class CampaignNotFoundError(CampaignServiceError):
    code = "campaign.not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Campaign not found"


class CampaignNotPublishedError(CampaignServiceError):
    code = "campaign.not_published"
    default_message = "Campaign is not published"


class CampaignFormDisabledError(CampaignServiceError):
    code = "campaign.form_disabled"
    default_message = "Form submissions are not enabled for this campaign"


class SubmissionValidationError(CampaignServiceError):
    code = "submission.invalid"
    default_message = "Submission is invalid"


class CampaignValidationError(CampaignServiceError):
    code = "campaign.invalid"
    default_message = "Campaign data is invalid"


class CampaignSlugConflictError(CampaignServiceError):
    code = "campaign.slug_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A campaign with this slug already exists"


class CampaignPersistenceError(CampaignServiceError):
    code = "campaign.persistence_failed"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Database is unavailable. Please try again later."

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code


__all__ = [
    "CampaignFormDisabledError",
    "CampaignNotFoundError",
    "CampaignNotPublishedError",
    "CampaignPersistenceError",
    "CampaignServiceError",
    "CampaignSlugConflictError",
    "CampaignValidationError",
    "FieldErrors",
    "SubmissionValidationError",
]
