from .campaign import Campaign, CampaignCta, CampaignSubmission  # noqa: F401
