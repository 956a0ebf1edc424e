"""Campaign reading, normalization and writing for the Crowdfund toolkit."""

from .models import Campaign, CampaignStats, CampaignStatus, Donation
from .service import CampaignService

__all__ = [
    "Campaign",
    "CampaignService",
    "CampaignStats",
    "CampaignStatus",
    "Donation",
]
