"""Crowdfund Toolkit - Python SDK and CLI for a crowdfunding ledger."""

__version__ = "0.3.0"

from .campaigns import CampaignService
from .campaigns.feed import CampaignFeed
from .campaigns.writer import CampaignWriter
from .shared.constants import CrowdfundConfig

__all__ = ["CampaignService", "CampaignFeed", "CampaignWriter", "CrowdfundConfig"]
