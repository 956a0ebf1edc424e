"""
Page-view state for the campaign list.

Each refresh is tagged with a sequence number. A fetch that resolves after
a newer refresh was started is stale and its outcome is thrown away, so a
slow old fetch can never overwrite a newer list.
"""

from typing import List, Optional

from crowdfund_toolkit.campaigns.models import Campaign, CampaignStats
from crowdfund_toolkit.campaigns.service import CampaignService
from crowdfund_toolkit.shared.exceptions import NoEndpointAvailable
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.utils.campaign_utils import compute_campaign_stats

logger = get_logger(__name__)

RETRY_MESSAGE = "Failed to load campaigns. Please try again."


class CampaignFeed:
    """Holds the campaign list, loading flag and error for one view."""

    def __init__(self, service: CampaignService, use_retry: bool = True):
        self.service = service
        self.use_retry = use_retry
        self.campaigns: List[Campaign] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self._sequence = 0

    @property
    def sequence(self) -> int:
        """Number of the most recently issued refresh."""
        return self._sequence

    async def refresh(self) -> bool:
        """
        Reload the list.

        Returns:
            True when this refresh's outcome was applied, False when a newer
            refresh superseded it
        """
        self._sequence += 1
        ticket = self._sequence
        self.is_loading = True

        campaigns: Optional[List[Campaign]] = None
        error: Optional[str] = None
        try:
            if self.use_retry:
                campaigns = await self.service.get_campaigns_with_retry()
            else:
                campaigns = await self.service.get_campaigns()
        except NoEndpointAvailable as e:
            logger.error(f"Campaign refresh #{ticket} failed: {e}")
            error = "No network connection available. Please try again."
        except Exception as e:
            logger.error(f"Campaign refresh #{ticket} failed: {e}")
            error = RETRY_MESSAGE

        if ticket != self._sequence:
            logger.debug(
                f"Discarding stale refresh #{ticket} "
                f"(latest is #{self._sequence})"
            )
            return False

        if error is None:
            self.campaigns = campaigns or []
            self.error = None
        else:
            self.error = error
        self.is_loading = False
        return True

    def featured(self, count: int = 3) -> List[Campaign]:
        """Newest campaigns first."""
        return sorted(self.campaigns, key=lambda c: c.id, reverse=True)[:count]

    def stats(self, now: Optional[int] = None) -> CampaignStats:
        return compute_campaign_stats(self.campaigns, now=now)
