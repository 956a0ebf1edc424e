"""
Type definitions for crowdfunding campaigns.

Campaign values here are always in display units (decimal strings), as
produced by the record normalizer. The ledger remains the only
authoritative copy: every instance is a snapshot of one read.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TypedDict

from crowdfund_toolkit.shared.constants import GlobalConstants

# =============================================================================
# LEDGER LAYOUT
# =============================================================================

# Field order of the ledger's Campaign struct
CAMPAIGN_FIELDS = (
    "id",
    "title",
    "description",
    "imageUrl",
    "owner",
    "target",
    "deadline",
    "amountCollected",
    "withdrawn",
    "donators",
    "donations",
)

PLACEHOLDER_TITLE = "Untitled Campaign"
PLACEHOLDER_DESCRIPTION = "No description provided"
PLACEHOLDER_IMAGE = "/images/campaign-placeholder.svg"
PLACEHOLDER_OWNER = GlobalConstants.ZERO_ADDRESS

# =============================================================================
# ENUMS
# =============================================================================


class CampaignStatus(Enum):
    """Campaign lifecycle status, derived locally and never stored."""

    ACTIVE = "active"  # Accepting contributions
    COMPLETED = "completed"  # Target reached before the deadline
    EXPIRED = "expired"  # Deadline passed
    WITHDRAWN = "withdrawn"  # Owner withdrew the funds (final)


# =============================================================================
# TYPED DICTS (for JSON serialization)
# =============================================================================


class DonationDict(TypedDict):
    donator: str
    amount: str


class CampaignDict(TypedDict):
    """Campaign dictionary for JSON export."""

    id: int
    title: str
    description: str
    image_url: str
    owner: str
    target: str
    deadline: int
    amount_collected: str
    withdrawn: bool
    donations: List[DonationDict]
    status: str
    progress: float


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class Donation:
    """A single contribution to a campaign."""

    donator: str  # Contributor address
    amount: str  # Display units


@dataclass
class Campaign:
    """
    A normalized campaign record.

    ``target``, ``amount_collected`` and every entry of ``donations`` are
    decimal strings in display units. ``donators[i]`` made ``donations[i]``.
    """

    id: int
    title: str
    description: str
    image_url: str
    owner: str
    target: str
    deadline: int  # Seconds since epoch
    amount_collected: str
    withdrawn: bool
    donators: List[str] = field(default_factory=list)
    donations: List[str] = field(default_factory=list)

    def status(self, now: Optional[int] = None) -> CampaignStatus:
        from crowdfund_toolkit.utils.campaign_utils import derive_status

        return derive_status(
            self.deadline,
            self.withdrawn,
            self.target,
            self.amount_collected,
            now=now,
        )

    def progress(self) -> float:
        from crowdfund_toolkit.utils.campaign_utils import compute_progress

        return compute_progress(self.amount_collected, self.target)

    def days_left(self, now: Optional[int] = None) -> int:
        from crowdfund_toolkit.utils.campaign_utils import days_remaining

        return days_remaining(self.deadline, now=now)

    def donation_list(self) -> List[Donation]:
        """Pair each contributor with its contribution."""
        return [
            Donation(donator=d, amount=a)
            for d, a in zip(self.donators, self.donations)
        ]

    def to_dict(self, now: Optional[int] = None) -> CampaignDict:
        return CampaignDict(
            id=self.id,
            title=self.title,
            description=self.description,
            image_url=self.image_url,
            owner=self.owner,
            target=self.target,
            deadline=self.deadline,
            amount_collected=self.amount_collected,
            withdrawn=self.withdrawn,
            donations=[
                DonationDict(donator=d.donator, amount=d.amount)
                for d in self.donation_list()
            ],
            status=self.status(now=now).value,
            progress=round(self.progress(), 2),
        )


@dataclass
class CampaignStats:
    """Aggregate figures over a list of campaigns."""

    total_campaigns: int
    active_campaigns: int
    total_raised: str  # Display units

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_campaigns": self.total_campaigns,
            "active_campaigns": self.active_campaigns,
            "total_raised": self.total_raised,
        }
