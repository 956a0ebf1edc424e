"""Campaign-specific utilities for progress, status and deadline calculations."""

import math
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Tuple, Union

from crowdfund_toolkit.campaigns.models import (
    Campaign,
    CampaignStats,
    CampaignStatus,
)
from crowdfund_toolkit.shared.constants import GlobalConstants
from crowdfund_toolkit.shared.exceptions import ValidationError
from crowdfund_toolkit.utils.formatters import format_decimal

Amount = Union[str, int, Decimal]


def _now(now: Optional[int]) -> int:
    return int(datetime.now().timestamp()) if now is None else int(now)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def compute_progress(collected: Amount, target: Amount) -> float:
    """
    Percentage of the target collected, clamped to [0, 100].

    A zero, negative or unparseable target yields 0.
    """
    target_value = _to_decimal(target)
    if target_value is None or target_value <= 0:
        return 0.0

    collected_value = _to_decimal(collected) or Decimal(0)
    progress = collected_value * 100 / target_value
    return float(min(Decimal(100), max(Decimal(0), progress)))


def _is_withdrawn(withdrawn: Any) -> bool:
    if isinstance(withdrawn, str):
        return withdrawn.strip().lower() == "true"
    return withdrawn is True


def derive_status(
    deadline: int,
    withdrawn: Any,
    target: Amount,
    collected: Amount,
    now: Optional[int] = None,
) -> CampaignStatus:
    """
    Derive the lifecycle status of a campaign.

    Precedence: withdrawn, then expired (deadline strictly before now),
    then completed (collected at least the target), otherwise active.
    """
    if _is_withdrawn(withdrawn):
        return CampaignStatus.WITHDRAWN
    if int(deadline) < _now(now):
        return CampaignStatus.EXPIRED
    target_value = _to_decimal(target)
    if target_value is not None and target_value > 0:
        collected_value = _to_decimal(collected) or Decimal(0)
        if collected_value >= target_value:
            return CampaignStatus.COMPLETED
    return CampaignStatus.ACTIVE


def days_remaining(deadline: int, now: Optional[int] = None) -> int:
    """Whole days left until the deadline, rounded up, never negative."""
    seconds = int(deadline) - _now(now)
    if seconds <= 0:
        return 0
    return math.ceil(seconds / GlobalConstants.SECONDS_PER_DAY)


def parse_deadline_input(value: Optional[str], now: Optional[int] = None) -> int:
    """
    Convert a date-time typed in a form to epoch seconds.

    ``value`` is an ISO date-time such as "2025-06-01T18:30". Without an
    explicit offset it is read as local wall-clock time.

    Raises:
        ValidationError: empty, unparseable, or not strictly in the future
    """
    if value is None or not str(value).strip():
        raise ValidationError(
            "Deadline is required", errors={"deadline": "Deadline is required"}
        )

    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            "Invalid deadline format",
            errors={"deadline": "Invalid deadline format"},
        ) from None

    # Naive datetimes are interpreted in the local timezone by timestamp()
    timestamp = int(parsed.timestamp())
    if timestamp <= _now(now):
        raise ValidationError(
            "Deadline must be in the future",
            errors={"deadline": "Deadline must be in the future"},
        )
    return timestamp


def compute_campaign_stats(
    campaigns: Iterable[Campaign], now: Optional[int] = None
) -> CampaignStats:
    """Aggregate counts and total raised over a campaign list."""
    current = _now(now)
    total = 0
    active = 0
    raised = Decimal(0)

    for campaign in campaigns:
        total += 1
        if campaign.deadline > current and not _is_withdrawn(
            campaign.withdrawn
        ):
            active += 1
        raised += _to_decimal(campaign.amount_collected) or Decimal(0)

    return CampaignStats(
        total_campaigns=total,
        active_campaigns=active,
        total_raised=format_decimal(raised),
    )


# =============================================================================
# LISTING HELPERS
# =============================================================================

CAMPAIGNS_PER_PAGE = 12

SORT_KEYS = ("latest", "oldest", "target_high", "target_low", "progress")


def search_campaigns(campaigns: List[Campaign], term: str) -> List[Campaign]:
    """Case-insensitive match on title or description."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(campaigns)
    return [
        c
        for c in campaigns
        if needle in c.title.lower() or needle in c.description.lower()
    ]


def filter_by_status(
    campaigns: List[Campaign],
    status: Optional[CampaignStatus],
    now: Optional[int] = None,
) -> List[Campaign]:
    if status is None:
        return list(campaigns)
    current = _now(now)
    return [c for c in campaigns if c.status(now=current) is status]


def sort_campaigns(
    campaigns: List[Campaign], sort_by: str = "latest"
) -> List[Campaign]:
    """
    Sort a campaign list.

    ``latest``/``oldest`` order by deadline, ``target_high``/``target_low``
    by target, ``progress`` by progress descending. Unknown keys keep the
    ledger order.
    """
    if sort_by == "latest":
        return sorted(campaigns, key=lambda c: c.deadline, reverse=True)
    if sort_by == "oldest":
        return sorted(campaigns, key=lambda c: c.deadline)
    if sort_by in ("target_high", "target_low"):
        return sorted(
            campaigns,
            key=lambda c: _to_decimal(c.target) or Decimal(0),
            reverse=sort_by == "target_high",
        )
    if sort_by == "progress":
        return sorted(campaigns, key=lambda c: c.progress(), reverse=True)
    return list(campaigns)


def paginate(
    campaigns: List[Campaign],
    page: int = 1,
    per_page: int = CAMPAIGNS_PER_PAGE,
) -> Tuple[List[Campaign], int]:
    """
    Slice out one page.

    Returns:
        (campaigns on the page, total number of pages)
    """
    if per_page <= 0:
        raise ValueError("per_page must be > 0")
    total_pages = math.ceil(len(campaigns) / per_page)
    page = max(1, page)
    start = (page - 1) * per_page
    return campaigns[start : start + per_page], total_pages


def is_owner(campaign: Campaign, address: Optional[str]) -> bool:
    return bool(address) and campaign.owner.lower() == address.lower()


def can_withdraw(
    campaign: Campaign, address: Optional[str], now: Optional[int] = None
) -> bool:
    """
    Whether ``address`` may withdraw the campaign's funds.

    Only the owner, only after the deadline, only once, and only when
    something was collected.
    """
    return (
        is_owner(campaign, address)
        and campaign.status(now=now) is CampaignStatus.EXPIRED
        and (_to_decimal(campaign.amount_collected) or Decimal(0)) > 0
    )
