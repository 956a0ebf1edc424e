"""
Unit tests for progress, status, deadline and listing helpers.
"""

from datetime import datetime

import pytest

from crowdfund_toolkit.campaigns.models import Campaign, CampaignStatus
from crowdfund_toolkit.shared.exceptions import ValidationError
from crowdfund_toolkit.utils.campaign_utils import (
    can_withdraw,
    compute_campaign_stats,
    compute_progress,
    days_remaining,
    derive_status,
    filter_by_status,
    is_owner,
    paginate,
    parse_deadline_input,
    search_campaigns,
    sort_campaigns,
)

NOW = 1700000000
DAY = 86400
OWNER = "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"


def make_campaign(**overrides) -> Campaign:
    values = dict(
        id=0,
        title="Clean water",
        description="Wells for three villages",
        image_url="/images/x.png",
        owner=OWNER,
        target="10",
        deadline=NOW + DAY,
        amount_collected="0",
        withdrawn=False,
    )
    values.update(overrides)
    return Campaign(**values)


class TestComputeProgress:
    """Progress is a clamped percentage."""

    @pytest.mark.parametrize(
        "collected,target,expected",
        [
            ("9.9", "10", 99.0),
            ("5", "10", 50.0),
            ("15", "10", 100.0),
            ("0", "10", 0.0),
            ("1", "0", 0.0),
            ("x", "10", 0.0),
            ("5", "abc", 0.0),
            ("5", "-10", 0.0),
            ("-1", "10", 0.0),
        ],
    )
    def test_values(self, collected, target, expected):
        assert compute_progress(collected, target) == expected

    def test_always_in_range(self):
        for collected in ("0", "0.1", "3", "10", "1000"):
            assert 0 <= compute_progress(collected, "3") <= 100


class TestDeriveStatus:
    """Status precedence: withdrawn, expired, completed, active."""

    def test_withdrawn_wins(self):
        status = derive_status(NOW - DAY, True, "10", "20", now=NOW)
        assert status is CampaignStatus.WITHDRAWN

    def test_withdrawn_string(self):
        assert (
            derive_status(NOW + DAY, "true", "10", "0", now=NOW)
            is CampaignStatus.WITHDRAWN
        )
        assert (
            derive_status(NOW + DAY, "false", "10", "0", now=NOW)
            is CampaignStatus.ACTIVE
        )

    def test_expired_before_completed(self):
        status = derive_status(NOW - 1, False, "10", "10", now=NOW)
        assert status is CampaignStatus.EXPIRED

    def test_deadline_equal_to_now_not_expired(self):
        assert (
            derive_status(NOW, False, "10", "1", now=NOW)
            is CampaignStatus.ACTIVE
        )

    def test_completed(self):
        status = derive_status(NOW + DAY, False, "10", "10", now=NOW)
        assert status is CampaignStatus.COMPLETED

    def test_active(self):
        status = derive_status(NOW + DAY, False, "10", "9.9", now=NOW)
        assert status is CampaignStatus.ACTIVE

    def test_one_base_unit_short_is_active(self):
        status = derive_status(
            NOW + DAY, False, "10", "9.999999999999999999", now=NOW
        )
        assert status is CampaignStatus.ACTIVE

    def test_zero_target_is_active(self):
        status = derive_status(NOW + DAY, False, "0", "1", now=NOW)
        assert status is CampaignStatus.ACTIVE


class TestDaysRemaining:
    """Whole days, rounded up, never negative."""

    @pytest.mark.parametrize(
        "deadline,expected",
        [
            (NOW + DAY, 1),
            (NOW + DAY + 1, 2),
            (NOW + 1, 1),
            (NOW, 0),
            (NOW - 5 * DAY, 0),
        ],
    )
    def test_values(self, deadline, expected):
        assert days_remaining(deadline, now=NOW) == expected


class TestParseDeadlineInput:
    """Form date-time -> epoch seconds."""

    def test_explicit_offset(self):
        assert parse_deadline_input("2030-01-01T00:00:00+00:00", now=NOW) == (
            1893456000
        )

    def test_naive_input_is_local_time(self):
        expected = int(datetime(2030, 1, 1, 12, 0).timestamp())
        assert parse_deadline_input("2030-01-01T12:00", now=NOW) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_required(self, value):
        with pytest.raises(ValidationError, match="Deadline is required"):
            parse_deadline_input(value, now=NOW)

    @pytest.mark.parametrize("value", ["tomorrow", "2030-13-01T00:00", "01/02/2030"])
    def test_invalid_format(self, value):
        with pytest.raises(ValidationError, match="Invalid deadline format"):
            parse_deadline_input(value, now=NOW)

    def test_past_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_deadline_input("2000-01-01T00:00:00+00:00", now=NOW)
        assert "future" in exc_info.value.errors["deadline"]

    def test_now_rejected(self):
        with pytest.raises(ValidationError):
            parse_deadline_input(
                "2030-01-01T00:00:00+00:00", now=1893456000
            )


class TestCampaignStats:
    """Aggregates over a list."""

    def test_stats(self):
        campaigns = [
            make_campaign(id=0, amount_collected="1.5"),
            make_campaign(id=1, amount_collected="2", deadline=NOW - 1),
            make_campaign(id=2, amount_collected="0.25", withdrawn=True),
        ]
        stats = compute_campaign_stats(campaigns, now=NOW)
        assert stats.total_campaigns == 3
        assert stats.active_campaigns == 1
        assert stats.total_raised == "3.75"

    def test_empty(self):
        stats = compute_campaign_stats([], now=NOW)
        assert stats.to_dict() == {
            "total_campaigns": 0,
            "active_campaigns": 0,
            "total_raised": "0",
        }

    def test_unparseable_amount_counts_as_zero(self):
        stats = compute_campaign_stats(
            [make_campaign(amount_collected="n/a")], now=NOW
        )
        assert stats.total_raised == "0"


class TestListingHelpers:
    """Search, filter, sort, paginate."""

    def test_search_matches_title_and_description(self):
        campaigns = [
            make_campaign(id=0, title="School roof", description="Fix the roof"),
            make_campaign(id=1, title="Water", description="Clean WATER wells"),
        ]
        assert [c.id for c in search_campaigns(campaigns, "water")] == [1]
        assert [c.id for c in search_campaigns(campaigns, "ROOF")] == [0]
        assert len(search_campaigns(campaigns, "  ")) == 2

    def test_filter_by_status(self):
        campaigns = [
            make_campaign(id=0),
            make_campaign(id=1, deadline=NOW - 1),
            make_campaign(id=2, amount_collected="10"),
        ]
        expired = filter_by_status(campaigns, CampaignStatus.EXPIRED, now=NOW)
        completed = filter_by_status(
            campaigns, CampaignStatus.COMPLETED, now=NOW
        )
        assert [c.id for c in expired] == [1]
        assert [c.id for c in completed] == [2]
        assert len(filter_by_status(campaigns, None, now=NOW)) == 3

    def test_sort(self):
        campaigns = [
            make_campaign(id=0, deadline=NOW + 3, target="1", amount_collected="0.5"),
            make_campaign(id=1, deadline=NOW + 1, target="3", amount_collected="0"),
            make_campaign(id=2, deadline=NOW + 2, target="2", amount_collected="2"),
        ]
        assert [c.id for c in sort_campaigns(campaigns, "latest")] == [0, 2, 1]
        assert [c.id for c in sort_campaigns(campaigns, "oldest")] == [1, 2, 0]
        assert [c.id for c in sort_campaigns(campaigns, "target_high")] == [1, 2, 0]
        assert [c.id for c in sort_campaigns(campaigns, "target_low")] == [0, 2, 1]
        assert [c.id for c in sort_campaigns(campaigns, "progress")] == [2, 0, 1]
        assert [c.id for c in sort_campaigns(campaigns, "unknown")] == [0, 1, 2]

    def test_paginate(self):
        campaigns = [make_campaign(id=i) for i in range(25)]
        page, total = paginate(campaigns, page=3, per_page=12)
        assert total == 3
        assert [c.id for c in page] == [24]

        page, total = paginate([], page=1)
        assert page == []
        assert total == 0

    def test_can_withdraw(self):
        expired = make_campaign(deadline=NOW - 1, amount_collected="1")
        assert can_withdraw(expired, OWNER.lower(), now=NOW)
        assert not can_withdraw(expired, "0x" + "1" * 40, now=NOW)
        assert not can_withdraw(expired, None, now=NOW)
        assert not can_withdraw(
            make_campaign(deadline=NOW - 1, amount_collected="0"), OWNER, now=NOW
        )
        assert not can_withdraw(
            make_campaign(deadline=NOW + DAY, amount_collected="1"),
            OWNER,
            now=NOW,
        )
        assert not can_withdraw(
            make_campaign(deadline=NOW - 1, amount_collected="1", withdrawn=True),
            OWNER,
            now=NOW,
        )

    def test_is_owner_case_insensitive(self):
        assert is_owner(make_campaign(), OWNER.upper().replace("0X", "0x"))
