"""
Unit tests for the record normalizer.
"""

import logging

import pytest

from crowdfund_toolkit.campaigns.models import (
    PLACEHOLDER_DESCRIPTION,
    PLACEHOLDER_IMAGE,
    PLACEHOLDER_OWNER,
    PLACEHOLDER_TITLE,
    CampaignStatus,
)
from crowdfund_toolkit.campaigns.normalizer import (
    normalize_amount,
    normalize_record,
)
from crowdfund_toolkit.shared.exceptions import FormatError


class TestNormalizeAmount:
    """Amounts of any shape become display strings; never raises."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5 * 10**18, "5"),
            ("1500000000000000000", "1.5"),
            ("0x0de0b6b3a7640000", "1"),
            ("1.5", "1.5"),
            (" 0.25 ", "0.25"),
            (None, "0"),
            (True, "0"),
            ("garbage", "0"),
            ("1.2.3", "0"),
            (-1, "0"),
            ({"amount": 1}, "0"),
        ],
    )
    def test_values(self, value, expected):
        assert normalize_amount(value) == expected


class TestNormalizeRecord:
    """One raw record -> Campaign."""

    def test_well_formed(self, raw_record, sample_owner, sample_donor, now):
        campaign = normalize_record(raw_record)

        assert campaign.id == 0
        assert campaign.title == "Clean water"
        assert campaign.image_url == "ipfs://QmTestCid"
        assert campaign.owner == sample_owner
        assert campaign.target == "5"
        assert campaign.amount_collected == "1.5"
        assert campaign.deadline == raw_record["deadline"]
        assert campaign.withdrawn is False
        assert campaign.donators == [sample_donor]
        assert campaign.donations == ["1.5"]
        assert campaign.progress() == 30.0
        assert campaign.status(now=now) is CampaignStatus.ACTIVE

    def test_snake_case_keys(self, raw_record):
        raw = dict(raw_record)
        raw["image_url"] = raw.pop("imageUrl")
        raw["amount_collected"] = raw.pop("amountCollected")

        campaign = normalize_record(raw)
        assert campaign.image_url == "ipfs://QmTestCid"
        assert campaign.amount_collected == "1.5"

    def test_placeholders(self):
        campaign = normalize_record({"id": 4, "title": "  ", "owner": None})

        assert campaign.id == 4
        assert campaign.title == PLACEHOLDER_TITLE
        assert campaign.description == PLACEHOLDER_DESCRIPTION
        assert campaign.image_url == PLACEHOLDER_IMAGE
        assert campaign.owner == PLACEHOLDER_OWNER
        assert campaign.target == "0"
        assert campaign.amount_collected == "0"
        assert campaign.deadline == 0
        assert campaign.donators == []
        assert campaign.donations == []

    def test_malformed_fields_absorbed(self, raw_record):
        raw = dict(raw_record)
        raw["target"] = "not a number"
        raw["deadline"] = "soon"
        raw["donations"] = ["1000000000000000000", "junk"]
        raw["donators"] = ["0xa", "0xb"]

        campaign = normalize_record(raw)
        assert campaign.target == "0"
        assert campaign.deadline == 0
        assert campaign.donations == ["1", "0"]

    def test_string_id_and_withdrawn(self, raw_record):
        raw = dict(raw_record, id="7", withdrawn="true")
        campaign = normalize_record(raw)
        assert campaign.id == 7
        assert campaign.withdrawn is True

    def test_unparseable_id_uses_fallback(self, raw_record):
        raw = dict(raw_record, id="???")
        assert normalize_record(raw, fallback_id=3).id == 3

    def test_unparseable_id_without_fallback_raises(self, raw_record):
        with pytest.raises(FormatError):
            normalize_record(dict(raw_record, id=None))

    def test_non_mapping_raises(self):
        with pytest.raises(FormatError):
            normalize_record(["not", "a", "mapping"])

    def test_length_mismatch_logged_not_corrected(self, raw_record, caplog):
        raw = dict(raw_record, donators=["0xa", "0xb"], donations=[10**18])

        with caplog.at_level(logging.WARNING):
            campaign = normalize_record(raw)

        assert campaign.donators == ["0xa", "0xb"]
        assert campaign.donations == ["1"]
        assert "2 donators but 1 donations" in caplog.text

    def test_to_dict(self, raw_record, now):
        data = normalize_record(raw_record).to_dict(now=now)
        assert data["status"] == "active"
        assert data["progress"] == 30.0
        assert data["donations"][0]["amount"] == "1.5"
