"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests.
"""

from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from crowdfund_toolkit.shared.constants import CrowdfundConfig

# 2023-11-14T22:13:20Z
NOW = 1700000000
DAY = 86400


@pytest.fixture
def now() -> int:
    """Fixed "current time" for status and deadline tests."""
    return NOW


@pytest.fixture
def sample_owner() -> str:
    return "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"


@pytest.fixture
def sample_donor() -> str:
    return "0x7E1444BA99dcdFfE8fBdb42C02fb0DA4AAAcE4d5"


@pytest.fixture
def config() -> CrowdfundConfig:
    """Config that never touches the environment."""
    return CrowdfundConfig(
        rpc_endpoints=["https://rpc-a.example", "https://rpc-b.example"],
        fetch_attempts=3,
        fetch_base_delay=1.0,
        max_parallel_reads=4,
    )


@pytest.fixture
def raw_record(sample_owner, sample_donor) -> Dict[str, Any]:
    """A Campaign struct as decoded from the ledger (base units)."""
    return {
        "id": 0,
        "title": "Clean water",
        "description": "Wells for three villages",
        "imageUrl": "ipfs://QmTestCid",
        "owner": sample_owner,
        "target": 5 * 10**18,
        "deadline": NOW + 10 * DAY,
        "amountCollected": 15 * 10**17,
        "withdrawn": False,
        "donators": [sample_donor],
        "donations": [15 * 10**17],
    }


def make_raw_records(count: int, owner: str) -> List[Dict[str, Any]]:
    return [
        {
            "id": i,
            "title": f"Campaign {i}",
            "description": "A campaign used in tests",
            "imageUrl": "/images/test.png",
            "owner": owner,
            "target": 10**18,
            "deadline": NOW + DAY,
            "amountCollected": 0,
            "withdrawn": False,
            "donators": [],
            "donations": [],
        }
        for i in range(count)
    ]


@pytest.fixture
def make_records(sample_owner):
    """Factory for lists of well-formed raw records with ids 0..count-1."""

    def _make(count: int) -> List[Dict[str, Any]]:
        return make_raw_records(count, sample_owner)

    return _make


@pytest.fixture
def mock_web3_service():
    """Mock Web3Service for unit tests."""
    service = MagicMock()
    service.w3 = MagicMock()
    service.w3.eth.block_number = 21000000
    service.get_contract.return_value = MagicMock()
    return service
