"""All constants and runtime configuration for the project"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from crowdfund_toolkit.shared.exceptions import ConfigurationException

load_dotenv()


class GlobalConstants:
    """Global class constants for the project"""

    SECONDS_PER_DAY = 86400

    # Native token has 18 decimals (wei)
    BASE_UNIT_DECIMALS = 18

    ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

    SUPPORTED_CHAINS = {
        11155111: "Sepolia",
        1: "Ethereum",
        31337: "Localhost",
    }

    DEFAULT_CHAIN_ID = 11155111

    DEFAULT_CONTRACT_ADDRESS = "0x4c672f0b9290e3e823a43c3cbf2927bba8a5e4f1"

    # Public Sepolia endpoints, probed in this order
    DEFAULT_RPC_ENDPOINTS = [
        "https://eth-sepolia.public.blastapi.io",
        "https://sepolia.drpc.org",
        "https://rpc.sepolia.org",
    ]

    @staticmethod
    def get_chain_name(chain_id: int) -> str:
        """Get a display name for a chain id"""
        return GlobalConstants.SUPPORTED_CHAINS.get(
            int(chain_id), f"Chain {chain_id}"
        )


def _split_endpoints(value: str) -> List[str]:
    return [url.strip() for url in value.split(",") if url.strip()]


@dataclass
class CrowdfundConfig:
    """Network, contract and fetch settings.

    Nothing here is read from the ledger; every value is supplied by the
    environment (or a .env file) or falls back to the Sepolia defaults.
    """

    chain_id: int = GlobalConstants.DEFAULT_CHAIN_ID
    contract_address: str = GlobalConstants.DEFAULT_CONTRACT_ADDRESS
    rpc_endpoints: List[str] = field(
        default_factory=lambda: list(GlobalConstants.DEFAULT_RPC_ENDPOINTS)
    )
    request_timeout: float = 10.0
    fetch_attempts: int = 3
    fetch_base_delay: float = 1.0
    max_parallel_reads: int = 8

    @classmethod
    def from_env(cls) -> "CrowdfundConfig":
        """Load configuration from environment variables."""
        rpc_urls = os.getenv("CF_RPC_URLS")
        endpoints = (
            _split_endpoints(rpc_urls)
            if rpc_urls
            else list(GlobalConstants.DEFAULT_RPC_ENDPOINTS)
        )

        try:
            config = cls(
                chain_id=int(
                    os.getenv("CF_CHAIN_ID", GlobalConstants.DEFAULT_CHAIN_ID)
                ),
                contract_address=os.getenv(
                    "CF_CONTRACT_ADDRESS",
                    GlobalConstants.DEFAULT_CONTRACT_ADDRESS,
                ),
                rpc_endpoints=endpoints,
                request_timeout=float(os.getenv("CF_RPC_TIMEOUT", "10")),
                fetch_attempts=int(os.getenv("CF_FETCH_ATTEMPTS", "3")),
                fetch_base_delay=float(
                    os.getenv("CF_FETCH_BASE_DELAY", "1.0")
                ),
                max_parallel_reads=int(
                    os.getenv("CF_MAX_PARALLEL_READS", "8")
                ),
            )
        except ValueError as e:
            raise ConfigurationException(
                f"Invalid numeric configuration value: {e}"
            ) from e

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.contract_address or not is_address(
            self.contract_address
        ):
            raise ConfigurationException(
                f"Invalid contract address: {self.contract_address!r}"
            )
        if not self.rpc_endpoints:
            raise ConfigurationException(
                "At least one RPC endpoint is required"
            )
        if self.request_timeout <= 0:
            raise ConfigurationException("request_timeout must be > 0")
        if self.fetch_attempts <= 0:
            raise ConfigurationException("fetch_attempts must be > 0")
        if self.fetch_base_delay < 0:
            raise ConfigurationException("fetch_base_delay must be >= 0")
        if self.max_parallel_reads <= 0:
            raise ConfigurationException("max_parallel_reads must be > 0")

    @property
    def checksum_address(self) -> str:
        return to_checksum_address(self.contract_address)

    @property
    def chain_name(self) -> str:
        return GlobalConstants.get_chain_name(self.chain_id)
