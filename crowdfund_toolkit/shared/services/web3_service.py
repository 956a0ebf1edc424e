"""
Web3 Service module for talking to the crowdfunding ledger's network.

A Web3Service wraps one connection: either a public RPC endpoint picked by
the EndpointSelector, or the connection of a wallet the caller injected.
It caches contract objects and exposes the cheap liveness probe the
selector uses.
"""

from typing import Any, Dict, Optional, Tuple

from web3 import Web3

from crowdfund_toolkit.shared.services.resource_manager import (
    resource_manager,
)


class Web3Service:
    """
    A service class for managing a single Web3 connection.

    Attributes:
        chain_id: Chain the connection is expected to serve
        rpc_url: Endpoint URL, or None when wrapping a wallet connection
        w3: Underlying Web3 instance
    """

    def __init__(
        self,
        chain_id: int,
        rpc_url: Optional[str] = None,
        timeout: float = 10.0,
        w3: Optional[Web3] = None,
    ):
        """
        Initialize the Web3Service.

        Args:
            chain_id: The chain ID to use.
            rpc_url: The RPC URL to connect to (ignored when w3 is given).
            timeout: HTTP request timeout in seconds.
            w3: An existing Web3 instance to wrap.
        """
        if w3 is None and not rpc_url:
            raise ValueError("Either rpc_url or w3 is required")

        self.chain_id = chain_id
        self.rpc_url = rpc_url
        self.w3 = w3 if w3 is not None else self._initialize_web3(rpc_url, timeout)
        self._contract_cache: Dict[Tuple[str, str], Any] = {}

    @staticmethod
    def _initialize_web3(rpc_url: str, timeout: float) -> Web3:
        """Initialize an HTTP-backed Web3 instance"""
        return Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    @classmethod
    def from_web3(cls, w3: Web3, chain_id: int) -> "Web3Service":
        """Wrap an existing connection (e.g. a wallet's)"""
        return cls(chain_id=chain_id, w3=w3)

    @property
    def label(self) -> str:
        return self.rpc_url or "wallet"

    def is_alive(self) -> bool:
        """Liveness probe: fetch the current head block number.

        Raises whatever the provider raises; the selector decides what a
        failure means.
        """
        return self.get_block_number() >= 0

    def get_block_number(self) -> int:
        return self.w3.eth.block_number

    def get_contract(self, address: str, abi_name: str) -> Any:
        """Get a contract instance for a given address and ABI name"""
        key = (address.lower(), abi_name)
        if key not in self._contract_cache:
            abi = resource_manager.load_abi(abi_name)
            self._contract_cache[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address.lower()), abi=abi
            )
        return self._contract_cache[key]
