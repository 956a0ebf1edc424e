"""
Endpoint selection for ledger reads.

A wallet connected to the expected chain is always preferred and is used
without probing. Otherwise the configured public endpoints are probed in
order with a cheap liveness call and the first one that answers wins.
"""

import asyncio
from typing import Callable, List, Optional

from crowdfund_toolkit.shared.exceptions import NoEndpointAvailable
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.shared.services.wallet import Wallet
from crowdfund_toolkit.shared.services.web3_service import Web3Service

logger = get_logger(__name__)

ServiceFactory = Callable[[str, int, float], Web3Service]


def _default_factory(rpc_url: str, chain_id: int, timeout: float) -> Web3Service:
    return Web3Service(chain_id=chain_id, rpc_url=rpc_url, timeout=timeout)


class EndpointSelector:
    """Pick a working connection for read calls."""

    def __init__(
        self,
        endpoints: List[str],
        chain_id: int,
        timeout: float = 10.0,
        service_factory: Optional[ServiceFactory] = None,
    ):
        self.endpoints = list(endpoints)
        self.chain_id = chain_id
        self.timeout = timeout
        self._factory = service_factory or _default_factory

    def _wallet_service(self, wallet: Optional[Wallet]) -> Optional[Web3Service]:
        if wallet is None:
            return None
        try:
            wallet_chain = wallet.chain_id
        except Exception as e:
            logger.warning(f"Wallet did not report a chain id: {e}")
            return None

        if wallet_chain != self.chain_id:
            logger.info(
                f"Wallet on chain {wallet_chain}, expected {self.chain_id}; "
                "falling back to public endpoints"
            )
            return None
        return Web3Service.from_web3(wallet.w3, self.chain_id)

    def _probe(self, rpc_url: str) -> Web3Service:
        service = self._factory(rpc_url, self.chain_id, self.timeout)
        service.is_alive()
        return service

    async def select(self, wallet: Optional[Wallet] = None) -> Web3Service:
        """
        Return the first usable connection.

        Args:
            wallet: Optional connected wallet; used as-is when it reports
                the expected chain id

        Returns:
            Web3Service for the selected connection

        Raises:
            NoEndpointAvailable: every candidate failed its liveness check
        """
        loop = asyncio.get_running_loop()
        service = await loop.run_in_executor(
            None, self._wallet_service, wallet
        )
        if service is not None:
            logger.debug("Using wallet connection for reads")
            return service

        for rpc_url in self.endpoints:
            try:
                service = await loop.run_in_executor(
                    None, self._probe, rpc_url
                )
            except Exception as e:
                logger.warning(f"RPC endpoint {rpc_url} failed liveness: {e}")
                continue

            logger.info(f"Connected to RPC endpoint {rpc_url}")
            return service

        raise NoEndpointAvailable(self.endpoints)
