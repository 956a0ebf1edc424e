"""
CampaignService - read path for the crowdfunding ledger

This service handles:
1. Resolving a read connection (wallet first, then public endpoints)
2. Fetching the full campaign list in one bulk call
3. Falling back to per-id reads when the bulk call cannot be decoded
4. Normalizing every record in isolation so one bad record never
   costs the whole list
5. Single-campaign, donation and platform reads

Every public read resolves its connection once per call; nothing is cached
between calls and the ledger stays the only source of truth.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

from crowdfund_toolkit.campaigns.models import Campaign, Donation
from crowdfund_toolkit.campaigns.normalizer import (
    normalize_amount,
    normalize_record,
)
from crowdfund_toolkit.contracts.reader import ContractReader
from crowdfund_toolkit.shared.constants import CrowdfundConfig
from crowdfund_toolkit.shared.exceptions import FetchFailed, ReadErrorKind
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.shared.results import Result
from crowdfund_toolkit.shared.retry import Backoff, RetryConfig
from crowdfund_toolkit.shared.services.endpoint_selector import (
    EndpointSelector,
)
from crowdfund_toolkit.shared.services.wallet import Wallet

logger = get_logger(__name__)

RawRecord = Tuple[int, Dict[str, Any]]


class CampaignService:
    """
    Service for reading campaign data from the crowdfunding ledger.

    Attributes:
        config: Network, contract and fetch settings
        wallet: Optional connected wallet, preferred for reads when it is
            on the configured chain
        selector: Chooses the connection for each read
    """

    def __init__(
        self,
        config: Optional[CrowdfundConfig] = None,
        wallet: Optional[Wallet] = None,
        selector: Optional[EndpointSelector] = None,
    ):
        self.config = config or CrowdfundConfig.from_env()
        self.wallet = wallet
        self.selector = selector or EndpointSelector(
            self.config.rpc_endpoints,
            self.config.chain_id,
            timeout=self.config.request_timeout,
        )

    @staticmethod
    async def _run(func: Callable[..., Any], *args: Any) -> Any:
        # Contract calls are blocking; keep them off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def get_reader(self) -> ContractReader:
        """
        Resolve a connection and build a reader on it.

        Raises:
            NoEndpointAvailable: no wallet on the right chain and every
                public endpoint failed its liveness check
        """
        web3_service = await self.selector.select(self.wallet)
        return ContractReader.from_service(
            web3_service, self.config.contract_address
        )

    async def _fetch_records_by_id(
        self, reader: ContractReader, result: Result[List[Campaign]]
    ) -> List[RawRecord]:
        """
        Degraded path: read the count, then each campaign by id.

        Reads run in parallel (bounded by max_parallel_reads) and come back
        in id order. Ids whose read throws are skipped and recorded as
        warnings on ``result``.
        """
        total = await self._run(reader.get_total_campaigns)
        if total <= 0:
            return []

        semaphore = asyncio.Semaphore(self.config.max_parallel_reads)

        async def fetch_one(campaign_id: int) -> Optional[RawRecord]:
            async with semaphore:
                try:
                    raw = await self._run(reader.get_campaign, campaign_id)
                except Exception as e:
                    logger.warning(
                        f"Skipping campaign {campaign_id}: read failed: {e}"
                    )
                    result.add_warning(
                        source="get_campaign",
                        message=f"Campaign {campaign_id} could not be loaded",
                        context={"campaign_id": campaign_id},
                        exception=e,
                    )
                    return None
                return campaign_id, raw

        records = await asyncio.gather(
            *(fetch_one(cid) for cid in range(total))
        )
        return [r for r in records if r is not None]

    async def fetch_campaigns(self) -> Result[List[Campaign]]:
        """
        Fetch and normalize every campaign.

        The bulk read is tried first. When it fails for any reason other
        than the network (an ABI mismatch, a revert, a missing function)
        the per-id path takes over. Network failures propagate so the
        caller can retry.

        Returns:
            Result whose data is the normalized list, possibly empty.
            Skipped ids and dropped records are listed as warnings.

        Raises:
            FetchFailed: connection could not be resolved, the network
                failed, or the count read failed on the degraded path
        """
        reader = await self.get_reader()
        result: Result[List[Campaign]] = Result.ok([])

        try:
            raw_records = await self._run(reader.get_all_campaigns)
            records: List[RawRecord] = list(enumerate(raw_records))
        except FetchFailed as e:
            if e.kind is ReadErrorKind.NETWORK:
                raise
            logger.warning(
                f"Bulk campaign read failed ({e.kind.value}): {e}. "
                "Falling back to per-id reads"
            )
            records = await self._fetch_records_by_id(reader, result)

        campaigns = result.data
        for index, raw in records:
            try:
                campaigns.append(normalize_record(raw, fallback_id=index))
            except Exception as e:
                logger.warning(f"Dropping campaign record {index}: {e}")
                result.add_warning(
                    source="normalize_record",
                    message=f"Campaign {index} could not be normalized",
                    context={"campaign_id": index},
                    exception=e,
                )

        logger.info(
            f"Loaded {len(campaigns)} campaigns"
            + (
                f" ({len(result.warnings)} skipped)"
                if result.has_warnings()
                else ""
            )
        )
        return result

    async def get_campaigns(self) -> List[Campaign]:
        """Fetch and normalize every campaign, dropping the warnings."""
        result = await self.fetch_campaigns()
        return result.data or []

    def _fetch_retry_config(
        self,
        max_attempts: Optional[int],
        base_delay: Optional[float],
    ) -> RetryConfig:
        return RetryConfig(
            max_attempts=max_attempts or self.config.fetch_attempts,
            base_delay=(
                self.config.fetch_base_delay
                if base_delay is None
                else base_delay
            ),
            backoff=Backoff.LINEAR,
        )

    async def fetch_campaigns_with_retry(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> Result[List[Campaign]]:
        """
        fetch_campaigns with linear backoff between attempts.

        Waits ``k * base_delay`` after failed attempt ``k``. The warnings
        of the successful attempt are returned with the campaigns.
        """
        config = self._fetch_retry_config(max_attempts, base_delay)
        return await config.run(
            self.fetch_campaigns, operation_name="fetch_campaigns"
        )

    async def get_campaigns_with_retry(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> List[Campaign]:
        """
        get_campaigns with linear backoff between attempts.

        Waits ``k * base_delay`` after failed attempt ``k``; the last
        error propagates once every attempt has failed.
        """
        config = self._fetch_retry_config(max_attempts, base_delay)
        return await config.run(
            self.get_campaigns, operation_name="get_campaigns"
        )

    async def get_campaign(self, campaign_id: int) -> Campaign:
        """
        Fetch one campaign by id.

        Raises:
            FetchFailed: the read failed (a revert for an unknown id)
            FormatError: the record could not be normalized
        """
        reader = await self.get_reader()
        raw = await self._run(reader.get_campaign, campaign_id)
        return normalize_record(raw, fallback_id=campaign_id)

    async def get_donations(self, campaign_id: int) -> List[Donation]:
        """Contributions to a campaign, in ledger order."""
        reader = await self.get_reader()
        donators, donations = await self._run(
            reader.get_donators, campaign_id
        )
        if len(donators) != len(donations):
            logger.warning(
                f"Campaign {campaign_id}: {len(donators)} donators but "
                f"{len(donations)} donations"
            )
        return [
            Donation(donator=str(d), amount=normalize_amount(a))
            for d, a in zip(donators, donations)
        ]

    async def get_platform_fee_percent(self) -> int:
        """Fee percentage as currently reported by the ledger."""
        reader = await self.get_reader()
        return await self._run(reader.platform_fee_percent)

    async def get_platform_info(self) -> Dict[str, Any]:
        """Chain, contract, admin, fee and campaign count in one dict."""
        reader = await self.get_reader()
        admin, fee, total = await asyncio.gather(
            self._run(reader.admin),
            self._run(reader.platform_fee_percent),
            self._run(reader.get_total_campaigns),
        )
        return {
            "chain_id": self.config.chain_id,
            "chain_name": self.config.chain_name,
            "contract_address": self.config.checksum_address,
            "admin": admin,
            "platform_fee_percent": fee,
            "total_campaigns": total,
        }
