"""
Write path: create, donate, withdraw.

Every write goes through the injected Wallet. Input is validated locally
before any network access, and the wallet must be on the configured chain
before anything is signed. A user declining the signature is an outcome,
not an error.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from web3.logs import DISCARD

from crowdfund_toolkit.contracts.reader import CROWDFUNDING_ABI_NAME
from crowdfund_toolkit.shared.constants import CrowdfundConfig
from crowdfund_toolkit.shared.exceptions import (
    FormatError,
    TransactionFailed,
    ValidationError,
    WrongNetwork,
)
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.shared.services.wallet import Wallet, is_user_rejection
from crowdfund_toolkit.shared.services.web3_service import Web3Service
from crowdfund_toolkit.utils.campaign_utils import parse_deadline_input
from crowdfund_toolkit.utils.formatters import to_base_units

logger = get_logger(__name__)

MIN_TITLE_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10
MIN_CONTRIBUTION = Decimal("0.001")


@dataclass
class CampaignDraft:
    """Validated campaign form, ready to be sent."""

    title: str
    description: str
    image_url: str
    target: int  # Base units
    deadline: int  # Seconds since epoch


@dataclass
class WriteResult:
    """Outcome of a write transaction."""

    tx_hash: Optional[str] = None
    receipt: Optional[Any] = None
    campaign_id: Optional[int] = None
    rejected: bool = False

    @property
    def success(self) -> bool:
        return not self.rejected and self.receipt is not None


def validate_campaign_form(
    title: Optional[str],
    description: Optional[str],
    target: Optional[str],
    deadline: Optional[str],
    image_url: Optional[str],
    now: Optional[int] = None,
) -> CampaignDraft:
    """
    Validate a campaign creation form without touching the network.

    Raises:
        ValidationError: with one message per invalid field in ``errors``
    """
    errors: Dict[str, str] = {}

    title = (title or "").strip()
    if not title:
        errors["title"] = "Title is required"
    elif len(title) < MIN_TITLE_LENGTH:
        errors["title"] = "Title must be at least 3 characters"

    description = (description or "").strip()
    if not description:
        errors["description"] = "Description is required"
    elif len(description) < MIN_DESCRIPTION_LENGTH:
        errors["description"] = "Description must be at least 10 characters"

    target_units = 0
    if target is None or not str(target).strip():
        errors["target"] = "Target amount is required"
    else:
        try:
            target_units = to_base_units(target)
        except FormatError:
            errors["target"] = "Target amount must be greater than 0"
        else:
            if target_units <= 0:
                errors["target"] = "Target amount must be greater than 0"

    deadline_ts = 0
    try:
        deadline_ts = parse_deadline_input(deadline, now=now)
    except ValidationError as e:
        errors["deadline"] = e.message

    image_url = (image_url or "").strip()
    if not image_url:
        errors["image"] = "Campaign image is required"

    if errors:
        raise ValidationError("Invalid campaign form", errors=errors)

    return CampaignDraft(
        title=title,
        description=description,
        image_url=image_url,
        target=target_units,
        deadline=deadline_ts,
    )


def validate_contribution(amount: Optional[str]) -> int:
    """
    Validate a contribution amount and convert it to base units.

    Raises:
        ValidationError: empty, unparseable, non-positive or below minimum
    """
    if amount is None or not str(amount).strip():
        raise ValidationError(
            "Please enter an amount", errors={"amount": "Please enter an amount"}
        )

    try:
        value = to_base_units(amount)
    except FormatError:
        value = 0
    if value <= 0:
        message = "Please enter a valid amount greater than 0"
        raise ValidationError(message, errors={"amount": message})

    if value < to_base_units(MIN_CONTRIBUTION):
        message = f"Minimum contribution is {MIN_CONTRIBUTION} ETH"
        raise ValidationError(message, errors={"amount": message})
    return value


class CampaignWriter:
    """Sends campaign writes through a connected wallet."""

    def __init__(self, wallet: Wallet, config: Optional[CrowdfundConfig] = None):
        self.wallet = wallet
        self.config = config or CrowdfundConfig.from_env()
        self._contract = None

    @property
    def contract(self) -> Any:
        if self._contract is None:
            service = Web3Service.from_web3(self.wallet.w3, self.config.chain_id)
            self._contract = service.get_contract(
                self.config.contract_address, CROWDFUNDING_ABI_NAME
            )
        return self._contract

    def ensure_network(self) -> None:
        """
        Raises:
            WrongNetwork: the wallet is on another chain
        """
        actual = self.wallet.refresh_chain()
        if actual != self.config.chain_id:
            raise WrongNetwork(self.config.chain_id, actual)

    def _send(
        self,
        label: str,
        build: Callable[[], Any],
        value: int = 0,
    ) -> WriteResult:
        self.ensure_network()

        try:
            tx_hash = self.wallet.send(build(), value=value)
        except Exception as e:
            if is_user_rejection(e):
                logger.info(f"{label}: signature rejected by user")
                return WriteResult(rejected=True)
            raise TransactionFailed(str(e)) from e

        hex_hash = tx_hash.hex() if hasattr(tx_hash, "hex") else str(tx_hash)
        logger.info(f"{label}: sent {hex_hash}")

        try:
            receipt = self.wallet.wait_for_receipt(tx_hash)
        except Exception as e:
            raise TransactionFailed(str(e)) from e

        if receipt["status"] == 0:
            raise TransactionFailed(f"Transaction {hex_hash} reverted")

        return WriteResult(tx_hash=hex_hash, receipt=receipt)

    def _campaign_id_from_receipt(self, receipt: Any) -> Optional[int]:
        events = self.contract.events.CampaignCreated().process_receipt(
            receipt, errors=DISCARD
        )
        if not events:
            return None
        return int(events[0]["args"]["campaignId"])

    def _create_campaign(self, draft: CampaignDraft) -> WriteResult:
        result = self._send(
            "createCampaign",
            lambda: self.contract.functions.createCampaign(
                draft.title,
                draft.description,
                draft.image_url,
                draft.target,
                draft.deadline,
            ),
        )
        if result.success:
            result.campaign_id = self._campaign_id_from_receipt(result.receipt)
        return result

    async def create_campaign(self, draft: CampaignDraft) -> WriteResult:
        """
        Create a campaign from a validated draft.

        Returns:
            WriteResult; ``campaign_id`` is read from the CampaignCreated
            event when the receipt carries one
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._create_campaign, draft)

    async def donate(self, campaign_id: int, amount: str) -> WriteResult:
        """Contribute ``amount`` (display units) to a campaign."""
        value = validate_contribution(amount)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._send(
                "donateToCampaign",
                lambda: self.contract.functions.donateToCampaign(campaign_id),
                value=value,
            ),
        )

    async def withdraw(self, campaign_id: int) -> WriteResult:
        """Withdraw the collected funds of a campaign the wallet owns."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._send(
                "withdrawFunds",
                lambda: self.contract.functions.withdrawFunds(campaign_id),
            ),
        )
