from typing import Any, Dict, List, Sequence, Tuple

from eth_abi.exceptions import DecodingError, InsufficientDataBytes
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from crowdfund_toolkit.campaigns.models import CAMPAIGN_FIELDS
from crowdfund_toolkit.shared.exceptions import FetchFailed, ReadErrorKind
from crowdfund_toolkit.shared.services.web3_service import Web3Service

CROWDFUNDING_ABI_NAME = "CrowdFunding"

_DECODE_ERRORS = (BadFunctionCallOutput, DecodingError, InsufficientDataBytes)
_NETWORK_ERRORS = (ConnectionError, TimeoutError, OSError)

# Only consulted when an exception type gives no answer
_DECODE_MARKERS = ("could not decode", "insufficientdatabytes")


def classify_read_error(exc: BaseException) -> ReadErrorKind:
    """
    Map an exception raised by a contract call to a ReadErrorKind.

    Exception types are checked first; the message is only inspected for
    errors that carry no usable type (e.g. a plain ValueError from a
    provider).
    """
    if isinstance(exc, FetchFailed):
        return exc.kind
    if isinstance(exc, _DECODE_ERRORS):
        return ReadErrorKind.DECODE
    if isinstance(exc, ContractLogicError):
        return ReadErrorKind.REVERT
    if isinstance(exc, _NETWORK_ERRORS):
        return ReadErrorKind.NETWORK

    message = str(exc).lower()
    if any(marker in message for marker in _DECODE_MARKERS):
        return ReadErrorKind.DECODE
    return ReadErrorKind.UNKNOWN


def struct_to_record(values: Sequence[Any]) -> Dict[str, Any]:
    """
    Turn a Campaign struct returned by web3 into a raw record dict.

    Amounts stay in base units; the normalizer converts them.
    """
    if isinstance(values, dict):
        return dict(values)
    if len(values) != len(CAMPAIGN_FIELDS):
        raise DecodingError(
            f"Campaign struct has {len(values)} fields, "
            f"expected {len(CAMPAIGN_FIELDS)}"
        )
    return dict(zip(CAMPAIGN_FIELDS, values))


class ContractReader:
    """
    Read surface of the crowdfunding ledger.

    Every method is a blocking contract call. Failures are re-raised as
    FetchFailed carrying a structured ReadErrorKind, so callers never need
    to match on error text.
    """

    def __init__(self, contract: Any):
        self.contract = contract

    @classmethod
    def from_service(
        cls, web3_service: Web3Service, contract_address: str
    ) -> "ContractReader":
        return cls(
            web3_service.get_contract(contract_address, CROWDFUNDING_ABI_NAME)
        )

    def _call(self, method: str, *args: Any) -> Any:
        try:
            return getattr(self.contract.functions, method)(*args).call()
        except Exception as e:
            kind = classify_read_error(e)
            raise FetchFailed(f"{method} failed: {e}", kind=kind) from e

    def get_total_campaigns(self) -> int:
        return int(self._call("getTotalCampaigns"))

    def get_campaign(self, campaign_id: int) -> Dict[str, Any]:
        raw = self._call("getCampaign", campaign_id)
        try:
            return struct_to_record(raw)
        except (DecodingError, TypeError) as e:
            raise FetchFailed(
                f"getCampaign({campaign_id}) returned malformed data: {e}",
                kind=ReadErrorKind.DECODE,
            ) from e

    def get_all_campaigns(self) -> List[Dict[str, Any]]:
        raw = self._call("getAllCampaigns")
        try:
            return [struct_to_record(item) for item in raw]
        except (DecodingError, TypeError) as e:
            raise FetchFailed(
                f"getAllCampaigns returned malformed data: {e}",
                kind=ReadErrorKind.DECODE,
            ) from e

    def get_donators(self, campaign_id: int) -> Tuple[List[str], List[int]]:
        donators, donations = self._call("getDonators", campaign_id)
        return list(donators), list(donations)

    def platform_fee_percent(self) -> int:
        return int(self._call("platformFeePercent"))

    def admin(self) -> str:
        return self._call("admin")

    def is_campaign_ended(self, campaign_id: int) -> bool:
        return bool(self._call("isCampaignEnded", campaign_id))

    def get_campaign_progress(self, campaign_id: int) -> int:
        return int(self._call("getCampaignProgress", campaign_id))
