from eth_utils import is_address, to_checksum_address

from crowdfund_toolkit.shared.constants import GlobalConstants
from crowdfund_toolkit.shared.exceptions import ValidationError


def _invalid(param_name: str, message: str) -> ValidationError:
    return ValidationError(message, errors={param_name: message})


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise _invalid(
            param_name,
            f"Invalid {param_name}: address must be a non-empty string",
        )
    if not is_address(address):
        raise _invalid(
            param_name,
            f"Invalid {param_name}: {address} is not a valid Ethereum address",
        )
    return to_checksum_address(address)


def validate_campaign_id(campaign_id: int) -> int:
    """Campaign ids are ledger indexes starting at 0"""
    if campaign_id is None or campaign_id < 0:
        raise _invalid(
            "campaign_id",
            f"Invalid campaign_id: {campaign_id}. Must be >= 0",
        )
    return campaign_id


def validate_chain_id(chain_id: int) -> None:
    """Validate chain ID"""
    valid_chain_ids = set(GlobalConstants.SUPPORTED_CHAINS)
    if chain_id not in valid_chain_ids:
        raise _invalid(
            "chain_id",
            f"Invalid chain_id: {chain_id}. Must be one of {valid_chain_ids}",
        )
