"""
Wallet capability passed explicitly into the read and write paths.

In the browser the wallet lives in ambient global state (the injected
provider, the selected account, the current chain). Here it is an object
handed to CampaignService and CampaignWriter, so both paths can be driven
and tested without any global.

Two signing modes:
- node-managed account (the provider signs, like an injected wallet):
  ``contract_function.transact``
- local key: build, sign with eth_account, send raw
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_utils import to_checksum_address
from web3 import Web3

from crowdfund_toolkit.shared.exceptions import ConfigurationException

load_dotenv()

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001

_REJECTION_MARKERS = (
    "user rejected",
    "user denied",
    "rejected by user",
    "action_rejected",
)


def is_user_rejection(exc: BaseException) -> bool:
    """Whether an exception means the wallet user declined to sign."""
    if getattr(exc, "code", None) == USER_REJECTED_CODE:
        return True

    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict) and arg.get("code") == USER_REJECTED_CODE:
            return True

    message = str(exc).lower()
    return any(marker in message for marker in _REJECTION_MARKERS)


class Wallet:
    """A connected account able to sign ledger writes."""

    def __init__(
        self, w3: Web3, address: str, private_key: Optional[str] = None
    ):
        self.w3 = w3
        self.address = to_checksum_address(address)
        self._private_key = private_key
        self._chain_id: Optional[int] = None

    @classmethod
    def from_private_key(
        cls, rpc_url: str, private_key: str, timeout: float = 30.0
    ) -> "Wallet":
        """Build a wallet that signs locally with a private key."""
        w3 = Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        account = Account.from_key(private_key)
        return cls(w3, account.address, private_key=private_key)

    @classmethod
    def from_env(cls) -> "Wallet":
        """Build a wallet from CF_WALLET_RPC_URL and CF_PRIVATE_KEY."""
        rpc_url = os.getenv("CF_WALLET_RPC_URL")
        private_key = os.getenv("CF_PRIVATE_KEY")
        if not rpc_url:
            raise ConfigurationException(
                "CF_WALLET_RPC_URL environment variable is required"
            )
        if not private_key:
            raise ConfigurationException(
                "CF_PRIVATE_KEY environment variable is required"
            )
        return cls.from_private_key(rpc_url, private_key)

    @property
    def chain_id(self) -> int:
        """Chain the wallet is connected to (read once, then cached)."""
        if self._chain_id is None:
            self._chain_id = int(self.w3.eth.chain_id)
        return self._chain_id

    def refresh_chain(self) -> int:
        """Forget the cached chain id, e.g. after the user switched networks."""
        self._chain_id = None
        return self.chain_id

    def send(self, contract_function: Any, value: int = 0) -> bytes:
        """Sign and send a contract call, returning the transaction hash."""
        tx_params: Dict[str, Any] = {"from": self.address, "value": value}

        if self._private_key is None:
            return contract_function.transact(tx_params)

        tx_params["nonce"] = self.w3.eth.get_transaction_count(self.address)
        tx_params["chainId"] = self.chain_id
        tx = contract_function.build_transaction(tx_params)
        signed = self.w3.eth.account.sign_transaction(tx, self._private_key)
        return self.w3.eth.send_raw_transaction(signed.raw_transaction)

    def wait_for_receipt(self, tx_hash: bytes, timeout: float = 180.0) -> Any:
        return self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout
        )
