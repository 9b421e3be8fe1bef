"""
Web3.py implementations of the collaborator interfaces.

- Web3ChainReader: receipts, block height and logs
- Web3GasSource: gas estimates and suggested gas price
- NodeAccountSubmitter: transfers from a node-managed (unlocked) account
- LocalAccountSubmitter: transfers signed locally with eth-account
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address, to_hex
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

from chainbatch.config.constants import DEFAULT_NATIVE_GAS_LIMIT
from chainbatch.config.settings import Settings
from chainbatch.utils.exceptions import InvalidConfigurationError
from chainbatch.utils.security import mask_address, mask_tx_hash

from .gas_estimator import GasEstimator


def build_async_web3(settings: Settings) -> AsyncWeb3:
    """
    Create an AsyncWeb3 client from settings.

    Args:
        settings: Application settings

    Returns:
        AsyncWeb3 instance over HTTP

    Raises:
        InvalidConfigurationError: If RPC_URL is not configured
    """
    if not settings.rpc_url:
        raise InvalidConfigurationError("RPC_URL is required to build a Web3 client")

    return AsyncWeb3(
        AsyncHTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": settings.rpc_timeout},
        )
    )


class Web3ChainReader:
    """Chain reader backed by AsyncWeb3."""

    def __init__(self, web3: AsyncWeb3) -> None:
        self.web3 = web3

    async def get_receipt(self, tx_hash: str) -> Mapping[str, Any] | None:
        """
        Get transaction receipt.

        Returns:
            Receipt, or None if the transaction is not mined yet
        """
        try:
            return await self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    async def get_block_number(self) -> int:
        """Get current block number."""
        return await self.web3.eth.block_number

    async def get_logs(self, filter_params: Mapping[str, Any]) -> list[Any]:
        """Get logs matching filter params."""
        return list(await self.web3.eth.get_logs(dict(filter_params)))


class Web3GasSource:
    """Gas source backed by AsyncWeb3."""

    def __init__(self, web3: AsyncWeb3) -> None:
        self.web3 = web3

    async def estimate_gas(self, call: Mapping[str, Any]) -> int:
        return await self.web3.eth.estimate_gas(dict(call))

    async def gas_price(self) -> int:
        return await self.web3.eth.gas_price


class NodeAccountSubmitter:
    """
    Submits value transfers through eth_sendTransaction.

    The node signs with its own unlocked account and assigns the nonce.
    """

    def __init__(self, web3: AsyncWeb3) -> None:
        self.web3 = web3

    async def submit(self, sender: str, recipient: str, amount: int) -> str:
        """
        Send a native coin transfer.

        Args:
            sender: Node-managed sender address
            recipient: Recipient address
            amount: Amount in wei

        Returns:
            Transaction hash
        """
        tx_hash = await self.web3.eth.send_transaction(
            {
                "from": to_checksum_address(sender),
                "to": to_checksum_address(recipient),
                "value": amount,
            }
        )
        tx_hash_hex = to_hex(tx_hash)
        logger.info(
            f"Transfer of {amount} wei to {mask_address(recipient)} sent: {mask_tx_hash(tx_hash_hex)}"
        )
        return tx_hash_hex


class LocalAccountSubmitter:
    """
    Submits value transfers signed locally with eth-account.

    Features:
    - Gas limit and price from GasEstimator (node defaults otherwise)
    - Nonce read, signing and broadcast serialized per submitter
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        private_key: str,
        gas_estimator: GasEstimator | None = None,
    ) -> None:
        """
        Initialize local account submitter.

        Args:
            web3: AsyncWeb3 instance
            private_key: Sender private key
            gas_estimator: Optional estimator for padded gas limit/price
        """
        if not private_key:
            raise InvalidConfigurationError("Private key is required for local signing")

        self.web3 = web3
        self.gas_estimator = gas_estimator
        self._private_key = private_key
        self._nonce_lock = asyncio.Lock()
        self._chain_id: int | None = None

        # SECURITY: Derive address and immediately discard Account
        account = Account.from_key(private_key)
        try:
            self.address: str = account.address
        finally:
            del account

        logger.info(f"LocalAccountSubmitter initialized with wallet: {mask_address(self.address)}")

    async def submit(self, sender: str, recipient: str, amount: int) -> str:
        """
        Sign and send a native coin transfer.

        Args:
            sender: Sender address (must match the configured key)
            recipient: Recipient address
            amount: Amount in wei

        Returns:
            Transaction hash

        Raises:
            ValueError: If sender does not match the signing key
        """
        sender_checksum = to_checksum_address(sender)
        if sender_checksum != self.address:
            raise ValueError(
                f"Sender {mask_address(sender)} does not match signing key "
                f"{mask_address(self.address)}"
            )

        transaction: dict[str, Any] = {
            "from": sender_checksum,
            "to": to_checksum_address(recipient),
            "value": amount,
        }

        if self.gas_estimator is not None:
            gas_limit = await self.gas_estimator.estimate_gas_with_margin(transaction)
            gas_price = await self.gas_estimator.optimal_gas_price()
        else:
            gas_limit = DEFAULT_NATIVE_GAS_LIMIT
            gas_price = await self.web3.eth.gas_price

        # Lock nonce acquisition and sending to prevent nonce reuse
        async with self._nonce_lock:
            nonce = await self.web3.eth.get_transaction_count(sender_checksum, "pending")
            transaction.update(
                {
                    "nonce": nonce,
                    "gas": gas_limit,
                    "gasPrice": gas_price,
                    "chainId": await self._get_chain_id(),
                }
            )

            # SECURITY: Create Account only for signing, then clear it
            account = Account.from_key(self._private_key)
            try:
                signed_tx = account.sign_transaction(transaction)
            finally:
                del account

            tx_hash = await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)

        tx_hash_hex = to_hex(tx_hash)
        logger.info(
            f"Transaction sent! Hash: {mask_tx_hash(tx_hash_hex)}\n"
            f"  To: {mask_address(recipient)}\n"
            f"  Nonce: {nonce}, Gas: {gas_limit}, Gas Price: {gas_price} wei"
        )
        return tx_hash_hex

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self.web3.eth.chain_id
        return self._chain_id
