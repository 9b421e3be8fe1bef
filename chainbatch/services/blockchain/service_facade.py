"""
Batch transfer service - Main coordinator.

This module provides the BatchTransferService class that exposes the
batch transfer, confirmation and gas operations by delegating to:
- BatchDispatcher: bounded concurrent submissions
- ConfirmationWatcher: confirmation depth polling
- GasEstimator: padded gas limits and prices
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from loguru import logger

from chainbatch.config.settings import Settings
from chainbatch.utils.exceptions import InvalidConfigurationError

from .async_executor import BlockingCallExecutor
from .batch_dispatcher import BatchDispatcher
from .confirmation_watcher import ConfirmationWatcher
from .event_filter import EventFilter
from .gas_estimator import GasEstimator
from .interfaces import ChainReader, GasSource, TransactionSubmitter
from .models import ConfirmationQuery, TransferResult
from .web3_adapters import (
    LocalAccountSubmitter,
    NodeAccountSubmitter,
    Web3ChainReader,
    Web3GasSource,
    build_async_web3,
)


class BatchTransferService:
    """
    Batch transfer service.

    Wires the dispatcher, watcher and gas estimator around the given
    collaborators, with defaults taken from settings.
    """

    def __init__(
        self,
        settings: Settings,
        submitter: TransactionSubmitter,
        reader: ChainReader,
        gas_source: GasSource,
    ) -> None:
        """
        Initialize batch transfer service.

        Args:
            settings: Application settings
            submitter: Transaction submitter collaborator
            reader: Chain reader collaborator
            gas_source: Gas source collaborator
        """
        self.settings = settings
        self.reader = reader
        self.gas_source = gas_source

        self._executor = BlockingCallExecutor(max_workers=settings.executor_max_workers)
        self.dispatcher = BatchDispatcher(
            submitter,
            executor=self._executor,
            submit_timeout=settings.submit_timeout,
        )
        self.watcher = ConfirmationWatcher(
            reader,
            poll_interval=settings.confirmation_poll_interval,
        )
        self.gas_estimator = GasEstimator(
            gas_source,
            margin_percent=settings.gas_margin_percent,
            max_gas_price=settings.max_gas_price_wei,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BatchTransferService":
        """
        Build a Web3-backed service.

        Uses local signing when SENDER_PRIVATE_KEY is set, otherwise the
        node's unlocked account.
        """
        web3 = build_async_web3(settings)
        gas_source = Web3GasSource(web3)

        if settings.sender_private_key:
            submitter: TransactionSubmitter = LocalAccountSubmitter(
                web3,
                settings.sender_private_key,
                gas_estimator=GasEstimator(
                    gas_source,
                    margin_percent=settings.gas_margin_percent,
                    max_gas_price=settings.max_gas_price_wei,
                ),
            )
        else:
            submitter = NodeAccountSubmitter(web3)

        return cls(settings, submitter, Web3ChainReader(web3), gas_source)

    async def batch_transfer(
        self,
        sender: str | None,
        transfers: Mapping[str, int],
        concurrency: int | None = None,
    ) -> list[TransferResult]:
        """
        Submit transfers concurrently.

        Args:
            sender: Sender address (SENDER_ADDRESS if None)
            transfers: Mapping of recipient address to amount
            concurrency: In-flight limit (BATCH_CONCURRENCY if None)

        Returns:
            One TransferResult per recipient, in completion order
        """
        sender = sender or self.settings.sender_address
        if not sender:
            raise InvalidConfigurationError("Sender address is not configured")

        if concurrency is None:
            concurrency = self.settings.batch_concurrency

        return await self.dispatcher.dispatch(sender, transfers, concurrency)

    async def wait_for_confirmations(
        self,
        tx_hash: str,
        confirmations: int | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """
        Wait for block confirmations of a transaction.

        Args:
            tx_hash: Transaction hash
            confirmations: Required depth (CONFIRMATION_BLOCKS if None)
            timeout: Deadline in seconds (CONFIRMATION_TIMEOUT if None)
            cancel_event: Optional abort signal

        Returns:
            Transaction receipt
        """
        query = ConfirmationQuery(
            tx_hash=tx_hash,
            confirmations=(
                self.settings.confirmation_blocks if confirmations is None else confirmations
            ),
            timeout=self.settings.confirmation_timeout if timeout is None else timeout,
        )
        return await self.watcher.wait_for_confirmations(query, cancel_event=cancel_event)

    async def estimate_gas_with_margin(
        self,
        call: Mapping[str, Any],
        margin_percent: int | None = None,
    ) -> int:
        """Estimate gas limit for a call with safety margin."""
        return await self.gas_estimator.estimate_gas_with_margin(call, margin_percent)

    async def optimal_gas_price(self, margin_percent: int | None = None) -> int:
        """Suggest gas price with safety margin."""
        return await self.gas_estimator.optimal_gas_price(margin_percent)

    def event_filter(self) -> EventFilter:
        """
        Create a log filter bound to the chain reader.

        Raises:
            InvalidConfigurationError: If the reader cannot fetch logs
        """
        if not hasattr(self.reader, "get_logs"):
            raise InvalidConfigurationError("Chain reader does not support log queries")
        return EventFilter(self.reader)

    def close(self) -> None:
        """Release the thread pool."""
        self.dispatcher.close()
        self._executor.cleanup()
        logger.info("BatchTransferService closed")
