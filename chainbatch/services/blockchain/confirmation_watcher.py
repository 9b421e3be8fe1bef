"""
Confirmation Watcher.

Polls a chain reader on a fixed cadence until a transaction's receipt is
buried under the requested number of blocks, the deadline expires, or the
caller aborts the watch.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from chainbatch.config.constants import DEFAULT_CONFIRMATION_POLL_INTERVAL
from chainbatch.utils.exceptions import (
    ConfirmationAbortedError,
    ConfirmationTimeoutError,
    InvalidConfigurationError,
    is_not_yet_included,
    is_transient_read_error,
)
from chainbatch.utils.security import mask_tx_hash

from .interfaces import ChainReader
from .models import ConfirmationQuery, WatchState, receipt_block_number


@dataclass
class _WatchProgress:
    """Per-call polling state; discarded when the call returns."""

    state: WatchState = WatchState.POLLING
    polls: int = 0
    receipt_seen: bool = False
    last_depth: int | None = None
    last_error: BaseException | None = None


class ConfirmationWatcher:
    """
    Waits for block confirmations of a submitted transaction.

    Transient chain-read errors never end the watch; only the deadline,
    an abort signal or task cancellation do.
    """

    def __init__(
        self,
        reader: ChainReader,
        poll_interval: float = DEFAULT_CONFIRMATION_POLL_INTERVAL,
    ) -> None:
        """
        Initialize confirmation watcher.

        Args:
            reader: Chain reader collaborator
            poll_interval: Seconds between receipt checks
        """
        if reader is None:
            raise InvalidConfigurationError("Chain reader must not be None")
        if poll_interval <= 0:
            raise InvalidConfigurationError(
                f"Poll interval must be positive, got {poll_interval}"
            )

        self.reader = reader
        self.poll_interval = poll_interval

    async def wait_for_confirmations(
        self,
        query: ConfirmationQuery,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """
        Wait until the transaction has `query.confirmations` blocks on top.

        Args:
            query: Transaction hash, required depth and deadline
            cancel_event: Optional event; setting it aborts the watch

        Returns:
            Transaction receipt

        Raises:
            ConfirmationTimeoutError: If the deadline elapsed first
            ConfirmationAbortedError: If cancel_event was set first
            asyncio.CancelledError: If the awaiting task was cancelled
        """
        progress = _WatchProgress()
        tx_label = mask_tx_hash(query.tx_hash)

        logger.info(
            f"Waiting for {query.confirmations} confirmations of {tx_label} "
            f"(timeout={query.timeout}s)"
        )

        try:
            async with asyncio.timeout(query.timeout):
                if cancel_event is None:
                    receipt = await self._poll_until_confirmed(query, progress)
                else:
                    receipt = await self._poll_until_confirmed_or_aborted(
                        query, progress, cancel_event
                    )
        except TimeoutError:
            progress.state = WatchState.EXPIRED
            logger.warning(
                f"Confirmation watch for {tx_label} {progress.state.value} "
                f"after {progress.polls} polls"
            )
            raise ConfirmationTimeoutError(
                tx_hash=query.tx_hash,
                confirmations=query.confirmations,
                timeout=query.timeout,
                receipt_seen=progress.receipt_seen,
                last_depth=progress.last_depth,
                last_error=progress.last_error,
            ) from None
        except ConfirmationAbortedError:
            progress.state = WatchState.ABORTED
            logger.info(f"Confirmation watch for {tx_label} {progress.state.value}")
            raise
        except asyncio.CancelledError:
            logger.warning(f"Confirmation watch for {tx_label} cancelled")
            raise  # Always re-raise CancelledError

        progress.state = WatchState.SATISFIED
        logger.success(
            f"Transaction {tx_label} {progress.state.value} with "
            f"{progress.last_depth} confirmations"
        )
        return receipt

    async def _poll_until_confirmed_or_aborted(
        self,
        query: ConfirmationQuery,
        progress: _WatchProgress,
        cancel_event: asyncio.Event,
    ) -> Any:
        """Race the polling loop against the abort signal."""
        poll_task = asyncio.create_task(self._poll_until_confirmed(query, progress))
        abort_task = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {poll_task, abort_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            poll_task.cancel()
            abort_task.cancel()
            await asyncio.gather(poll_task, abort_task, return_exceptions=True)

        if poll_task in done:
            return poll_task.result()
        raise ConfirmationAbortedError(query.tx_hash)

    async def _poll_until_confirmed(
        self,
        query: ConfirmationQuery,
        progress: _WatchProgress,
    ) -> Any:
        """Check once per tick until the depth is reached."""
        while True:
            await asyncio.sleep(self.poll_interval)
            receipt = await self._check_once(query, progress)
            if receipt is not None:
                return receipt

    async def _check_once(
        self,
        query: ConfirmationQuery,
        progress: _WatchProgress,
    ) -> Any | None:
        """
        Run one receipt/height check.

        Returns:
            The receipt if it is deep enough, None to keep polling
        """
        progress.polls += 1

        try:
            receipt = await self.reader.get_receipt(query.tx_hash)
        except Exception as e:
            if is_not_yet_included(e):
                progress.last_error = None
                return None
            self._record_read_error(progress, "receipt", e)
            return None

        progress.last_error = None
        if receipt is None:
            return None
        progress.receipt_seen = True

        try:
            current_block = await self.reader.get_block_number()
            depth = int(current_block) - receipt_block_number(receipt)
        except Exception as e:
            self._record_read_error(progress, "block number", e)
            return None

        progress.last_depth = depth
        if depth >= query.confirmations:
            return receipt

        logger.debug(
            f"{mask_tx_hash(query.tx_hash)}: {depth}/{query.confirmations} confirmations"
        )
        return None

    @staticmethod
    def _record_read_error(progress: _WatchProgress, what: str, exc: Exception) -> None:
        progress.last_error = exc
        if is_transient_read_error(exc):
            logger.debug(f"Transient {what} read error, retrying next tick: {exc}")
        else:
            logger.warning(f"Unexpected {what} read error, retrying next tick: {exc!r}")
