"""
Batch Dispatcher.

Fans a recipient -> amount mapping out into concurrent submissions bounded
by a counting semaphore, and fans the outcomes back in as one
TransferResult per request.
"""

import asyncio
import inspect
from collections.abc import Mapping
from typing import Any

from eth_utils import to_hex
from loguru import logger

from chainbatch.utils.exceptions import InvalidConfigurationError
from chainbatch.utils.security import mask_address, mask_tx_hash

from .async_executor import BlockingCallExecutor
from .interfaces import TransactionSubmitter
from .models import BatchJob, TransferRequest, TransferResult


class BatchDispatcher:
    """
    Dispatches independent transfers with bounded parallelism.

    Features:
    - At most `concurrency` submissions in flight at any instant
    - Failure isolation: one failed submission never cancels its siblings
    - Exactly one result per request, in completion order
    - Async and blocking submitters (blocking ones run on a thread pool and
      keep their slot until the worker thread returns, even after a timeout)

    No retries happen here; resubmission is the caller's decision.
    """

    def __init__(
        self,
        submitter: TransactionSubmitter,
        executor: BlockingCallExecutor | None = None,
        submit_timeout: float | None = None,
    ) -> None:
        """
        Initialize batch dispatcher.

        Args:
            submitter: Transaction submitter collaborator
            executor: Thread pool for blocking submitters (created on demand
                and then shut down by close())
            submit_timeout: Per-submission timeout in seconds (None = no timeout)
        """
        if submitter is None:
            raise InvalidConfigurationError("Transaction submitter must not be None")
        if submit_timeout is not None and submit_timeout <= 0:
            raise InvalidConfigurationError(
                f"Submit timeout must be positive, got {submit_timeout}"
            )

        self.submitter = submitter
        self.submit_timeout = submit_timeout
        self._executor = executor
        self._owns_executor = False
        self._is_async = inspect.iscoroutinefunction(submitter.submit)

    async def dispatch(
        self,
        sender: str,
        transfers: Mapping[str, int],
        concurrency: int,
    ) -> list[TransferResult]:
        """
        Submit every transfer and wait for all of them.

        Args:
            sender: Sender address
            transfers: Mapping of recipient address to amount
            concurrency: Maximum submissions in flight (>= 1)

        Returns:
            One TransferResult per recipient, in completion order

        Raises:
            InvalidConfigurationError: If the job is invalid (nothing is submitted)
        """
        job = BatchJob.from_mapping(sender, transfers, concurrency)
        return await self.run(job)

    async def run(self, job: BatchJob) -> list[TransferResult]:
        """
        Run a prepared batch job.

        Args:
            job: Validated batch job

        Returns:
            One TransferResult per request, in completion order

        Raises:
            InvalidConfigurationError: If job is None
        """
        if job is None:
            raise InvalidConfigurationError("Batch job must not be None")

        logger.info(
            f"Dispatching {len(job.requests)} transfers from {mask_address(job.sender)} "
            f"(concurrency={job.concurrency})"
        )

        semaphore = asyncio.Semaphore(job.concurrency)
        results_lock = asyncio.Lock()
        results: list[TransferResult] = []
        tasks: list[asyncio.Task[None]] = []

        for request in job.requests:
            # Admission blocks here while all slots are taken
            await semaphore.acquire()
            tasks.append(
                asyncio.create_task(
                    self._run_transfer(job.sender, request, semaphore, results_lock, results)
                )
            )

        await asyncio.gather(*tasks)

        failed = sum(1 for result in results if not result.succeeded)
        if failed:
            logger.warning(
                f"Batch finished: {len(results) - failed} succeeded, {failed} failed"
            )
        else:
            logger.success(f"Batch finished: all {len(results)} transfers submitted")

        return results

    async def _run_transfer(
        self,
        sender: str,
        request: TransferRequest,
        semaphore: asyncio.Semaphore,
        results_lock: asyncio.Lock,
        results: list[TransferResult],
    ) -> None:
        """Submit one transfer, record its result and release its slot."""
        workers: list[asyncio.Future[Any]] = []
        try:
            try:
                tx_hash = await self._submit(sender, request, workers)
            except Exception as e:
                logger.warning(
                    f"Transfer to {mask_address(request.recipient)} failed: {e}"
                )
                result = TransferResult(
                    recipient=request.recipient,
                    amount=request.amount,
                    error=e,
                )
            else:
                logger.debug(
                    f"Transfer to {mask_address(request.recipient)} submitted: "
                    f"{mask_tx_hash(tx_hash)}"
                )
                result = TransferResult(
                    recipient=request.recipient,
                    amount=request.amount,
                    tx_hash=tx_hash,
                )

            async with results_lock:
                results.append(result)
        finally:
            _release_when_settled(semaphore, workers)

    async def _submit(
        self,
        sender: str,
        request: TransferRequest,
        workers: list[asyncio.Future[Any]],
    ) -> str:
        """Invoke the submitter once and normalize the returned hash."""
        if self._is_async:
            raw = await asyncio.wait_for(
                self.submitter.submit(sender, request.recipient, request.amount),
                timeout=self.submit_timeout,
            )
        else:
            executor = self._get_executor()
            worker = executor.start(
                self.submitter.submit, sender, request.recipient, request.amount
            )
            workers.append(worker)
            raw = await executor.wait(
                worker,
                timeout=self.submit_timeout,
                operation_name=f"submit to {mask_address(request.recipient)}",
            )
            if inspect.isawaitable(raw):
                raw = await raw

        return normalize_tx_hash(raw)

    def _get_executor(self) -> BlockingCallExecutor:
        if self._executor is None:
            self._executor = BlockingCallExecutor()
            self._owns_executor = True
        return self._executor

    def close(self) -> None:
        """Shut down the thread pool if this dispatcher created it."""
        if self._owns_executor and self._executor is not None:
            self._executor.cleanup()
            self._executor = None
            self._owns_executor = False


def _release_when_settled(
    semaphore: asyncio.Semaphore,
    workers: list[asyncio.Future[Any]],
) -> None:
    """Release the slot now, or once a timed-out worker thread returns."""
    pending = [worker for worker in workers if not worker.done()]
    if not pending:
        semaphore.release()
        return

    logger.debug("Submission slot held until the worker thread returns")
    pending[0].add_done_callback(lambda _: semaphore.release())


def normalize_tx_hash(value: Any) -> str:
    """
    Convert a submitter's return value into a 0x-prefixed hash string.

    Args:
        value: Hash as bytes (HexBytes) or str

    Returns:
        Hex string transaction hash

    Raises:
        ValueError: If the submitter returned no usable hash
    """
    if isinstance(value, (bytes, bytearray)):
        value = to_hex(bytes(value))
    if not isinstance(value, str) or value in ("", "0x"):
        raise ValueError(f"Submitter returned no transaction hash: {value!r}")
    return value
