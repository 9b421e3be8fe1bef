"""
Async executor for blocking blockchain calls.

Provides async execution of synchronous collaborator calls (sync Web3,
blocking submitters) on a dedicated thread pool, with optional timeout.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from loguru import logger

from chainbatch.config.constants import BLOCKCHAIN_EXECUTOR_MAX_WORKERS


class BlockingCallExecutor:
    """
    Async executor for blocking calls.

    Handles:
    - Thread pool execution of sync calls
    - Timeout handling
    - Cancellation cleanup
    """

    def __init__(self, max_workers: int = BLOCKCHAIN_EXECUTOR_MAX_WORKERS) -> None:
        """
        Initialize async executor.

        Args:
            max_workers: Maximum thread pool workers
        """
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="chainbatch"
        )

    def start(self, func: Callable[..., Any], *args: Any) -> asyncio.Future[Any]:
        """
        Schedule a synchronous function on the thread pool.

        The returned future completes only when the worker thread returns,
        so it can be used to track the call past a caller-side timeout.
        """
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(self._executor, lambda: func(*args))

    async def wait(
        self,
        future: asyncio.Future[Any],
        timeout: float | None = None,
        operation_name: str = "blocking call",
    ) -> Any:
        """
        Wait for a started call without cancelling the worker future.

        Raises:
            TimeoutError: If the call does not finish in time
        """
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
        except TimeoutError:
            logger.error(f"Timeout in {operation_name} after {timeout}s")
            raise TimeoutError(f"{operation_name} timed out after {timeout}s")
        except asyncio.CancelledError:
            logger.warning(f"{operation_name} cancelled, thread keeps running until the call returns")
            raise  # Always re-raise CancelledError

    async def run(
        self,
        func: Callable[..., Any],
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "blocking call",
    ) -> Any:
        """
        Run a synchronous function in the thread pool.

        Args:
            func: Synchronous callable
            *args: Positional arguments for func
            timeout: Timeout in seconds (None = wait indefinitely)
            operation_name: Operation name for logging

        Returns:
            Result from the function

        Raises:
            TimeoutError: If the call does not finish in time
        """
        return await self.wait(
            self.start(func, *args), timeout=timeout, operation_name=operation_name
        )

    def cleanup(self) -> None:
        """Clean up thread pool executor."""
        if self._executor:
            self._executor.shutdown(wait=True)
