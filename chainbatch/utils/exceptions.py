"""
Exception handling utilities.

Defines categorized exception types for batch transfers and confirmation
watching, plus helpers for classifying chain-read failures.
"""

from web3.exceptions import TransactionNotFound, Web3Exception


class ChainBatchError(Exception):
    """Base exception for chainbatch errors."""
    pass


class InvalidConfigurationError(ChainBatchError, ValueError):
    """Raised when a job or component is configured with invalid values."""
    pass


class ConfirmationTimeoutError(ChainBatchError, TimeoutError):
    """
    Raised when a transaction did not reach its confirmation depth in time.

    Attributes:
        tx_hash: Watched transaction hash
        confirmations: Required confirmation depth
        timeout: Deadline in seconds
        receipt_seen: Whether a receipt was observed at least once
        last_depth: Last computed confirmation depth (None if never computed)
        last_error: Last transient chain-read error (None if reads succeeded)
    """

    def __init__(
        self,
        tx_hash: str,
        confirmations: int,
        timeout: float,
        receipt_seen: bool = False,
        last_depth: int | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        self.tx_hash = tx_hash
        self.confirmations = confirmations
        self.timeout = timeout
        self.receipt_seen = receipt_seen
        self.last_depth = last_depth
        self.last_error = last_error
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        message = f"timeout waiting for confirmations ({self.confirmations} blocks in {self.timeout}s)"
        if self.last_error is not None:
            return f"{message}; last chain read error: {self.last_error!r}"
        if not self.receipt_seen:
            return f"{message}; transaction not included"
        return f"{message}; last depth {self.last_depth}"


class ConfirmationAbortedError(ChainBatchError):
    """Raised when the caller aborts a confirmation watch."""

    def __init__(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"confirmation watch aborted for {tx_hash}")


# Exception categories based on handling strategy

# Receipt not available yet - keep polling
NOT_YET_INCLUDED = (
    TransactionNotFound,
)

# Transient chain-read failures - keep polling, remember the error
TRANSIENT_READ_ERRORS = (
    Web3Exception,
    ConnectionError,
    TimeoutError,
    OSError,
    ValueError,
)


def is_not_yet_included(exc: Exception) -> bool:
    """
    Check if exception only means the transaction is not mined yet.

    Args:
        exc: Exception to check

    Returns:
        True if the receipt is simply not available yet
    """
    return isinstance(exc, NOT_YET_INCLUDED)


def is_transient_read_error(exc: Exception) -> bool:
    """
    Check if exception is a known transient chain-read failure.

    Args:
        exc: Exception to check

    Returns:
        True if polling should simply continue
    """
    return isinstance(exc, TRANSIENT_READ_ERRORS)
