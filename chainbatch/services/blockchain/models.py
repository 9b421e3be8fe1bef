"""
Value objects for batch transfers, confirmation queries and gas quotes.

All entities are owned by the call that creates them; nothing here is
shared between calls.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from chainbatch.utils.exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class TransferRequest:
    """Single transfer of `amount` (smallest unit) to `recipient`."""

    recipient: str
    amount: int

    def __post_init__(self) -> None:
        if not self.recipient:
            raise InvalidConfigurationError("Transfer recipient must not be empty")
        # bool is an int subclass, but never a valid amount
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvalidConfigurationError(
                f"Transfer amount must be an integer, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise InvalidConfigurationError(
                f"Transfer amount must be non-negative, got {self.amount}"
            )


@dataclass(frozen=True)
class TransferResult:
    """
    Outcome of one transfer submission.

    Exactly one result exists per request. `tx_hash` is set on success,
    `error` is set on failure, never both.
    """

    recipient: str
    amount: int
    tx_hash: str | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchJob:
    """Sender, transfer requests and the in-flight submission limit."""

    sender: str
    requests: tuple[TransferRequest, ...]
    concurrency: int

    def __post_init__(self) -> None:
        if not self.sender:
            raise InvalidConfigurationError("Batch sender must not be empty")
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise InvalidConfigurationError(
                f"Concurrency must be an integer, got {type(self.concurrency).__name__}"
            )
        if self.concurrency < 1:
            raise InvalidConfigurationError(
                f"Concurrency must be at least 1, got {self.concurrency}"
            )

    @classmethod
    def from_mapping(
        cls,
        sender: str,
        transfers: Mapping[str, int],
        concurrency: int,
    ) -> "BatchJob":
        """
        Build a job from a recipient -> amount mapping.

        Duplicate recipients cannot survive a mapping, so each recipient
        yields exactly one request (the mapping's last value wins).

        Args:
            sender: Sender address
            transfers: Mapping of recipient address to amount
            concurrency: Maximum submissions in flight

        Returns:
            Validated BatchJob

        Raises:
            InvalidConfigurationError: If any field is invalid
        """
        if transfers is None:
            raise InvalidConfigurationError("Transfers mapping must not be None")

        requests = tuple(
            TransferRequest(recipient=recipient, amount=amount)
            for recipient, amount in transfers.items()
        )
        return cls(sender=sender, requests=requests, concurrency=concurrency)


@dataclass(frozen=True)
class ConfirmationQuery:
    """Transaction to watch, required depth and deadline (seconds)."""

    tx_hash: str
    confirmations: int
    timeout: float

    def __post_init__(self) -> None:
        if not self.tx_hash:
            raise InvalidConfigurationError("Transaction hash must not be empty")
        if self.confirmations < 0:
            raise InvalidConfigurationError(
                f"Confirmation depth must be non-negative, got {self.confirmations}"
            )
        if self.timeout <= 0:
            raise InvalidConfigurationError(
                f"Confirmation timeout must be positive, got {self.timeout}"
            )


class WatchState(str, Enum):
    """Confirmation watch states."""

    POLLING = "polling"
    SATISFIED = "satisfied"
    EXPIRED = "expired"
    ABORTED = "aborted"


@dataclass(frozen=True)
class GasQuote:
    """Base estimate, margin and the padded value derived from them."""

    base: int
    margin_percent: int
    padded: int


def receipt_block_number(receipt: Any) -> int:
    """
    Extract the inclusion block height from a receipt.

    Accepts web3 receipts (mapping with `blockNumber`) and objects
    exposing a `block_number` attribute.

    Args:
        receipt: Transaction receipt

    Returns:
        Inclusion block number
    """
    if isinstance(receipt, Mapping):
        return int(receipt["blockNumber"])
    return int(receipt.block_number)
