"""
Blockchain services module.

Bounded concurrent batch transfers, confirmation watching and gas
estimation over pluggable chain collaborators.
"""

from .async_executor import BlockingCallExecutor
from .batch_dispatcher import BatchDispatcher
from .confirmation_watcher import ConfirmationWatcher
from .event_filter import EventFilter
from .gas_estimator import GasEstimator, apply_margin
from .interfaces import ChainReader, GasSource, LogReader, TransactionSubmitter
from .models import (
    BatchJob,
    ConfirmationQuery,
    GasQuote,
    TransferRequest,
    TransferResult,
    WatchState,
)
from .service_facade import BatchTransferService
from .singleton import (
    get_batch_transfer_service,
    init_batch_transfer_service,
    reset_batch_transfer_service,
)


__all__ = [
    "BatchDispatcher",
    "BatchJob",
    "BatchTransferService",
    "BlockingCallExecutor",
    "ChainReader",
    "ConfirmationQuery",
    "ConfirmationWatcher",
    "EventFilter",
    "GasEstimator",
    "GasQuote",
    "GasSource",
    "LogReader",
    "TransactionSubmitter",
    "TransferRequest",
    "TransferResult",
    "WatchState",
    "apply_margin",
    "get_batch_transfer_service",
    "init_batch_transfer_service",
    "reset_batch_transfer_service",
]
