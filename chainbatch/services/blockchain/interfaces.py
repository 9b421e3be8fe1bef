"""
Collaborator interfaces.

The core only talks to the chain through these capability-shaped
protocols; web3-backed implementations live in web3_adapters.py.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TransactionSubmitter(Protocol):
    """Submits a value transfer and returns its transaction hash.

    Implementations may define `submit` as a coroutine or as a blocking
    function; blocking submitters are run on a thread pool.
    """

    def submit(self, sender: str, recipient: str, amount: int) -> Any:
        ...


@runtime_checkable
class ChainReader(Protocol):
    """Reads receipts and the current chain height."""

    async def get_receipt(self, tx_hash: str) -> Mapping[str, Any] | None:
        ...

    async def get_block_number(self) -> int:
        ...


@runtime_checkable
class GasSource(Protocol):
    """Provides base gas estimates and the node's suggested gas price."""

    async def estimate_gas(self, call: Mapping[str, Any]) -> int:
        ...

    async def gas_price(self) -> int:
        ...


@runtime_checkable
class LogReader(Protocol):
    """Fetches logs matching a filter."""

    async def get_logs(self, filter_params: Mapping[str, Any]) -> list[Any]:
        ...
