"""
Event log filter builder.

Accumulates address, topic and block range criteria and fetches matching
logs through a LogReader.
"""

from typing import Any

from eth_utils import to_checksum_address

from chainbatch.utils.exceptions import InvalidConfigurationError

from .interfaces import LogReader


class EventFilter:
    """Fluent builder for eth_getLogs filters."""

    def __init__(self, reader: LogReader) -> None:
        self.reader = reader
        self.addresses: list[str] = []
        self.topics: list[Any] = []
        self.from_block: int | str | None = None
        self.to_block: int | str | None = None

    def set_addresses(self, addresses: list[str]) -> "EventFilter":
        """Restrict logs to the given contract addresses."""
        self.addresses = [to_checksum_address(address) for address in addresses]
        return self

    def set_topics(self, topics: list[Any]) -> "EventFilter":
        """Set positional topic criteria (None matches anything)."""
        self.topics = list(topics)
        return self

    def set_block_range(
        self,
        from_block: int | str | None,
        to_block: int | str | None,
    ) -> "EventFilter":
        """Set the inclusive block range (numbers or tags like 'latest')."""
        if (
            isinstance(from_block, int)
            and isinstance(to_block, int)
            and from_block > to_block
        ):
            raise InvalidConfigurationError(
                f"from_block {from_block} is after to_block {to_block}"
            )
        self.from_block = from_block
        self.to_block = to_block
        return self

    def filter_params(self) -> dict[str, Any]:
        """Build the filter dict; unset criteria are omitted."""
        params: dict[str, Any] = {}
        if self.addresses:
            params["address"] = (
                self.addresses[0] if len(self.addresses) == 1 else list(self.addresses)
            )
        if self.topics:
            params["topics"] = list(self.topics)
        if self.from_block is not None:
            params["fromBlock"] = self.from_block
        if self.to_block is not None:
            params["toBlock"] = self.to_block
        return params

    async def get_logs(self) -> list[Any]:
        """Fetch logs matching the current criteria."""
        return await self.reader.get_logs(self.filter_params())
