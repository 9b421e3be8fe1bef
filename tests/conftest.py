"""Pytest configuration and shared fixtures for all tests."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402

from chainbatch.config.settings import Settings  # noqa: E402
from chainbatch.services.blockchain.singleton import reset_batch_transfer_service  # noqa: E402


class InstrumentedSubmitter:
    """
    Async submitter that counts concurrent entries.

    Args:
        delay: Default seconds spent inside each submission
        delays: Per-recipient delay overrides
        failing: Recipients whose submission raises ConnectionError
    """

    def __init__(
        self,
        delay: float = 0.01,
        delays: dict[str, float] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.delay = delay
        self.delays = delays or {}
        self.failing = failing or set()
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[tuple[str, str, int]] = []

    async def submit(self, sender: str, recipient: str, amount: int) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.calls.append((sender, recipient, amount))
        try:
            await asyncio.sleep(self.delays.get(recipient, self.delay))
            if recipient in self.failing:
                raise ConnectionError(f"RPC unavailable for {recipient}")
            return "0x" + recipient[2:].rjust(64, "0")
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_submitter():
    """Factory for InstrumentedSubmitter instances."""
    return InstrumentedSubmitter


@pytest.fixture
def sample_sender():
    """Sample sender address."""
    return "0x742d35cc6634c0532925a3b844bc9e7595f0beb0"


@pytest.fixture
def sample_recipients():
    """Five distinct recipient addresses."""
    return [f"0x{index:040x}" for index in range(1, 6)]


@pytest.fixture
def sample_transaction_hash():
    """Sample transaction hash for testing."""
    return "0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"


@pytest.fixture
def mock_chain_reader():
    """Mock chain reader returning a receipt mined in block 100."""
    reader = AsyncMock()
    reader.get_receipt = AsyncMock(return_value={"status": 1, "blockNumber": 100})
    reader.get_block_number = AsyncMock(return_value=106)
    return reader


@pytest.fixture
def mock_gas_source():
    """Mock gas source."""
    source = AsyncMock()
    source.estimate_gas = AsyncMock(return_value=1000)
    source.gas_price = AsyncMock(return_value=3_000_000_000)
    return source


@pytest.fixture
def test_settings(sample_sender):
    """Settings with fast polling, isolated from .env files."""
    return Settings(
        _env_file=None,
        rpc_url="http://localhost:8545",
        sender_address=sample_sender,
        batch_concurrency=2,
        confirmation_blocks=6,
        confirmation_timeout=1.0,
        confirmation_poll_interval=0.01,
        gas_margin_percent=10,
    )


@pytest.fixture(autouse=True)
def reset_singleton():
    """Drop the service singleton after every test."""
    yield
    reset_batch_transfer_service()
