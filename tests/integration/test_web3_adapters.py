"""
Integration tests for the web3-backed collaborators.

AsyncWeb3 is replaced by a fake `eth` namespace; signing uses the real
eth-account implementation.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from chainbatch.config.settings import Settings
from chainbatch.services.blockchain.batch_dispatcher import BatchDispatcher
from chainbatch.services.blockchain.gas_estimator import GasEstimator
from chainbatch.services.blockchain.web3_adapters import (
    LocalAccountSubmitter,
    NodeAccountSubmitter,
    Web3ChainReader,
    Web3GasSource,
    build_async_web3,
)
from chainbatch.utils.exceptions import InvalidConfigurationError


PRIVATE_KEY = "0x" + "11" * 32
RECIPIENT = "0x" + "22" * 20


class FakeEth:
    """Minimal stand-in for AsyncWeb3.eth."""

    def __init__(self, block: int = 120, price: int = 5_000_000_000) -> None:
        self.block = block
        self.price = price
        self.sent_raw: list[bytes] = []
        self.nonces_served: list[int] = []
        self.get_transaction_receipt = AsyncMock(return_value={"blockNumber": 100})
        self.estimate_gas = AsyncMock(return_value=21000)
        self.send_transaction = AsyncMock(return_value=bytes.fromhex("ab" * 32))
        self.get_logs = AsyncMock(return_value=[])

    async def _value(self, value):
        return value

    @property
    def block_number(self):
        return self._value(self.block)

    @property
    def gas_price(self):
        return self._value(self.price)

    @property
    def chain_id(self):
        return self._value(56)

    async def get_transaction_count(self, address, block_identifier):
        # Yield so concurrent callers interleave unless serialized
        await asyncio.sleep(0.01)
        nonce = len(self.sent_raw)
        self.nonces_served.append(nonce)
        return nonce

    async def send_raw_transaction(self, raw):
        await asyncio.sleep(0.01)
        self.sent_raw.append(bytes(raw))
        return bytes([len(self.sent_raw)]) * 32


@pytest.fixture
def fake_web3():
    web3 = MagicMock()
    web3.eth = FakeEth()
    return web3


@pytest.fixture
def local_address():
    return Account.from_key(PRIVATE_KEY).address


class TestWeb3ChainReader:
    """Test receipt and height reads."""

    @pytest.mark.asyncio
    async def test_receipt(self, fake_web3, sample_transaction_hash):
        reader = Web3ChainReader(fake_web3)

        receipt = await reader.get_receipt(sample_transaction_hash)

        assert receipt == {"blockNumber": 100}
        fake_web3.eth.get_transaction_receipt.assert_awaited_once_with(sample_transaction_hash)

    @pytest.mark.asyncio
    async def test_receipt_not_found(self, fake_web3, sample_transaction_hash):
        fake_web3.eth.get_transaction_receipt.side_effect = TransactionNotFound("pending")
        reader = Web3ChainReader(fake_web3)

        assert await reader.get_receipt(sample_transaction_hash) is None

    @pytest.mark.asyncio
    async def test_block_number(self, fake_web3):
        assert await Web3ChainReader(fake_web3).get_block_number() == 120

    @pytest.mark.asyncio
    async def test_logs(self, fake_web3):
        fake_web3.eth.get_logs.return_value = [{"logIndex": 0}]

        logs = await Web3ChainReader(fake_web3).get_logs({"fromBlock": 1})

        assert logs == [{"logIndex": 0}]
        fake_web3.eth.get_logs.assert_awaited_once_with({"fromBlock": 1})


class TestWeb3GasSource:
    """Test gas reads."""

    @pytest.mark.asyncio
    async def test_estimate_and_price(self, fake_web3):
        source = Web3GasSource(fake_web3)

        assert await source.estimate_gas({"to": RECIPIENT}) == 21000
        assert await source.gas_price() == 5_000_000_000


class TestNodeAccountSubmitter:
    """Test node-signed transfers."""

    @pytest.mark.asyncio
    async def test_submit(self, fake_web3, sample_sender):
        submitter = NodeAccountSubmitter(fake_web3)

        tx_hash = await submitter.submit(sample_sender, RECIPIENT, 10**18)

        assert tx_hash == "0x" + "ab" * 32
        sent = fake_web3.eth.send_transaction.await_args.args[0]
        assert sent["value"] == 10**18
        assert sent["from"].lower() == sample_sender
        assert sent["to"] == RECIPIENT


class TestLocalAccountSubmitter:
    """Test locally signed transfers."""

    def test_requires_key(self, fake_web3):
        with pytest.raises(InvalidConfigurationError):
            LocalAccountSubmitter(fake_web3, "")

    @pytest.mark.asyncio
    async def test_sender_mismatch(self, fake_web3, sample_sender):
        submitter = LocalAccountSubmitter(fake_web3, PRIVATE_KEY)

        with pytest.raises(ValueError):
            await submitter.submit(sample_sender, RECIPIENT, 1)

        assert fake_web3.eth.sent_raw == []

    @pytest.mark.asyncio
    async def test_submit_signs_and_sends(self, fake_web3, local_address):
        submitter = LocalAccountSubmitter(fake_web3, PRIVATE_KEY)

        tx_hash = await submitter.submit(local_address, RECIPIENT, 1000)

        assert tx_hash == "0x" + "01" * 32
        assert len(fake_web3.eth.sent_raw) == 1
        assert fake_web3.eth.sent_raw[0]

    @pytest.mark.asyncio
    async def test_uses_gas_estimator(self, fake_web3, local_address, mock_gas_source):
        mock_gas_source.estimate_gas.return_value = 21000
        estimator = GasEstimator(mock_gas_source, margin_percent=10)
        submitter = LocalAccountSubmitter(fake_web3, PRIVATE_KEY, gas_estimator=estimator)

        await submitter.submit(local_address, RECIPIENT, 5)

        call = mock_gas_source.estimate_gas.await_args.args[0]
        assert call["to"] == RECIPIENT
        assert call["value"] == 5
        mock_gas_source.gas_price.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_submissions_get_distinct_nonces(self, fake_web3, local_address):
        submitter = LocalAccountSubmitter(fake_web3, PRIVATE_KEY)
        dispatcher = BatchDispatcher(submitter)
        recipients = {f"0x{index:040x}": index for index in range(1, 4)}

        results = await dispatcher.dispatch(local_address, recipients, concurrency=3)

        assert all(r.succeeded for r in results)
        assert fake_web3.eth.nonces_served == [0, 1, 2]
        assert len({r.tx_hash for r in results}) == 3


class TestBuildAsyncWeb3:
    """Test client construction from settings."""

    def test_requires_rpc_url(self):
        with pytest.raises(InvalidConfigurationError):
            build_async_web3(Settings(_env_file=None, rpc_url=None))

    def test_builds_client(self, test_settings):
        assert isinstance(build_async_web3(test_settings), AsyncWeb3)
