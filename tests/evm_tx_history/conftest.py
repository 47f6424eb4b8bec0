"""
Shared fixtures for transaction history tests.

FakeTransfersClient stands in for the Alchemy client: it records every
query and answers per direction with a batch or an exception.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from evm_tx_history.cache import InMemoryCacheStore, ResponseCache
from evm_tx_history.chains import ChainRegistry
from evm_tx_history.clock import MockClock
from evm_tx_history.config import EnvCredentialSource, TxHistorySettings
from evm_tx_history.models import QueryDirection, TransferBatch, TransferQuery
from evm_tx_history.pipeline import AggregationPipeline


TARGET = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
TARGET_LOWER = TARGET.lower()
OTHER = "0x1111111111111111111111111111111111111111"
THIRD = "0x2222222222222222222222222222222222222222"
TEST_CREDENTIAL = "test-alchemy-key-0123456789"

ONE_ETH_HEX = "0xde0b6b3a7640000"


def make_transfer(
    tx_hash: str,
    from_address: str = OTHER,
    to_address: str = TARGET,
    timestamp: Optional[str] = "2024-01-15T10:00:00.000Z",
    category: str = "external",
    raw_value: Optional[str] = ONE_ETH_HEX,
    **extra: Any,
) -> dict[str, Any]:
    """Build an upstream transfer dict."""
    transfer: dict[str, Any] = {
        "blockNum": "0x1234",
        "hash": tx_hash,
        "from": from_address,
        "to": to_address,
        "value": 1.0,
        "asset": "ETH",
        "category": category,
        "rawContract": {"value": raw_value, "address": None, "decimal": "0x12"},
    }
    if timestamp is not None:
        transfer["metadata"] = {"blockTimestamp": timestamp}
    transfer.update(extra)
    return transfer


class FakeTransfersClient:
    """Records queries; answers inbound/outbound independently."""

    def __init__(
        self,
        inbound: Optional[TransferBatch] = None,
        outbound: Optional[TransferBatch] = None,
        inbound_error: Optional[BaseException] = None,
        outbound_error: Optional[BaseException] = None,
    ) -> None:
        self.inbound = inbound or TransferBatch()
        self.outbound = outbound or TransferBatch()
        self.inbound_error = inbound_error
        self.outbound_error = outbound_error
        self.calls: list[TransferQuery] = []
        self.endpoints: list[str] = []

    async def get_asset_transfers(
        self,
        endpoint_url: str,
        query: TransferQuery,
        request_id: int = 1,
        chain_id: Optional[int] = None,
    ) -> TransferBatch:
        self.calls.append(query)
        self.endpoints.append(endpoint_url)
        if query.direction == QueryDirection.INBOUND:
            if self.inbound_error:
                raise self.inbound_error
            return self.inbound
        if self.outbound_error:
            raise self.outbound_error
        return self.outbound


@pytest.fixture
def clock() -> MockClock:
    return MockClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def credentials() -> EnvCredentialSource:
    return EnvCredentialSource({"ALCHEMY_KEY_ETH": TEST_CREDENTIAL})


@pytest.fixture
def registry(credentials) -> ChainRegistry:
    return ChainRegistry(credentials)


@pytest.fixture
def store(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(max_entries=100, clock=clock)


@pytest.fixture
def make_pipeline(registry, store, clock):
    """Factory building a pipeline around a given fake client."""

    def _make(client, cache: Optional[ResponseCache] = None, **kwargs) -> AggregationPipeline:
        return AggregationPipeline(
            settings=kwargs.pop("settings", TxHistorySettings()),
            registry=registry,
            client=client,
            cache=cache or ResponseCache(store),
            clock=clock,
            **kwargs,
        )

    return _make
