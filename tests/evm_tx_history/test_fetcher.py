"""
Dual Direction Fetcher Tests.
"""

import pytest

from conftest import TARGET, TARGET_LOWER, FakeTransfersClient, make_transfer
from evm_tx_history.exceptions import (
    TxHistoryError,
    UpstreamProtocolError,
    UpstreamTransportError,
)
from evm_tx_history.fetcher import DualDirectionFetcher
from evm_tx_history.models import FetchOutcome, QueryDirection, TransferBatch


ENDPOINT = "https://eth-mainnet.g.alchemy.com/v2/key"
CATEGORIES = ("external", "erc20", "erc721", "erc1155")


async def run_fetch(client, page_key=None, page_size=20):
    fetcher = DualDirectionFetcher(client)
    return await fetcher.fetch(
        endpoint_url=ENDPOINT,
        address=TARGET,
        from_block="0x0",
        categories=CATEGORIES,
        page_size=page_size,
        page_key=page_key,
        chain_id=1,
    )


class TestFirstPage:
    """First page: inbound + outbound."""

    @pytest.mark.asyncio
    async def test_issues_both_directions(self):
        client = FakeTransfersClient(
            inbound=TransferBatch((make_transfer("0x01"),), page_key="in-cursor"),
            outbound=TransferBatch((make_transfer("0x02", from_address=TARGET),), page_key="out-cursor"),
        )

        result = await run_fetch(client)

        directions = sorted(q.direction.value for q in client.calls)
        assert directions == ["inbound", "outbound"]
        assert result.inbound.outcome == FetchOutcome.SUCCEEDED
        assert result.outbound.outcome == FetchOutcome.SUCCEEDED
        assert [t["hash"] for t in result.outbound.transfers] == ["0x02"]

    @pytest.mark.asyncio
    async def test_only_inbound_cursor_propagates(self):
        client = FakeTransfersClient(
            inbound=TransferBatch((), page_key="in-cursor"),
            outbound=TransferBatch((), page_key="out-cursor"),
        )

        result = await run_fetch(client)

        assert result.next_page_key == "in-cursor"

    @pytest.mark.asyncio
    async def test_query_shape(self):
        client = FakeTransfersClient()

        await run_fetch(client, page_size=25)

        by_direction = {q.direction: q for q in client.calls}
        inbound = by_direction[QueryDirection.INBOUND]
        outbound = by_direction[QueryDirection.OUTBOUND]

        assert inbound.address == TARGET_LOWER
        assert outbound.address == TARGET_LOWER
        assert inbound.max_count == outbound.max_count == 25
        assert inbound.categories == outbound.categories == CATEGORIES
        assert outbound.page_key is None
        assert inbound.exclude_zero_value and outbound.exclude_zero_value

    @pytest.mark.asyncio
    async def test_outbound_failure_tolerated(self):
        error = UpstreamTransportError("Alchemy API HTTP error: 500", status_code=500)
        client = FakeTransfersClient(
            inbound=TransferBatch((make_transfer("0x01"),)),
            outbound_error=error,
        )

        result = await run_fetch(client)

        assert result.inbound.succeeded
        assert result.outbound.outcome == FetchOutcome.TOLERATED_FAILURE
        assert result.outbound.error is error
        assert result.outbound.transfers == ()

    @pytest.mark.asyncio
    async def test_outbound_unexpected_error_tolerated(self):
        client = FakeTransfersClient(outbound_error=RuntimeError("bug"))

        result = await run_fetch(client)

        assert result.outbound.outcome == FetchOutcome.TOLERATED_FAILURE
        assert isinstance(result.outbound.error, TxHistoryError)
        assert isinstance(result.outbound.error.original_error, RuntimeError)

    @pytest.mark.asyncio
    async def test_inbound_failure_is_fatal(self):
        error = UpstreamProtocolError("Alchemy API error: bad params")
        client = FakeTransfersClient(inbound_error=error)

        result = await run_fetch(client)

        assert result.inbound.outcome == FetchOutcome.FATAL_FAILURE
        assert result.inbound.error is error
        assert result.next_page_key is None


class TestSubsequentPages:
    """Pages with a cursor: inbound only."""

    @pytest.mark.asyncio
    async def test_inbound_only_with_cursor(self):
        client = FakeTransfersClient(inbound=TransferBatch((), page_key="cursor-3"))

        result = await run_fetch(client, page_key="cursor-2")

        assert len(client.calls) == 1
        assert client.calls[0].direction == QueryDirection.INBOUND
        assert client.calls[0].page_key == "cursor-2"
        assert result.outbound is None
        assert result.next_page_key == "cursor-3"

    @pytest.mark.asyncio
    async def test_outbound_error_never_consulted(self):
        client = FakeTransfersClient(outbound_error=RuntimeError("should not run"))

        result = await run_fetch(client, page_key="cursor-2")

        assert result.inbound.succeeded
        assert result.outbound is None
