"""
Dual Direction Fetcher - Rebuilds bidirectional history from
single-direction upstream queries.

The provider filters on either toAddress or fromAddress per call, so:
- inbound (toAddress) always runs and carries the caller's pageKey
- outbound (fromAddress) runs on the first page only

Cursors are direction-specific and only the inbound one is handed back to
the caller. Outbound transfers past the first page are therefore not
retrievable - a known completeness limit of the upstream pagination.
"""

import asyncio
import logging
from typing import Optional, Protocol

from evm_tx_history.exceptions import GENERIC_FAILURE_MESSAGE, TxHistoryError
from evm_tx_history.models import (
    DirectionFetchResult,
    DualFetchResult,
    FetchOutcome,
    QueryDirection,
    TransferBatch,
    TransferQuery,
)


logger = logging.getLogger(__name__)


class TransferQueryClient(Protocol):
    """Upstream transfer-query capability."""

    async def get_asset_transfers(
        self,
        endpoint_url: str,
        query: TransferQuery,
        request_id: int = 1,
        chain_id: Optional[int] = None,
    ) -> TransferBatch:
        ...


class DualDirectionFetcher:
    """
    Issues the inbound query and, on the first page, the outbound query.

    Neither query raises out of fetch(); each failure is reported as a
    DirectionFetchResult so the caller decides what is fatal.
    """

    INBOUND_REQUEST_ID = 1
    OUTBOUND_REQUEST_ID = 2

    def __init__(self, client: TransferQueryClient) -> None:
        self._client = client

    async def fetch(
        self,
        endpoint_url: str,
        address: str,
        from_block: str,
        categories: tuple[str, ...],
        page_size: int,
        page_key: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> DualFetchResult:
        """
        Fetch one page of raw transfers.

        Args:
            endpoint_url: Resolved provider endpoint
            address: Target address (lowercased for the query)
            from_block: Hex block to scan from
            categories: Upstream categories
            page_size: Max transfers per query
            page_key: Inbound cursor from a previous page
            chain_id: For logs and errors

        Returns:
            DualFetchResult; outbound is None when page_key was given
        """
        address_lower = address.lower()
        inbound_query = TransferQuery(
            direction=QueryDirection.INBOUND,
            address=address_lower,
            from_block=from_block,
            categories=categories,
            max_count=page_size,
            page_key=page_key,
        )

        if page_key:
            inbound = await self._run_query(
                endpoint_url, inbound_query, self.INBOUND_REQUEST_ID, chain_id, best_effort=False
            )
            return DualFetchResult(inbound=inbound)

        outbound_query = TransferQuery(
            direction=QueryDirection.OUTBOUND,
            address=address_lower,
            from_block=from_block,
            categories=categories,
            max_count=page_size,
        )

        inbound, outbound = await asyncio.gather(
            self._run_query(
                endpoint_url, inbound_query, self.INBOUND_REQUEST_ID, chain_id, best_effort=False
            ),
            self._run_query(
                endpoint_url, outbound_query, self.OUTBOUND_REQUEST_ID, chain_id, best_effort=True
            ),
        )
        return DualFetchResult(inbound=inbound, outbound=outbound)

    async def _run_query(
        self,
        endpoint_url: str,
        query: TransferQuery,
        request_id: int,
        chain_id: Optional[int],
        best_effort: bool,
    ) -> DirectionFetchResult:
        try:
            batch = await self._client.get_asset_transfers(
                endpoint_url, query, request_id=request_id, chain_id=chain_id
            )
        except TxHistoryError as e:
            return self._failed(query, e, chain_id, best_effort)
        except Exception as e:
            error = TxHistoryError(
                message=GENERIC_FAILURE_MESSAGE,
                chain_id=chain_id,
                original_error=e,
                context={"direction": query.direction.value},
            )
            return self._failed(query, error, chain_id, best_effort)

        return DirectionFetchResult(
            direction=query.direction,
            outcome=FetchOutcome.SUCCEEDED,
            batch=batch,
        )

    def _failed(
        self,
        query: TransferQuery,
        error: Exception,
        chain_id: Optional[int],
        best_effort: bool,
    ) -> DirectionFetchResult:
        if best_effort:
            logger.warning(
                f"[fetcher] Failed to fetch {query.direction.value} transfers "
                f"for {chain_id}:{query.address}: {error}"
            )
            outcome = FetchOutcome.TOLERATED_FAILURE
        else:
            logger.error(
                f"[fetcher] {query.direction.value.capitalize()} fetch failed "
                f"for {chain_id}:{query.address}: {error}"
            )
            outcome = FetchOutcome.FATAL_FAILURE

        return DirectionFetchResult(
            direction=query.direction,
            outcome=outcome,
            error=error,
        )
