"""
Aggregation Pipeline - Main entry point for transaction history.

Stages:
    VALIDATING -> CACHE_LOOKUP -> FETCHING -> NORMALIZING -> MERGING
    -> CACHING -> DONE, with ERROR reachable from any stage.

A cache hit returns straight from CACHE_LOOKUP. The cache is written only
once the page is complete, so an abandoned request never stores a partial
page. Concurrent misses on one key may both fetch and both write the same
value; no locking is done.
"""

import logging
import time
from enum import Enum
from typing import Iterable, Optional

from evm_tx_history.cache import InMemoryCacheStore, ResponseCache
from evm_tx_history.chains import ChainRegistry
from evm_tx_history.client import AlchemyTransfersClient
from evm_tx_history.clock import ClockProtocol, SystemClock
from evm_tx_history.config import EnvCredentialSource, TxHistorySettings
from evm_tx_history.exceptions import (
    GENERIC_FAILURE_MESSAGE,
    NormalizationError,
    TxHistoryError,
    UpstreamError,
)
from evm_tx_history.fetcher import DualDirectionFetcher, TransferQueryClient
from evm_tx_history.models import (
    DirectionFetchResult,
    FetchOutcome,
    TxHistoryPage,
    TxItem,
)
from evm_tx_history.normalizer import TransferNormalizer
from evm_tx_history.validation import (
    clamp_page_size,
    validate_address,
    validate_categories,
)


logger = logging.getLogger(__name__)


class PipelineStage(Enum):
    """Stages of one history request."""
    VALIDATING = "validating"
    CACHE_LOOKUP = "cache_lookup"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    MERGING = "merging"
    CACHING = "caching"
    DONE = "done"
    ERROR = "error"


def merge_items(items: Iterable[TxItem], page_size: int) -> tuple[TxItem, ...]:
    """
    Deduplicate by hash, order newest first, truncate.

    A repeated hash keeps its first position with the last-seen item.
    Equal timestamps keep fetch order (sorted() is stable under reverse).
    """
    unique: dict[str, TxItem] = {}
    for item in items:
        unique[item.hash] = item

    ordered = sorted(unique.values(), key=lambda item: item.timestamp, reverse=True)
    return tuple(ordered[:page_size])


class AggregationPipeline:
    """
    Transaction history aggregation pipeline.

    Usage:
        async with AggregationPipeline() as pipeline:
            page = await pipeline.fetch_history(1, "0xabc...", page_size=20)
            for item in page.items:
                print(item.hash, item.direction.value, item.value)
            next_key = page.next_page_key

    Every caller-visible failure is a TxHistoryError; use its message
    attribute for client responses.
    """

    def __init__(
        self,
        settings: Optional[TxHistorySettings] = None,
        registry: Optional[ChainRegistry] = None,
        client: Optional[TransferQueryClient] = None,
        cache: Optional[ResponseCache] = None,
        normalizer: Optional[TransferNormalizer] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._settings = settings or TxHistorySettings.from_env()
        clock = clock or SystemClock()

        self._registry = registry or ChainRegistry(EnvCredentialSource())
        if client is None:
            client = AlchemyTransfersClient(timeout=self._settings.request_timeout_seconds)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client
        self._fetcher = DualDirectionFetcher(client)
        self._cache = cache or ResponseCache(
            InMemoryCacheStore(self._settings.cache_max_entries, clock),
            first_page_ttl_seconds=self._settings.first_page_ttl_seconds,
            paged_ttl_seconds=self._settings.paged_ttl_seconds,
        )
        self._normalizer = normalizer or TransferNormalizer(clock)

    @property
    def settings(self) -> TxHistorySettings:
        return self._settings

    async def fetch_history(
        self,
        chain_id: int,
        address: str,
        page_key: Optional[str] = None,
        page_size: Optional[int] = None,
        from_block: Optional[str] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> TxHistoryPage:
        """
        Fetch one page of normalized transaction history.

        Args:
            chain_id: EVM chain id
            address: 0x-prefixed 40-hex address, any case
            page_key: nextPageKey from a previous page
            page_size: Requested size, clamped to the configured maximum
            from_block: Hex block to scan from
            categories: Subset of external/erc20/erc721/erc1155

        Returns:
            TxHistoryPage

        Raises:
            TxHistoryError: Validation or inbound upstream failure
        """
        start_time = time.time()
        stage = PipelineStage.VALIDATING

        try:
            resolved = self._registry.resolve_chain(chain_id)
            validate_address(address)
            validated_page_size = clamp_page_size(page_size, self._settings.max_page_size)
            transfer_categories = validate_categories(categories)
            from_block_hex = from_block or self._settings.default_from_block

            stage = PipelineStage.CACHE_LOOKUP
            cache_key = ResponseCache.cache_key(chain_id, address, page_key)
            cached = await self._cache.get_page(cache_key)
            if cached is not None:
                logger.debug(
                    f"[pipeline] Cache hit for {chain_id}:{address} "
                    f"({(time.time() - start_time) * 1000:.0f}ms)"
                )
                return cached

            stage = PipelineStage.FETCHING
            fetched = await self._fetcher.fetch(
                endpoint_url=resolved.endpoint_url,
                address=address,
                from_block=from_block_hex,
                categories=transfer_categories,
                page_size=validated_page_size,
                page_key=page_key,
                chain_id=chain_id,
            )
            if fetched.inbound.outcome == FetchOutcome.FATAL_FAILURE:
                raise fetched.inbound.error

            stage = PipelineStage.NORMALIZING
            native_symbol = resolved.config.native_symbol
            items = [
                self._normalizer.normalize(transfer, chain_id, address, native_symbol)
                for transfer in fetched.inbound.transfers
            ]
            if fetched.outbound is not None:
                items.extend(self._normalize_outbound(fetched.outbound, chain_id, address, native_symbol))

            stage = PipelineStage.MERGING
            page = TxHistoryPage(
                items=merge_items(items, validated_page_size),
                next_page_key=fetched.next_page_key,
            )

            stage = PipelineStage.CACHING
            await self._cache.put_page(cache_key, page, page_key)

            stage = PipelineStage.DONE
            logger.info(
                f"[pipeline] Fetched {len(page.items)} transactions for {chain_id}:{address} "
                f"({(time.time() - start_time) * 1000:.0f}ms)"
            )
            return page

        except TxHistoryError as e:
            e.context.setdefault("stage", stage.value)
            if stage == PipelineStage.VALIDATING:
                logger.warning(f"[pipeline] Rejected request for {chain_id}:{address}: {e.message}")
            elif isinstance(e, UpstreamError):
                logger.error(f"[pipeline] Upstream failure in {stage.value} for {chain_id}:{address}: {e}")
            else:
                logger.error(f"[pipeline] {stage.value} failed for {chain_id}:{address}: {e}")
            raise

        except Exception as e:
            logger.exception(
                f"[pipeline] Unexpected error in {stage.value} for {chain_id}:{address}"
            )
            raise TxHistoryError(
                message=GENERIC_FAILURE_MESSAGE,
                chain_id=chain_id if isinstance(chain_id, int) else None,
                original_error=e,
                context={"stage": PipelineStage.ERROR.value, "failed_stage": stage.value},
            ) from e

    def _normalize_outbound(
        self,
        outbound: DirectionFetchResult,
        chain_id: int,
        address: str,
        native_symbol: str,
    ) -> list[TxItem]:
        """Normalize outbound transfers; a bad record drops the whole batch."""
        if not outbound.succeeded:
            return []
        try:
            return [
                self._normalizer.normalize(transfer, chain_id, address, native_symbol)
                for transfer in outbound.transfers
            ]
        except NormalizationError as e:
            logger.warning(f"[pipeline] Dropping outbound transfers for {chain_id}:{address}: {e}")
            return []

    def get_cache_stats(self) -> dict:
        return self._cache.get_cache_stats()

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the upstream client if this pipeline created it."""
        if self._owns_client and isinstance(self._client, AlchemyTransfersClient):
            await self._client.close()

    async def __aenter__(self) -> "AggregationPipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
