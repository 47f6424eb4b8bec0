"""
EVM Transaction History - Normalized, paginated transfer history.

Aggregates alchemy_getAssetTransfers results for one address into a single
newest-first, hash-unique page with exact decimal values.

Features:
- Inbound + outbound queries on the first page (outbound is best-effort)
- Exact wei/token amount conversion (no floats)
- Pagination-aware response caching (60s first page, 300s cursor pages)
- One client-facing error class: TxHistoryError

Quick Start:
    from evm_tx_history import AggregationPipeline

    async def recent_activity(address: str):
        async with AggregationPipeline() as pipeline:
            page = await pipeline.fetch_history(1, address, page_size=20)

            for item in page.items:
                print(f"{item.timestamp} {item.direction.value} {item.value} {item.symbol}")

            if page.next_page_key:
                older = await pipeline.fetch_history(
                    1, address, page_key=page.next_page_key, page_size=20
                )

Credentials:
    ALCHEMY_KEY_ETH, ALCHEMY_KEY_BASE, ALCHEMY_KEY_ARB, ALCHEMY_KEY_POLY,
    ALCHEMY_KEY_SEPOLIA, ALCHEMY_KEY_BASE_SEPOLIA
"""

from evm_tx_history.amounts import to_decimal_string
from evm_tx_history.cache import CacheStore, InMemoryCacheStore, ResponseCache
from evm_tx_history.chains import CHAIN_CONFIGS, ChainConfig, ChainRegistry, ResolvedChain
from evm_tx_history.client import AlchemyTransfersClient
from evm_tx_history.clock import ClockProtocol, MockClock, SystemClock
from evm_tx_history.config import CredentialSource, EnvCredentialSource, TxHistorySettings
from evm_tx_history.exceptions import (
    InvalidAddressError,
    InvalidCategoryError,
    InvalidPageSizeError,
    MissingCredentialError,
    NormalizationError,
    TxHistoryError,
    UnsupportedChainError,
    UpstreamError,
    UpstreamMalformedResponseError,
    UpstreamProtocolError,
    UpstreamTransportError,
)
from evm_tx_history.fetcher import DualDirectionFetcher
from evm_tx_history.models import (
    AssetType,
    Chain,
    Direction,
    DirectionFetchResult,
    DualFetchResult,
    FetchOutcome,
    QueryDirection,
    RawTransfer,
    TransferBatch,
    TransferCategory,
    TransferQuery,
    TxHistoryPage,
    TxItem,
)
from evm_tx_history.normalizer import TransferNormalizer, determine_direction
from evm_tx_history.pipeline import AggregationPipeline, PipelineStage, merge_items
from evm_tx_history.validation import (
    clamp_page_size,
    validate_address,
    validate_categories,
)


__version__ = "1.0.0"

__all__ = [
    # Pipeline
    "AggregationPipeline",
    "PipelineStage",
    "merge_items",

    # Components
    "ChainRegistry",
    "ChainConfig",
    "ResolvedChain",
    "CHAIN_CONFIGS",
    "DualDirectionFetcher",
    "AlchemyTransfersClient",
    "TransferNormalizer",
    "determine_direction",
    "to_decimal_string",
    "ResponseCache",
    "CacheStore",
    "InMemoryCacheStore",

    # Validation
    "validate_address",
    "clamp_page_size",
    "validate_categories",

    # Config & clock
    "TxHistorySettings",
    "CredentialSource",
    "EnvCredentialSource",
    "ClockProtocol",
    "SystemClock",
    "MockClock",

    # Models
    "Chain",
    "TransferCategory",
    "AssetType",
    "Direction",
    "QueryDirection",
    "FetchOutcome",
    "RawTransfer",
    "TxItem",
    "TxHistoryPage",
    "TransferQuery",
    "TransferBatch",
    "DirectionFetchResult",
    "DualFetchResult",

    # Exceptions
    "TxHistoryError",
    "InvalidAddressError",
    "InvalidPageSizeError",
    "InvalidCategoryError",
    "UnsupportedChainError",
    "MissingCredentialError",
    "UpstreamError",
    "UpstreamTransportError",
    "UpstreamMalformedResponseError",
    "UpstreamProtocolError",
    "NormalizationError",
]
