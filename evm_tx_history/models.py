"""
Transaction History Data Models - Upstream records and normalized output.

RawTransfer mirrors one entry of alchemy_getAssetTransfers; TxItem and
TxHistoryPage are what callers receive.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional, Union


class Chain(IntEnum):
    """Supported EVM networks, valued by chain id."""
    ETHEREUM = 1
    BASE = 8453
    ARBITRUM = 42161
    POLYGON = 137
    SEPOLIA = 11155111
    BASE_SEPOLIA = 84532


class TransferCategory(Enum):
    """Upstream transfer categories the pipeline requests and normalizes."""
    EXTERNAL = "external"
    ERC20 = "erc20"
    ERC721 = "erc721"
    ERC1155 = "erc1155"


class AssetType(Enum):
    """Asset type of a normalized item."""
    NATIVE = "native"
    ERC20 = "erc20"
    ERC721 = "erc721"
    ERC1155 = "erc1155"


class Direction(Enum):
    """Direction of a transfer relative to the queried address."""
    IN = "in"
    OUT = "out"
    SELF = "self"
    UNKNOWN = "unknown"


class QueryDirection(Enum):
    """Which side of a transfer the upstream query filters on."""
    INBOUND = "inbound"    # toAddress
    OUTBOUND = "outbound"  # fromAddress


class FetchOutcome(Enum):
    """Result of one upstream query."""
    SUCCEEDED = "succeeded"
    TOLERATED_FAILURE = "tolerated_failure"
    FATAL_FAILURE = "fatal_failure"


ALL_CATEGORIES: tuple[str, ...] = tuple(c.value for c in TransferCategory)


@dataclass(frozen=True)
class RawTransfer:
    """
    One transfer as reported by the provider - untrusted input.

    raw_value is the hex-encoded base-unit amount and is only ever decoded
    as an integer. decimal_value is the provider's float approximation.
    """
    block_num: str
    hash: str
    from_address: str
    to_address: str
    category: str
    asset: Optional[str] = None
    decimal_value: Optional[Union[int, float]] = None
    raw_value: Optional[str] = None
    contract_address: Optional[str] = None
    raw_decimals: Optional[str] = None
    token_id: Optional[str] = None
    block_timestamp: Optional[str] = None
    source: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawTransfer":
        """
        Create from an upstream transfer dict.

        Raises:
            KeyError: If hash, from or category is missing
        """
        raw_contract = data.get("rawContract") or {}
        metadata = data.get("metadata") or {}
        return cls(
            block_num=data.get("blockNum") or "",
            hash=data["hash"],
            from_address=data["from"],
            to_address=data.get("to") or "",
            category=data["category"],
            asset=data.get("asset"),
            decimal_value=data.get("value"),
            raw_value=raw_contract.get("value"),
            contract_address=raw_contract.get("address"),
            raw_decimals=raw_contract.get("decimal"),
            token_id=data.get("tokenId"),
            block_timestamp=metadata.get("blockTimestamp"),
            source=data,
        )


@dataclass(frozen=True)
class TxItem:
    """
    Normalized transaction item - STRICT schema.

    value is an exact decimal string (never exponent notation); for NFT
    transfers it carries the token id instead.
    """
    hash: str
    chain_id: int
    timestamp: str
    direction: Direction
    asset_type: AssetType
    from_address: str
    to_address: str
    value: str
    symbol: Optional[str] = None
    token_address: Optional[str] = None
    token_id: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the response wire format."""
        data: dict[str, Any] = {
            "hash": self.hash,
            "chainId": self.chain_id,
            "timestamp": self.timestamp,
            "direction": self.direction.value,
            "assetType": self.asset_type.value,
            "from": self.from_address,
            "to": self.to_address,
            "value": self.value,
        }
        if self.symbol is not None:
            data["symbol"] = self.symbol
        if self.token_address is not None:
            data["tokenAddress"] = self.token_address
        if self.token_id is not None:
            data["tokenId"] = self.token_id
        data["raw"] = self.raw
        return data


@dataclass(frozen=True)
class TxHistoryPage:
    """One page of history: unique by hash, newest first."""
    items: tuple[TxItem, ...] = ()
    next_page_key: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"items": [item.to_dict() for item in self.items]}
        if self.next_page_key is not None:
            data["nextPageKey"] = self.next_page_key
        return data


@dataclass(frozen=True)
class TransferQuery:
    """Parameters of one single-direction alchemy_getAssetTransfers call."""
    direction: QueryDirection
    address: str
    from_block: str
    categories: tuple[str, ...]
    max_count: int
    page_key: Optional[str] = None
    order: str = "desc"
    exclude_zero_value: bool = True
    with_metadata: bool = True

    def to_params(self) -> dict[str, Any]:
        """Build the JSON-RPC params object."""
        params: dict[str, Any] = {
            "fromBlock": self.from_block,
            "category": list(self.categories),
            "withMetadata": self.with_metadata,
            "excludeZeroValue": self.exclude_zero_value,
            "maxCount": hex(self.max_count),
            "order": self.order,
        }
        if self.direction == QueryDirection.INBOUND:
            params["toAddress"] = self.address
        else:
            params["fromAddress"] = self.address
        if self.page_key:
            params["pageKey"] = self.page_key
        return params


@dataclass(frozen=True)
class TransferBatch:
    """Transfers returned by one query plus that query's own cursor."""
    transfers: tuple[dict[str, Any], ...] = ()
    page_key: Optional[str] = None


@dataclass(frozen=True)
class DirectionFetchResult:
    """Outcome of one direction's query; failures are carried, not raised."""
    direction: QueryDirection
    outcome: FetchOutcome
    batch: Optional[TransferBatch] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == FetchOutcome.SUCCEEDED

    @property
    def transfers(self) -> tuple[dict[str, Any], ...]:
        """Transfers if the query succeeded, else empty."""
        if self.batch is None:
            return ()
        return self.batch.transfers


@dataclass(frozen=True)
class DualFetchResult:
    """Inbound result plus the optional first-page outbound result."""
    inbound: DirectionFetchResult
    outbound: Optional[DirectionFetchResult] = None

    @property
    def next_page_key(self) -> Optional[str]:
        """Only the inbound cursor is resumable."""
        if self.inbound.batch is None:
            return None
        return self.inbound.batch.page_key


@dataclass
class CacheEntry:
    """Cache entry for a stored page."""
    data: Any
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if cache entry is expired."""
        return now >= self.expires_at
