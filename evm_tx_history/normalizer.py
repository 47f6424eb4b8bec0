"""
Transfer Normalizer - Converts upstream transfer records to TxItem.

Value rules per category:
- external: exact hex wei (18 decimals), else the float approximation, else "0"
- erc20:    exact hex amount scaled by rawContract.decimal (default 18)
- erc721/erc1155: token id, else "1"
"""

import logging
from typing import Any, Optional, Union

from evm_tx_history.amounts import (
    NATIVE_DECIMALS,
    approximate_to_decimal_string,
    hex_to_decimal_string,
    parse_decimals,
)
from evm_tx_history.clock import ClockProtocol, SystemClock, from_iso8601, to_iso8601
from evm_tx_history.exceptions import NormalizationError
from evm_tx_history.models import (
    AssetType,
    Direction,
    RawTransfer,
    TransferCategory,
    TxItem,
)


logger = logging.getLogger(__name__)

DEFAULT_TOKEN_SYMBOL = "TOKEN"
DEFAULT_NFT_SYMBOL = "NFT"
DEFAULT_NATIVE_SYMBOL = "ETH"


def determine_direction(from_address: str, to_address: str, address: str) -> Direction:
    """Classify a transfer relative to address, case-insensitively."""
    target = address.lower()
    is_from = from_address.lower() == target
    is_to = to_address.lower() == target

    if is_from and is_to:
        return Direction.SELF
    if is_from:
        return Direction.OUT
    if is_to:
        return Direction.IN
    return Direction.UNKNOWN


def map_asset_type(category: str) -> AssetType:
    """external maps to native; other categories keep their name."""
    if category == TransferCategory.EXTERNAL.value:
        return AssetType.NATIVE
    return AssetType(category)


class TransferNormalizer:
    """
    Normalizes upstream transfer records.

    Usage:
        normalizer = TransferNormalizer()
        item = normalizer.normalize(transfer_dict, chain_id=1, address=target)
    """

    def __init__(self, clock: Optional[ClockProtocol] = None) -> None:
        self._clock = clock or SystemClock()

    def normalize(
        self,
        transfer: Union[RawTransfer, dict[str, Any]],
        chain_id: int,
        address: str,
        native_symbol: str = DEFAULT_NATIVE_SYMBOL,
    ) -> TxItem:
        """
        Normalize one transfer.

        Args:
            transfer: RawTransfer or the upstream dict
            chain_id: Chain the transfer was fetched from
            address: Queried address, used for direction
            native_symbol: Symbol for native-asset transfers

        Returns:
            TxItem

        Raises:
            NormalizationError: If the record is missing fields or carries
                unparseable amounts
        """
        raw = self._parse(transfer, chain_id)

        try:
            asset_type = map_asset_type(raw.category)
        except ValueError as e:
            raise NormalizationError(
                message=f"Unsupported transfer category: {raw.category}",
                chain_id=chain_id,
                raw_data=raw.source,
                field_name="category",
                original_error=e,
            )

        try:
            value, symbol, token_address = self._convert_value(raw, asset_type, native_symbol)
        except ValueError as e:
            raise NormalizationError(
                message=f"Failed to convert transfer value: {e}",
                chain_id=chain_id,
                raw_data=raw.source,
                field_name="rawContract",
                original_error=e,
            )

        return TxItem(
            hash=raw.hash,
            chain_id=chain_id,
            timestamp=self._timestamp(raw, chain_id),
            direction=determine_direction(raw.from_address, raw.to_address, address),
            asset_type=asset_type,
            from_address=raw.from_address.lower(),
            to_address=raw.to_address.lower(),
            value=value,
            symbol=symbol,
            token_address=token_address,
            token_id=raw.token_id,
            raw=raw.source,
        )

    def _parse(
        self,
        transfer: Union[RawTransfer, dict[str, Any]],
        chain_id: int,
    ) -> RawTransfer:
        if isinstance(transfer, RawTransfer):
            return transfer
        try:
            raw = RawTransfer.from_dict(transfer)
        except (KeyError, TypeError, AttributeError) as e:
            raise NormalizationError(
                message=f"Malformed transfer record: missing {e}",
                chain_id=chain_id,
                raw_data=transfer,
                original_error=e,
            )

        for field_name in ("hash", "from_address", "to_address", "category"):
            if not isinstance(getattr(raw, field_name), str):
                raise NormalizationError(
                    message=f"Malformed transfer record: {field_name} is not a string",
                    chain_id=chain_id,
                    raw_data=transfer,
                    field_name=field_name,
                )
        return raw

    def _convert_value(
        self,
        raw: RawTransfer,
        asset_type: AssetType,
        native_symbol: str,
    ) -> tuple[str, Optional[str], Optional[str]]:
        """Return (value, symbol, token_address)."""
        token_address = raw.contract_address.lower() if raw.contract_address else None

        if asset_type == AssetType.NATIVE:
            if raw.raw_value:
                value = hex_to_decimal_string(raw.raw_value, NATIVE_DECIMALS)
            else:
                value = approximate_to_decimal_string(raw.decimal_value)
            # Native transfers have no contract
            return value, native_symbol, None

        if asset_type == AssetType.ERC20:
            decimals = parse_decimals(raw.raw_decimals)
            value = hex_to_decimal_string(raw.raw_value, decimals)
            return value, raw.asset or DEFAULT_TOKEN_SYMBOL, token_address

        # NFT
        return raw.token_id or "1", raw.asset or DEFAULT_NFT_SYMBOL, token_address

    def _timestamp(self, raw: RawTransfer, chain_id: int) -> str:
        if not raw.block_timestamp:
            return self._clock.format_iso()
        try:
            return to_iso8601(from_iso8601(raw.block_timestamp))
        except ValueError:
            logger.warning(
                f"[normalizer] Unparseable block timestamp {raw.block_timestamp!r} "
                f"for {raw.hash} on chain {chain_id}, using current time"
            )
            return self._clock.format_iso()
