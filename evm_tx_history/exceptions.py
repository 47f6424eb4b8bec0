"""
Transaction History Exceptions - Custom exception hierarchy.

Every error a caller can see derives from TxHistoryError, so an outer layer
only has to catch one class to turn failures into a bad-request response.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from evm_tx_history.logging_utils import mask_url


GENERIC_FAILURE_MESSAGE = "Failed to fetch transaction history"


class TxHistoryError(Exception):
    """Base exception for all transaction history errors."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.chain_id = chain_id
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "chain_id": self.chain_id,
            "original_error": self._original_error_text(),
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.chain_id is not None:
            parts.append(f"[chain={self.chain_id}]")
        if self.original_error:
            parts.append(f"(caused by: {self._original_error_text()})")
        return " ".join(parts)

    def _original_error_text(self) -> Optional[str]:
        # aiohttp errors embed the request URL, which carries the credential
        if not self.original_error:
            return None
        return mask_url(str(self.original_error))


# ─────────────────────────────────────────────────────────────
# Input Validation
# ─────────────────────────────────────────────────────────────

class InvalidAddressError(TxHistoryError):
    """Address is not 0x followed by 40 hex characters."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.address = address

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["address"] = self.address
        return data


class InvalidPageSizeError(TxHistoryError):
    """Requested page size is not a positive integer."""

    def __init__(
        self,
        message: str,
        page_size: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.page_size = page_size

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["page_size"] = repr(self.page_size)
        return data


class InvalidCategoryError(TxHistoryError):
    """Requested transfer category is not one the pipeline can normalize."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        allowed_categories: Optional[list[str]] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.category = category
        self.allowed_categories = allowed_categories or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "category": self.category,
            "allowed_categories": self.allowed_categories,
        })
        return data


# ─────────────────────────────────────────────────────────────
# Chain Resolution
# ─────────────────────────────────────────────────────────────

class UnsupportedChainError(TxHistoryError):
    """Requested chain id is not in the chain table."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        supported_chains: Optional[list[int]] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, None, context)
        self.supported_chains = supported_chains or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["supported_chains"] = self.supported_chains
        return data


class MissingCredentialError(TxHistoryError):
    """Provider credential for a supported chain is not configured."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        credential_key: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, None, context)
        self.credential_key = credential_key

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["credential_key"] = self.credential_key
        return data


# ─────────────────────────────────────────────────────────────
# Upstream
# ─────────────────────────────────────────────────────────────

class UpstreamError(TxHistoryError):
    """Base for failures of the upstream transfer-query service."""


class UpstreamTransportError(UpstreamError):
    """Connection failure, timeout or non-success HTTP status."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, original_error, context)
        self.status_code = status_code
        self.response_body = response_body[:500] if response_body else None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
        })
        return data


class UpstreamMalformedResponseError(UpstreamError):
    """Response body is not valid JSON or lacks the expected result shape."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        response_body: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, original_error, context)
        self.response_body = response_body[:500] if response_body else None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["response_body"] = self.response_body
        return data


class UpstreamProtocolError(UpstreamError):
    """JSON-RPC error envelope returned by the provider."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        rpc_code: Optional[int] = None,
        rpc_message: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, None, context)
        self.rpc_code = rpc_code
        self.rpc_message = rpc_message

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "rpc_code": self.rpc_code,
            "rpc_message": self.rpc_message,
        })
        return data


# ─────────────────────────────────────────────────────────────
# Normalization
# ─────────────────────────────────────────────────────────────

class NormalizationError(TxHistoryError):
    """Upstream transfer record could not be converted to a TxItem."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[int] = None,
        raw_data: Optional[Any] = None,
        field_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain_id, original_error, context)
        self.raw_data = raw_data
        self.field_name = field_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "raw_data": str(self.raw_data)[:500] if self.raw_data else None,
            "field_name": self.field_name,
        })
        return data
