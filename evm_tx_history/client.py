"""
Alchemy Transfers Client - JSON-RPC access to alchemy_getAssetTransfers.

Failure classes are kept distinct:
- UpstreamTransportError: connection failure, timeout, HTTP status >= 400
- UpstreamMalformedResponseError: body is not UTF-8 JSON or lacks result.transfers
- UpstreamProtocolError: JSON-RPC error envelope {"error": {"message": ...}}
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional, Union

import aiohttp

from evm_tx_history.exceptions import (
    UpstreamMalformedResponseError,
    UpstreamProtocolError,
    UpstreamTransportError,
)
from evm_tx_history.logging_utils import mask_url
from evm_tx_history.models import TransferBatch, TransferQuery


logger = logging.getLogger(__name__)


class AlchemyTransfersClient:
    """
    Thin async client for the asset-transfers endpoint.

    The session is created lazily and closed by close() unless it was
    supplied by the caller.
    """

    METHOD = "alchemy_getAssetTransfers"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def name(self) -> str:
        return "alchemy"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    @classmethod
    def build_payload(cls, query: TransferQuery, request_id: int = 1) -> dict[str, Any]:
        """Build the JSON-RPC 2.0 request body."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": cls.METHOD,
            "params": [query.to_params()],
        }

    async def get_asset_transfers(
        self,
        endpoint_url: str,
        query: TransferQuery,
        request_id: int = 1,
        chain_id: Optional[int] = None,
    ) -> TransferBatch:
        """
        Run one transfer query.

        Args:
            endpoint_url: Credential-bearing provider URL (never logged raw)
            query: Single-direction query
            request_id: JSON-RPC id
            chain_id: Attached to raised errors

        Returns:
            TransferBatch with the query's own pageKey

        Raises:
            UpstreamTransportError, UpstreamMalformedResponseError,
            UpstreamProtocolError
        """
        session = await self._get_session()
        payload = self.build_payload(query, request_id)

        start_time = time.time()
        try:
            async with session.post(endpoint_url, json=payload) as response:
                body = await response.read()
                latency_ms = (time.time() - start_time) * 1000
                logger.debug(
                    f"[{self.name}] POST {mask_url(endpoint_url)} "
                    f"{query.direction.value} -> {response.status} ({latency_ms:.0f}ms)"
                )

                if response.status >= 400:
                    raise UpstreamTransportError(
                        message=f"Alchemy API HTTP error: {response.status}",
                        chain_id=chain_id,
                        status_code=response.status,
                        response_body=body.decode("utf-8", errors="replace"),
                    )

        except aiohttp.ClientError as e:
            raise UpstreamTransportError(
                message=f"Alchemy API connection error: {e.__class__.__name__}",
                chain_id=chain_id,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTransportError(
                message=f"Alchemy API timeout after {self._timeout:.0f}s",
                chain_id=chain_id,
                original_error=e,
            )

        return self.parse_response(body, chain_id)

    @staticmethod
    def parse_response(body: Union[bytes, str], chain_id: Optional[int] = None) -> TransferBatch:
        """
        Unwrap a JSON-RPC response body into a TransferBatch.

        Raises:
            UpstreamMalformedResponseError, UpstreamProtocolError
        """
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise UpstreamMalformedResponseError(
                    message="Alchemy API returned a body that is not valid UTF-8",
                    chain_id=chain_id,
                    response_body=body.decode("utf-8", errors="replace"),
                    original_error=e,
                )

        try:
            data = json.loads(body)
        except ValueError as e:
            raise UpstreamMalformedResponseError(
                message=f"Alchemy API returned invalid JSON: {body[:100]}",
                chain_id=chain_id,
                response_body=body,
                original_error=e,
            )

        if not isinstance(data, dict):
            raise UpstreamMalformedResponseError(
                message="Alchemy API returned a non-object body",
                chain_id=chain_id,
                response_body=body,
            )

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                rpc_message = str(error.get("message", error))
                rpc_code = error.get("code")
            else:
                rpc_message = str(error)
                rpc_code = None
            raise UpstreamProtocolError(
                message=f"Alchemy API error: {rpc_message}",
                chain_id=chain_id,
                rpc_code=rpc_code if isinstance(rpc_code, int) else None,
                rpc_message=rpc_message,
            )

        result = data.get("result")
        if not isinstance(result, dict) or not isinstance(result.get("transfers"), list):
            raise UpstreamMalformedResponseError(
                message="Alchemy API response missing result.transfers",
                chain_id=chain_id,
                response_body=body,
            )

        page_key = result.get("pageKey")
        return TransferBatch(
            transfers=tuple(result["transfers"]),
            page_key=page_key if isinstance(page_key, str) and page_key else None,
        )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "AlchemyTransfersClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
