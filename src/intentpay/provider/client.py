"""
1Click API client for the intents quote/settlement provider.

This module wraps the provider's HTTP endpoints:

- ``POST /v0/quote``           request a quote (never retried)
- ``GET  /v0/status``          execution status for a deposit address
- ``POST /v0/deposit/submit``  report the deposit tx hash to speed up settlement
- ``GET  /v0/tokens``          assets the provider currently supports
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from intentpay.core.exceptions import ProviderError
from intentpay.core.logging import get_logger
from intentpay.core.types import Quote, SettlementStatus
from intentpay.resilience.retry import execute_with_retry


class OneClickClient:
    """
    Async client for the 1Click API.

    Every failure (transport error, non-2xx status, unparseable body) is
    raised as ProviderError so callers only handle one error type.

    Example:
        >>> client = OneClickClient(api_token="eyJ...")
        >>> quote = await client.request_quote(body)
        >>> status = await client.get_status(quote.deposit_address)
        >>> await client.close()
    """

    DEFAULT_BASE_URL = "https://1click.chaindefuser.com"

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root (defaults to the public 1Click endpoint)
            api_token: Optional JWT sent as a bearer token
            timeout: Request timeout in seconds
            retry_attempts: Attempts for idempotent reads
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._retry_attempts = retry_attempts
        self._transport = transport
        self._logger = get_logger("provider")
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {"Accept": "application/json"}
            if self._api_token:
                headers["Authorization"] = f"Bearer {self._api_token}"
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        client = await self._get_client()
        url = f"{self._base_url}{path}"
        self._logger.debug(f"{method} {url}")
        try:
            response = await client.request(method, path, json=body, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}", url=url) from e

        if response.status_code >= 400:
            raise ProviderError(
                _error_message(response),
                status_code=response.status_code,
                url=url,
                details={"body": response.text[:500]} if response.text else None,
            )

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ProviderError(
                f"Invalid JSON from {path}", status_code=response.status_code, url=url
            ) from e

    async def request_quote(self, body: dict[str, Any]) -> Quote:
        """
        Request a quote.

        Args:
            body: Provider request body (see QuoteNegotiator for how it is built)

        Returns:
            Parsed Quote

        Raises:
            ProviderError: On any transport, HTTP or parsing failure
        """
        data = await self._request("POST", "/v0/quote", body)
        try:
            return Quote.from_api_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed quote response: {e}",
                url=f"{self._base_url}/v0/quote",
            ) from e

    async def get_status(self, deposit_address: str) -> SettlementStatus:
        """
        Get execution status for a quote's deposit address.

        Transient failures are retried; the last error is raised.
        """
        data = await execute_with_retry(
            self._request,
            "GET",
            "/v0/status",
            params={"depositAddress": deposit_address},
            attempts=self._retry_attempts,
        )
        return SettlementStatus.from_api_response(data)

    async def submit_deposit_tx(self, tx_hash: str, deposit_address: str) -> dict[str, Any]:
        """Tell the provider which transaction funded a deposit address."""
        return await execute_with_retry(
            self._request,
            "POST",
            "/v0/deposit/submit",
            {"txHash": tx_hash, "depositAddress": deposit_address},
            attempts=self._retry_attempts,
        )

    async def list_tokens(self) -> list[dict[str, Any]]:
        """List assets the provider currently supports."""
        data = await execute_with_retry(
            self._request, "GET", "/v0/tokens", attempts=self._retry_attempts
        )
        return list(data or [])


def _error_message(response: httpx.Response) -> str:
    """Extract the provider's error message from an error response."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload)
    return str(payload)
