"""HTTP client for the per-store POS reporting API.

Each store has its own API key, sent as the basic-auth username. This path
does not use the backoffice session flow.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from possync.client.errors import ApiError, AuthError, DataError
from possync.client.retry import send_with_network_retry
from possync.core.config import PosApiConfig

logger = logging.getLogger(__name__)


class PosClient:
    """HTTP client for one store's POS reporting API."""

    def __init__(self, api_key: str, config: PosApiConfig | None = None) -> None:
        """Initialize the client.

        Args:
            api_key: Store API key.
            config: API endpoint configuration.
        """
        self._config = config or PosApiConfig()
        self._client = httpx.Client(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            auth=(api_key, ""),
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> PosClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthError("Store API key rejected", 401)
        if response.status_code != 200:
            raise ApiError(
                f"POS API error {response.status_code} on {response.request.url.path}",
                response.status_code,
            )
        return response

    def _get_list(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        response = self._handle_response(
            send_with_network_retry(
                lambda: self._client.get(
                    path,
                    params=params,
                    timeout=timeout if timeout is not None else self._config.timeout,
                ),
                retry_delay=self._config.retry_delay,
                description=f"GET {path}",
            )
        )
        try:
            data = response.json()
        except ValueError as e:
            raise DataError(f"Malformed response from {path}", 200) from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise DataError(f"Expected a list from {path}", 200)
        return data

    def get_inventory_report(self) -> list[dict[str, Any]]:
        """Fetch the current inventory of the store."""
        items = self._get_list("/reporting/inventory")
        logger.debug(f"Fetched {len(items)} inventory items")
        return items

    def get_discounts(self) -> list[dict[str, Any]]:
        """Fetch active discounts with their restriction data."""
        discounts = self._get_list(
            "/discounts/v2/list",
            params={
                "includeInactive": "false",
                "includeInclusionExclusionData": "true",
            },
        )
        logger.debug(f"Fetched {len(discounts)} discounts")
        return discounts

    def get_transactions(
        self,
        from_date_utc: str,
        to_date_utc: str,
        include_detail: bool = True,
        include_taxes: bool = True,
    ) -> list[dict[str, Any]]:
        """Fetch transactions in a UTC window, oldest first.

        Args:
            from_date_utc: Window start (ISO 8601, UTC).
            to_date_utc: Window end (ISO 8601, UTC).
            include_detail: Include item lines.
            include_taxes: Include tax breakdowns.

        Returns:
            Transaction records.
        """
        return self._get_list(
            "/reporting/transactions",
            params={
                "FromDateUTC": from_date_utc,
                "ToDateUTC": to_date_utc,
                "IncludeDetail": str(include_detail).lower(),
                "IncludeTaxes": str(include_taxes).lower(),
                "IncludeOrderIds": "true",
            },
            timeout=self._config.transactions_timeout,
        )
