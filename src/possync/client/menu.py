"""GraphQL client for the public menu API.

Used for product enrichment (slugs, effects, images...) and retailer
banners, keyed by the store's external retailer id.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from possync.client.errors import ApiError, AuthError, DataError
from possync.client.retry import send_with_network_retry
from possync.core.config import MenuApiConfig

logger = logging.getLogger(__name__)

MENU_QUERY = """
query MenuQuery($retailerId: ID!) {
  menu(retailerId: $retailerId) {
    products {
      id
      name
      slug
      description
      descriptionHtml
      effects
      tags
      staffPick
      images { url }
      potencyCbd { formatted }
      potencyThc { formatted }
      posMetaData { id sku }
    }
  }
}
"""

BANNER_QUERY = """
query RetailerBanner($retailerId: ID!) {
  retailer(id: $retailerId) {
    banner { html }
  }
}
"""


class MenuClient:
    """Client for the menu GraphQL API (shared across locations, stateless)."""

    def __init__(self, config: MenuApiConfig) -> None:
        """Initialize the client.

        Args:
            config: Menu API configuration.
        """
        self._config = config
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.Client(timeout=config.timeout, headers=headers)

    @property
    def enabled(self) -> bool:
        """Check if the API key is configured."""
        return self._config.enabled

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        response = send_with_network_retry(
            lambda: self._client.post(
                self._config.url, json={"query": query, "variables": variables}
            ),
            description="Menu GraphQL query",
        )
        if response.status_code in (401, 403):
            raise AuthError("Menu API key rejected", response.status_code)
        if response.status_code != 200:
            raise ApiError(f"Menu API error {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise DataError("Menu API returned a malformed payload", 200) from e
        if not isinstance(payload, dict):
            raise DataError("Menu API returned an unexpected payload", 200)
        if payload.get("errors"):
            message = payload["errors"][0].get("message", "Unknown GraphQL error")
            raise ApiError(f"GraphQL error: {message}", 200)
        return payload.get("data") or {}

    def get_menu_products(self, retailer_id: str) -> list[dict[str, Any]]:
        """Fetch the menu products of a retailer."""
        data = self._query(MENU_QUERY, {"retailerId": retailer_id})
        products = (data.get("menu") or {}).get("products") or []
        logger.debug(f"Fetched {len(products)} menu products for retailer {retailer_id}")
        return products

    def get_retailer_banner(self, retailer_id: str) -> str | None:
        """Fetch the banner HTML of a retailer (None if no banner)."""
        data = self._query(BANNER_QUERY, {"retailerId": retailer_id})
        banner = (data.get("retailer") or {}).get("banner") or {}
        return banner.get("html") or None
