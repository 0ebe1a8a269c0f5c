"""JSON-RPC client for the external ERP (Odoo).

This module provides:
- ErpClient: Authentication and the model operations used by the ERP push
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any

import httpx

from possync.client.errors import ApiError, AuthError, DataError
from possync.client.retry import send_with_network_retry
from possync.core.config import ErpConfig

logger = logging.getLogger(__name__)

JSONRPC_PATH = "/jsonrpc"


class ErpClient:
    """Odoo JSON-RPC client.

    Usage:
        erp = ErpClient(config)
        erp.authenticate()
        record_id, created = erp.upsert("product.template", domain, values)
    """

    def __init__(self, config: ErpConfig) -> None:
        """Initialize the client.

        Args:
            config: ERP configuration.
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.url or "",
            timeout=config.timeout,
            headers={"Content-Type": "application/json"},
        )
        self._uid: int | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        """Check if the ERP is configured."""
        return self._config.enabled

    @property
    def uid(self) -> int | None:
        """Authenticated user id."""
        return self._uid

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def _rpc(self, service: str, method: str, args: list[Any]) -> Any:
        with self._lock:
            request_id = next(self._ids)
        body = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": request_id,
        }
        response = send_with_network_retry(
            lambda: self._client.post(JSONRPC_PATH, json=body),
            description=f"ERP {service}.{method}",
        )
        if response.status_code != 200:
            raise ApiError(f"ERP error {response.status_code}", response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise DataError("ERP returned a malformed payload", 200) from e

        error = payload.get("error")
        if error:
            message = (error.get("data") or {}).get("message") or error.get("message")
            raise ApiError(f"ERP error: {message or error}", 200)
        return payload.get("result")

    def authenticate(self) -> int:
        """Authenticate and remember the user id.

        Raises:
            AuthError: If credentials are missing or rejected.
        """
        if not self.enabled:
            raise AuthError("ERP credentials not configured")

        uid = self._rpc(
            "common",
            "authenticate",
            [self._config.database, self._config.username, self._config.api_key, {}],
        )
        if not uid:
            raise AuthError("ERP authentication failed")
        self._uid = int(uid)
        logger.info(f"ERP authenticated: uid={uid}, database={self._config.database}")
        return self._uid

    def execute(
        self,
        model: str,
        method: str,
        args: list[Any],
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Run a model method through execute_kw."""
        if self._uid is None:
            self.authenticate()
        return self._rpc(
            "object",
            "execute_kw",
            [
                self._config.database,
                self._uid,
                self._config.api_key,
                model,
                method,
                args,
                kwargs or {},
            ],
        )

    def search(self, model: str, domain: list[Any], limit: int | None = None) -> list[int]:
        """Search record ids matching a domain."""
        kwargs = {"limit": limit} if limit else {}
        return list(self.execute(model, "search", [domain], kwargs) or [])

    def search_read(
        self, model: str, domain: list[Any], fields: list[str]
    ) -> list[dict[str, Any]]:
        """Read records matching a domain."""
        return list(self.execute(model, "search_read", [domain], {"fields": fields}) or [])

    def create(self, model: str, values: dict[str, Any]) -> int:
        """Create a record and return its id."""
        return int(self.execute(model, "create", [values]))

    def write(self, model: str, record_id: int, values: dict[str, Any]) -> bool:
        """Update a record."""
        return bool(self.execute(model, "write", [[record_id], values]))

    def upsert(
        self, model: str, domain: list[Any], values: dict[str, Any]
    ) -> tuple[int, bool]:
        """Update the first record matching domain, or create one.

        Returns:
            Tuple of (record_id, created).
        """
        existing = self.search(model, domain, limit=1)
        if existing:
            self.write(model, existing[0], values)
            return existing[0], False
        return self.create(model, values), True
