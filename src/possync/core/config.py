"""Shared configuration classes for possync.

This module defines configuration classes for every upstream and downstream
system the sync service talks to.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BACKOFFICE_HOST = "themint.backoffice.dutchie.com"
DEFAULT_LSP_ID = 575
DEFAULT_ORG_ID = 5134


@dataclass
class BackofficeConfig:
    """Configuration for the session-authenticated backoffice API.

    Attributes:
        base_url: Base URL of the backoffice (e.g., "https://x.backoffice.dutchie.com").
        username: Login username (optional if session_id is given).
        password: Login password.
        session_id: Pre-obtained static session token.
        user_id: User id matching a static session token.
        lsp_id: Account LSP identifier sent with every call.
        org_id: Account organisation identifier sent with every call.
        session_ttl_hours: Conservative session lifetime estimate.
        timeout: Request timeout in seconds.
        retry_delay: Delay before the single network retry, in seconds.
    """

    base_url: str = f"https://{DEFAULT_BACKOFFICE_HOST}"
    username: str | None = None
    password: str | None = None
    session_id: str | None = None
    user_id: str | None = None
    lsp_id: int = DEFAULT_LSP_ID
    org_id: int = DEFAULT_ORG_ID
    session_ttl_hours: float = 24.0
    timeout: float = 30.0
    retry_delay: float = 2.0

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")

    @property
    def account_key(self) -> str:
        """Identity of the upstream account (used to key session locks)."""
        return f"{self.base_url}|{self.org_id}|{self.lsp_id}|{self.username or ''}"

    @property
    def has_credentials(self) -> bool:
        """Check whether username and password are both configured."""
        return bool(self.username and self.password)


@dataclass
class PosApiConfig:
    """Configuration for the per-store POS reporting API."""

    base_url: str = "https://api.pos.dutchie.com"
    timeout: float = 30.0
    transactions_timeout: float = 180.0
    retry_delay: float = 2.0

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")


@dataclass
class MenuApiConfig:
    """Configuration for the public menu (GraphQL) API."""

    url: str = "https://plus.dutchie.com/plus/2021-07/graphql"
    api_key: str | None = None
    timeout: float = 30.0

    @property
    def enabled(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key)


@dataclass
class ErpConfig:
    """Configuration for the external ERP (Odoo JSON-RPC)."""

    url: str | None = None
    database: str = "odoo"
    username: str | None = None
    api_key: str | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize URL."""
        if self.url:
            self.url = self.url.rstrip("/")

    @property
    def enabled(self) -> bool:
        """Check if ERP push is configured."""
        return bool(self.url and self.username and self.api_key)


@dataclass
class SyncConfig:
    """Configuration for the sync service itself.

    Attributes:
        directory_url: Store directory endpoint returning location entries.
        directory_token: Optional bearer token for the store directory.
        database_url: SQLAlchemy URL of the inventory database.
        redis_url: Redis URL for the cache sink.
        sync_interval_minutes: Minutes between sync cycles.
        banner_hour: Local hour after which the daily banner sync runs.
        gl_export_hour: Local hour after which the daily GL export runs.
        max_workers: Per-phase location concurrency (1 = sequential).
    """

    directory_url: str = ""
    directory_token: str | None = None
    database_url: str = "sqlite:///possync.db"
    redis_url: str = "redis://localhost:6379/0"
    sync_interval_minutes: int = 10
    banner_hour: int = 5
    gl_export_hour: int = 8
    max_workers: int = 1

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.sync_interval_minutes < 1:
            raise ValueError("sync_interval_minutes must be at least 1")


@dataclass
class Settings:
    """All configuration sections, as resolved at startup."""

    backoffice: BackofficeConfig
    pos: PosApiConfig
    menu: MenuApiConfig
    erp: ErpConfig
    sync: SyncConfig
