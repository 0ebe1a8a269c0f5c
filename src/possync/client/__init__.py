"""Upstream API clients."""

from possync.client.api import ResilientApiClient, is_auth_failure
from possync.client.backoffice import BackofficeClient, PaymentSummary
from possync.client.directory import StoreDirectoryClient, resolve_locations
from possync.client.erp import ErpClient
from possync.client.errors import (
    ApiError,
    AuthError,
    DataError,
    NetworkError,
    NoLocationsError,
)
from possync.client.menu import MenuClient
from possync.client.pos import PosClient
from possync.client.session import AuthenticatedSession, Credentials, Session

__all__ = [
    # Errors
    "ApiError",
    "AuthError",
    "DataError",
    "NetworkError",
    "NoLocationsError",
    # Backoffice
    "AuthenticatedSession",
    "BackofficeClient",
    "Credentials",
    "PaymentSummary",
    "ResilientApiClient",
    "Session",
    "is_auth_failure",
    # Other upstreams
    "ErpClient",
    "MenuClient",
    "PosClient",
    "StoreDirectoryClient",
    "resolve_locations",
]
