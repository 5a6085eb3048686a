"""Python client for the WasteWatch API."""

from .api import (
    ApiClientError,
    ServerError,
    TransportError,
    WasteApiClient,
    extract_docs,
)
from .board import NETWORK_ERROR, ReportBoard
from .forms import RegistrationForm
from .session import ClientSession, TokenStore

__all__ = [
    "NETWORK_ERROR",
    "ApiClientError",
    "ClientSession",
    "RegistrationForm",
    "ReportBoard",
    "ServerError",
    "TokenStore",
    "TransportError",
    "WasteApiClient",
    "extract_docs",
]
