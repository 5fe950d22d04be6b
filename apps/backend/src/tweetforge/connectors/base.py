"""Base interface for all real service connectors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, NoReturn

import httpx

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Raised when an external service call cannot be completed."""

    def __init__(self, message: str, error_type: str = "connector_error"):
        self.error_type = error_type
        super().__init__(message)


_STATUS_ERROR_TYPES = {
    401: "permission_denied",
    403: "permission_denied",
    404: "not_found",
    429: "rate_limit",
}


def error_type_for_status(status_code: int) -> str:
    """Map a vendor HTTP status onto a ServiceError type."""
    return _STATUS_ERROR_TYPES.get(status_code, "connector_error")


class BaseConnector(ABC):
    """Abstract base for the vendor connectors.

    Connectors are constructed explicitly from Settings and share the
    application's httpx client; nothing is created lazily on first use.
    """

    service_name: str = ""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self.http = http_client

    def _log(self, action: str, **details) -> None:
        """Record a completed vendor action."""
        summary = " ".join(f"{key}={value}" for key, value in details.items())
        logger.info("%s.%s ok %s", self.service_name, action, summary)

    def _fail(self, message: str, error_type: str = "connector_error") -> NoReturn:
        """Raise a ServiceError."""
        raise ServiceError(message, error_type)

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> BaseConnector:
        """Construct this connector from application Settings."""
        ...

    @classmethod
    @abstractmethod
    def is_configured(cls, settings: Settings) -> bool:
        """Return True if all required credentials are present in settings."""
        ...
