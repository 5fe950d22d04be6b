"""Connector package: real API connectors with transparent simulator fallback.

Usage:
    from tweetforge.connectors import create_service_layer, close_service_layer

    state, services = create_service_layer(settings)
    try:
        ...
    finally:
        await close_service_layer(services)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Type

import httpx

from .base import BaseConnector, ServiceError
from .generator import ContentGenerator
from .twitter import TwitterConnector

if TYPE_CHECKING:
    from ..config import Settings
    from ..simulator.state import SimulatorState

CONNECTORS: dict[str, Type[BaseConnector]] = {
    ContentGenerator.service_name: ContentGenerator,
    TwitterConnector.service_name: TwitterConnector,
}

MISSING_CREDENTIALS = {
    "openai": "OPENAI_API_KEY is not configured. Set it to enable AI tweet generation.",
    "twitter": (
        "Twitter credentials are missing. Set TWITTER_API_KEY, TWITTER_API_SECRET, "
        "TWITTER_ACCESS_TOKEN, and TWITTER_ACCESS_SECRET."
    ),
}

HTTP_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


def create_service_layer(settings: Settings) -> tuple[SimulatorState, dict[str, Any]]:
    """Create a service dict with hybrid real+simulator routing.

    Modes (controlled by settings.connector_mode):
      "simulator" : always returns the in-memory simulator services
      "hybrid"    : uses a real connector per service when credentials are set,
                     falls back to the simulator service otherwise (default)
      "real"      : real connectors only; unconfigured services are left out
                     and fail with a not_configured error when requested
    """
    # Imported here: the simulator depends on this package
    from ..simulator import create_simulator

    state, sim_services = create_simulator()

    if settings.connector_mode == "simulator":
        return state, sim_services

    http_client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
    services: dict[str, Any] = {}

    for name, cls in CONNECTORS.items():
        if cls.is_configured(settings):
            services[name] = cls.from_settings(settings, http_client)
        elif settings.connector_mode == "hybrid":
            services[name] = sim_services[name]

    # Stash the http_client so close_service_layer can always close it,
    # even when no connectors ended up in the service map.
    services["_http_client"] = http_client

    return state, services


def get_service(services: dict[str, Any], name: str) -> Any:
    """Return the service registered under ``name`` or raise not_configured."""
    service = services.get(name)
    if service is None:
        message = MISSING_CREDENTIALS.get(name, f"{name} is not configured.")
        raise ServiceError(message, "not_configured")
    return service


async def close_service_layer(services: dict[str, Any]) -> None:
    """Close the shared AsyncClient attached to the service map."""
    stashed = services.pop("_http_client", None)
    if isinstance(stashed, httpx.AsyncClient):
        await stashed.aclose()
