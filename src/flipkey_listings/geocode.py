"""Reverse geocoding helpers for listing coordinates."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from .models import AddressResult
from .settings import GeocodeSettings

logger = logging.getLogger(__name__)

ADDRESS_PARTS = ("Address", "City", "Region", "Postal")


class ArcGISReverseGeocoder:
    """Thin wrapper around the ArcGIS ``reverseGeocode`` REST operation."""

    def __init__(
        self,
        settings: Optional[GeocodeSettings] = None,
        session: Optional[requests.Session] = None,
        pool_size: int = 10,
    ) -> None:
        self.settings = settings or GeocodeSettings()
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session
        self._session.headers.update({"User-Agent": "flipkey-nearby-listings/0.1.0"})

    def reverse(self, latitude: float, longitude: float) -> AddressResult:
        try:
            response = self._session.get(
                self.settings.provider_url,
                params=self.settings.query_params(latitude, longitude),
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            return AddressResult(ok=False, error=str(exc))

        if not isinstance(payload, dict):
            return AddressResult(ok=False, error="Unexpected response")
        if "error" in payload:
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            return AddressResult(ok=False, error=str(message or error))
        address = payload.get("address")
        if not isinstance(address, dict) or "Address" not in address:
            return AddressResult(ok=False, error="Unexpected response")
        return AddressResult(ok=True, address=format_address(address))

    def close(self) -> None:
        self._session.close()


def format_address(address: Mapping[str, Any]) -> str:
    """Join street, city, region and postal code, stopping at the first blank part."""

    parts: List[str] = []
    for key in ADDRESS_PARTS:
        value = address.get(key)
        if not value:
            break
        parts.append(str(value))
    return ", ".join(parts)


def build_geocoder(
    settings: GeocodeSettings,
    session: Optional[requests.Session] = None,
    pool_size: int = 10,
) -> Optional[ArcGISReverseGeocoder]:
    """Return a geocoder, or ``None`` when no API key is configured."""

    if not settings.api_key:
        logger.warning("ArcGIS API key not found - reverse geocoding disabled")
        return None
    return ArcGISReverseGeocoder(settings, session=session, pool_size=pool_size)
