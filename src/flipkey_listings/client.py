"""HTTP client shared by every remote-call component."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import UnexpectedResponseError
from .settings import SiteSettings

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
HTML_CONTENT_TYPE = "text/html"


def build_session(settings: SiteSettings, pool_size: int = 10) -> requests.Session:
    """Return a session carrying the site headers, proxy and a pool sized for the workers."""

    session = requests.Session()
    session.headers.update(settings.headers())
    session.proxies.update(settings.proxies())
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def check_response(response: requests.Response, content_type: str) -> None:
    """Raise ``UnexpectedResponseError`` unless the response is a 200 of ``content_type``."""

    if response.status_code != 200:
        raise UnexpectedResponseError(f"Unexpected response code: {response.status_code}")
    received = response.headers.get("Content-Type", "")
    if content_type not in received:
        raise UnexpectedResponseError(f"Unexpected content type: {received}")


class SiteClient:
    """Fetch JSON and HTML resources using ``requests``."""

    def __init__(self, settings: Optional[SiteSettings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or SiteSettings()
        self._session = session or build_session(self.settings)

    def get(self, url: str) -> requests.Response:
        logger.debug("GET %s", url)
        return self._session.get(url, timeout=self.settings.request_timeout)

    def get_json(self, url: str) -> Any:
        """Fetch ``url`` and decode its JSON body.

        Raises ``requests.RequestException`` on transport errors,
        ``UnexpectedResponseError`` on a bad status or content type and
        ``ValueError`` when the body is not valid JSON.
        """

        response = self.get(url)
        check_response(response, JSON_CONTENT_TYPE)
        return response.json()

    def get_html(self, url: str) -> str:
        """Fetch ``url`` and return its HTML text."""

        response = self.get(url)
        check_response(response, HTML_CONTENT_TYPE)
        return response.text

    def close(self) -> None:
        self._session.close()
