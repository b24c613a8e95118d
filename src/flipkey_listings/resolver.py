"""Resolve free-text locations into FlipKey search paths."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import requests

from .client import SiteClient
from .errors import UnexpectedResponseError
from .models import LocationSuggestion
from .settings import build_suggest_url

logger = logging.getLogger(__name__)

COUNTRY_SUFFIX = "UNITED STATES"


def parse_city_state(text: str) -> Tuple[str, str]:
    """Return the uppercase city and state parts of ``"<city>, <state>[, <country>]"``."""

    parts = [part.strip() for part in text.split(",")[:2]]
    city = parts[0].upper()
    state = parts[1].upper() if len(parts) == 2 else ""
    return city, state


class LocationResolver:
    """Pick the autosuggest entry that corresponds to a city/state pair."""

    def __init__(self, client: Optional[SiteClient] = None) -> None:
        self.client = client or SiteClient()

    def resolve(self, text: str, preset_lat: float = 0.0, preset_lng: float = 0.0) -> LocationSuggestion:
        """Resolve ``text`` into a suggestion; never raises.

        Without a state the first suggestion is taken as-is, trusting the
        site's ranking.
        """

        city, state = parse_city_state(text)
        url = build_suggest_url(self.client.settings, city)
        try:
            suggestions = self.client.get_json(url)
        except (requests.RequestException, UnexpectedResponseError, ValueError) as exc:
            return LocationSuggestion.failure(text, str(exc), preset_lat, preset_lng)

        if not isinstance(suggestions, list):
            return LocationSuggestion.failure(
                text, "Unexpected content: returned JSON data is not an array", preset_lat, preset_lng
            )
        if not suggestions:
            return LocationSuggestion.failure(
                text, "Unexpected content: search results are empty", preset_lat, preset_lng
            )

        name: Optional[str] = None
        path = ""
        try:
            if state:
                full_name = f"{city}, {state}, {COUNTRY_SUFFIX}"
                for entry in suggestions:
                    if str(entry.get("Name", "")).upper() == full_name:
                        name = full_name
                        path = entry.get("SlashName") or ""
                        break
            else:
                first = suggestions[0]
                name = str(first["Name"]).upper()
                path = first.get("SlashName") or ""
        except (AttributeError, KeyError, TypeError):
            return LocationSuggestion.failure(
                text, "Unexpected content: malformed suggestion entry", preset_lat, preset_lng
            )

        if not name:
            return LocationSuggestion.failure(text, "Unable to pick a suitable suggestion", preset_lat, preset_lng)

        matched_city, matched_state = parse_city_state(name)
        logger.debug("Resolved %r to %s (%s)", text, name, path)
        return LocationSuggestion(
            ok=True,
            query=text,
            canonical_name=name,
            city=matched_city,
            state=matched_state,
            lat=preset_lat,
            lng=preset_lng,
            site_path=path,
        )
