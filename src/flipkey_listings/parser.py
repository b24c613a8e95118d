"""HTML parsing helpers for FlipKey listing detail pages."""

from __future__ import annotations

import json
import logging
from typing import List, Optional

import requests
from bs4 import BeautifulSoup, Comment

from .client import SiteClient
from .errors import UnexpectedResponseError
from .models import ListingDetail

logger = logging.getLogger(__name__)

ALLOWED_DESCRIPTION_TAGS = frozenset(
    {"ul", "li", "b", "i", "strong", "p", "br", "h1", "h2", "h3", "h4", "h5", "h6"}
)
DROPPED_TAGS = ["script", "style", "noscript", "iframe", "template"]

DESCRIPTION_LESS = "#descHome > div.less-content"
DESCRIPTION_MORE = "#descHome > div.more-content"
FEATURE_GROUPS = "#description > div.content-block > div.feature-group"
CAROUSEL_IMAGES = "#wide-carousel-list > div > div.slick-bg > img.slick-img"
OWNER_DATA = "#bookingWith > div.content-block > div.content-wrap > div.owner-data"


def clean_text(text: Optional[str]) -> str:
    """Strip markup, decode entities and collapse whitespace."""

    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    for node in soup.find_all(DROPPED_TAGS):
        node.decompose()
    plain = soup.get_text()
    return " ".join(plain.split())


def sanitize_description(html: str) -> str:
    """Reduce ``html`` to the allowed structural tags, without attributes."""

    soup = BeautifulSoup(html, "html.parser")
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()
    for node in soup.find_all(DROPPED_TAGS):
        node.decompose()
    for tag in soup.find_all(True):
        if tag.name in ALLOWED_DESCRIPTION_TAGS:
            tag.attrs = {}
        else:
            tag.unwrap()
    return str(soup).strip()


def normalize_photo_url(url: str) -> str:
    url = url.strip()
    if url.startswith("https://"):
        return url
    if url.startswith("//"):
        return "https:" + url
    return "https://" + url


def _extract_description(soup: BeautifulSoup) -> str:
    less = soup.select_one(DESCRIPTION_LESS)
    if less is None:
        return ""
    html = less.decode_contents()
    more = soup.select_one(DESCRIPTION_MORE)
    if more is not None:
        html += more.decode_contents()
    return sanitize_description(html)


def _extract_amenities(soup: BeautifulSoup) -> List[str]:
    amenities: List[str] = []
    for group in soup.select(FEATURE_GROUPS):
        if not group.get_text().strip().startswith("Amenities"):
            continue
        lists = group.find_all("ul", recursive=False)
        for more in group.find_all(class_="more-content", recursive=False):
            lists.extend(more.find_all("ul", recursive=False))
        for items in lists:
            for item in items.find_all("li", recursive=False):
                amenities.append(item.get_text().strip())
        break
    return amenities


def _extract_photos(soup: BeautifulSoup) -> List[str]:
    photos: List[str] = []
    for image in soup.select(CAROUSEL_IMAGES):
        url = image.get("src") or image.get("data-lazy")
        if url and url.strip():
            photos.append(normalize_photo_url(url))
    return photos


def _extract_host(soup: BeautifulSoup) -> str:
    owner = soup.select_one(OWNER_DATA)
    if owner is None:
        return ""
    first = owner.find(True, recursive=False)
    return first.get_text().strip() if first is not None else ""


def parse_listing_detail(html: str) -> ListingDetail:
    """Extract description, amenities, photos and host name from a detail page.

    Missing fields do not make the result fail; they are reported in
    ``advisory`` and summarised in ``error`` while ``ok`` stays true.
    """

    soup = BeautifulSoup(html, "html.parser")
    detail = ListingDetail(
        ok=True,
        description=_extract_description(soup),
        amenities=_extract_amenities(soup),
        photos=_extract_photos(soup),
        host_name=_extract_host(soup),
    )
    missing = [
        name
        for name, value in (
            ("description", detail.description),
            ("amenities", detail.amenities),
            ("photos", detail.photos),
            ("host", detail.host_name),
        )
        if not value
    ]
    if missing:
        detail.advisory = missing
        detail.error = f"Missing listing fields: {json.dumps(missing)}"
    return detail


class ListingEnricher:
    """Download listing detail pages and parse them."""

    def __init__(self, client: Optional[SiteClient] = None) -> None:
        self.client = client or SiteClient()

    def fetch_detail(self, url: str) -> ListingDetail:
        try:
            html = self.client.get_html(url)
        except (requests.RequestException, UnexpectedResponseError) as exc:
            return ListingDetail(ok=False, error=str(exc))
        detail = parse_listing_detail(html)
        if detail.advisory:
            logger.debug("%s: %s", url, detail.error)
        return detail
