import pytest
import requests

from flipkey_listings.fetcher import ListingFetcher, normalize_listing, parse_count
from flipkey_listings.models import AddressResult

from helpers import FakeResponse, listings_url, raw_listing

PATH = "United-States/Texas/Austin/srp"


class StubGeocoder:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def reverse(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        return self.result


@pytest.mark.parametrize(
    "value, expected",
    [("3 BR", 3), ("12", 12), ("Studio", 0), (None, 0), ("", 0), (2, 2), (2.0, 2), ("1.5 BA", 1)],
)
def test_parse_count(value, expected):
    assert parse_count(value) == expected


def test_normalize_listing_cleans_fields():
    raw = raw_listing(
        4432,
        homeName="  Cozy&nbsp;<b>Loft</b>\n near   &amp; downtown ",
        bedroomCountText="n/a",
    )

    listing = normalize_listing(raw)

    assert listing.id == "4432"
    assert listing.name == "Cozy Loft near & downtown"
    assert listing.url == "https://www.flipkey.com/texas-vacation-rentals/p4432/"
    assert listing.bedrooms == 0
    assert listing.bathrooms == 2
    assert listing.room_type == "House"
    assert (listing.latitude, listing.longitude) == (30.27, -97.74)
    assert listing.price_text == "$150 - $200"
    assert listing.address == ""
    assert (listing.description, listing.amenities, listing.photos, listing.host_name) == ("", [], [], "")


def test_normalize_listing_skips_rows_without_identity():
    assert normalize_listing(raw_listing(None)) is None
    assert normalize_listing(raw_listing(7, advPageUrl="")) is None


def test_normalize_listing_uses_geocoder():
    geocoder = StubGeocoder(AddressResult(ok=True, address="1 Main St, Austin, Texas, 78701"))

    listing = normalize_listing(raw_listing(1), geocoder)

    assert listing.address == "1 Main St, Austin, Texas, 78701"
    assert geocoder.calls == [(30.27, -97.74)]


def test_normalize_listing_tolerates_geocoder_failure(caplog):
    geocoder = StubGeocoder(AddressResult(ok=False, error="Unexpected response"))

    with caplog.at_level("WARNING"):
        listing = normalize_listing(raw_listing(1), geocoder)

    assert listing is not None
    assert listing.address == ""
    assert "Unexpected response" in caplog.text


def test_fetch_paginates_until_empty_page(site_client, fake_session):
    fake_session.routes.update(
        {
            listings_url(PATH, 1): FakeResponse({"results": [raw_listing(1), raw_listing(2)]}),
            listings_url(PATH, 2): FakeResponse({"results": [raw_listing(3), raw_listing(4, isListing=False)]}),
            listings_url(PATH, 3): FakeResponse({"results": []}),
        }
    )

    result = ListingFetcher(site_client).fetch(PATH)

    assert result.ok
    assert result.error is None
    assert [listing.id for listing in result.listings] == ["1", "2", "3"]
    assert result.pages == 3
    assert fake_session.calls == [listings_url(PATH, page) for page in (1, 2, 3)]


def test_fetch_discards_everything_on_later_page_error(site_client, fake_session):
    fake_session.routes.update(
        {
            listings_url(PATH, 1): FakeResponse({"results": [raw_listing(1)]}),
            listings_url(PATH, 2): FakeResponse({}, status_code=500),
        }
    )

    result = ListingFetcher(site_client).fetch(PATH)

    assert not result.ok
    assert result.listings == []
    assert result.error == "Unexpected response code: 500"


@pytest.mark.parametrize(
    "route, message",
    [
        (FakeResponse({"total": 0}), "Unexpected content: listings not found"),
        (FakeResponse({"results": {"a": 1}}), "Unexpected content: results is not an array"),
        (FakeResponse({"results": []}, content_type="text/html"), "Unexpected content type: text/html"),
        (FakeResponse(ValueError("Expecting value")), "Expecting value"),
        (requests.Timeout("read timed out"), "read timed out"),
    ],
)
def test_fetch_failures(site_client, fake_session, route, message):
    fake_session.routes[listings_url(PATH, 1)] = route

    result = ListingFetcher(site_client).fetch(PATH)

    assert not result.ok
    assert result.error == message


def test_fetch_respects_page_limit(site_client, fake_session):
    site_client.settings.max_pages = 1
    fake_session.routes[listings_url(PATH, 1)] = FakeResponse({"results": [raw_listing(1)]})

    result = ListingFetcher(site_client).fetch(PATH)

    assert not result.ok
    assert result.error == "Page limit reached"
    assert fake_session.calls == [listings_url(PATH, 1)]


def test_fetch_empty_first_page_is_success(site_client, fake_session):
    fake_session.routes[listings_url(PATH, 1)] = FakeResponse({"results": []})

    result = ListingFetcher(site_client).fetch(PATH)

    assert result.ok
    assert result.listings == []


def test_fetch_reports_geocode_failures_as_warnings(site_client, fake_session):
    fake_session.routes.update(
        {
            listings_url(PATH, 1): FakeResponse({"results": [raw_listing(1), raw_listing(2, lat=None)]}),
            listings_url(PATH, 2): FakeResponse({"results": []}),
        }
    )
    geocoder = StubGeocoder(AddressResult(ok=False, error="Invalid token"))

    result = ListingFetcher(site_client, geocoder=geocoder).fetch(PATH)

    assert result.ok
    assert [listing.address for listing in result.listings] == ["", ""]
    assert result.warnings == ["geocode listing 1: Invalid token"]
