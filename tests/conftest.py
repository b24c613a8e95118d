import pytest

from flipkey_listings.client import SiteClient
from flipkey_listings.settings import SiteSettings

from helpers import BASE, FakeSession


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def site_client(fake_session):
    return SiteClient(SiteSettings(base_url=BASE), session=fake_session)
