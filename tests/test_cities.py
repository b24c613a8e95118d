import pytest

from flipkey_listings.cities import CityDirectory, load_city_directory
from flipkey_listings.errors import CityDatasetError
from flipkey_listings.models import CityRecord

from helpers import FakeResponse, FakeSession

CITIES_URL = "https://api.example.com/uscities"


def make_directory() -> CityDirectory:
    return CityDirectory(
        [
            CityRecord(id=1, name="Austin", state_name="Texas", state_code="TX", lat=30.3004, lng=-97.7522),
            CityRecord(id=2, name="Round Rock", state_name="Texas", state_code="TX", lat=30.4164, lng=-97.6790),
            CityRecord(id=3, name="Houston", state_name="Texas", state_code="TX", lat=29.7863, lng=-95.3889),
            CityRecord(id=4, name="Austin", state_name="Minnesota", state_code="MN", lat=43.6721, lng=-92.9784),
        ]
    )


def test_find_city_by_state_code():
    match = make_directory().find_city("AUSTIN", "TX")
    assert match.found
    assert (match.id, match.lat, match.lng) == (1, 30.3004, -97.7522)


def test_find_city_by_state_name_is_case_insensitive():
    match = make_directory().find_city("austin", "minnesota")
    assert match.found
    assert match.id == 4


def test_find_city_miss_returns_not_found():
    match = make_directory().find_city("Springfield", "TX")
    assert not match.found
    assert (match.id, match.lat, match.lng) == (0, 0.0, 0.0)


def test_find_city_requires_the_state():
    assert not make_directory().find_city("Austin", "").found


def test_find_city_last_duplicate_wins():
    directory = CityDirectory(
        [
            CityRecord(id=10, name="Dup", state_name="Texas", state_code="TX", lat=1.0, lng=1.0),
            CityRecord(id=11, name="Dup", state_name="Texas", state_code="TX", lat=2.0, lng=2.0),
        ]
    )
    assert directory.find_city("DUP", "TX").id == 11


def test_nearby_cities_excludes_origin_and_respects_radius():
    directory = make_directory()
    found = directory.nearby_cities(1, 30.3004, -97.7522, 10)
    assert [record.id for record, _ in found] == [2]
    assert all(distance <= 10 for _, distance in found)


def test_nearby_cities_includes_boundary():
    directory = make_directory()
    _, distance = directory.nearby_cities(1, 30.3004, -97.7522, 10)[0]
    found = directory.nearby_cities(1, 30.3004, -97.7522, distance)
    assert [record.id for record, _ in found] == [2]


def test_find_nearby_returns_pending_resolutions():
    calls = []

    class RecordingResolver:
        def resolve(self, text, preset_lat=0.0, preset_lng=0.0):
            calls.append((text, preset_lat, preset_lng))
            return text

    tasks = make_directory().find_nearby(1, 30.3004, -97.7522, 10, RecordingResolver())
    assert len(tasks) == 1
    assert calls == []
    assert tasks[0]() == "Round Rock, Texas"
    assert calls == [("Round Rock, Texas", 30.4164, -97.6790)]


def test_load_city_directory_builds_records():
    rows = [
        {"id": 1840019590, "city_ascii": "Austin", "state_name": "Texas", "state_id": "TX", "lat": "30.3004", "lng": "-97.7522"},
        {"id": 1840020020, "city_ascii": "Round Rock", "state_name": "Texas", "state_id": "TX", "lat": 30.5270, "lng": -97.6670},
        {"id": "broken"},
    ]
    session = FakeSession({CITIES_URL: FakeResponse(rows)})

    directory = load_city_directory(CITIES_URL, session=session)

    assert len(directory) == 2
    assert [record.name for record in directory] == ["Austin", "Round Rock"]
    assert next(iter(directory)).lat == 30.3004


@pytest.mark.parametrize(
    "response, message",
    [
        (FakeResponse([], status_code=404), "Unexpected response code: 404"),
        (FakeResponse([{}], content_type="text/html"), "Unexpected content type: text/html"),
        (FakeResponse({"cities": []}), "not an array"),
        (FakeResponse([]), "array is empty"),
        (FakeResponse(ValueError("bad json")), "bad json"),
    ],
)
def test_load_city_directory_failures(response, message):
    session = FakeSession({CITIES_URL: response})
    with pytest.raises(CityDatasetError, match=message):
        load_city_directory(CITIES_URL, session=session)


def test_load_city_directory_transport_failure():
    with pytest.raises(CityDatasetError, match="No route"):
        load_city_directory(CITIES_URL, session=FakeSession())
