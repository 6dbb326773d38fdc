import pytest

from plantscout.core.distance import ReferenceLocationCache, haversine_miles
from plantscout.vendors.geocoding import GeocodingError


def test_haversine_known_distance():
    # Dallas to Fort Worth city centres.
    assert haversine_miles(32.7767, -96.7970, 32.7555, -97.3308) == pytest.approx(31.1, abs=0.5)
    assert haversine_miles(32.0, -96.0, 32.0, -96.0) == 0


def test_reference_location_is_geocoded_once():
    calls = []

    def geocoder(address, api_key):
        calls.append((address, api_key))
        return 32.75, -96.47

    cache = ReferenceLocationCache("Forney TX, 75126", "key", geocoder=geocoder)

    assert cache.get() == (32.75, -96.47)
    assert cache.distance_miles(32.75, -96.47) == 0
    assert cache.distance_miles(None, -96.0) is None
    assert calls == [("Forney TX, 75126", "key")]


def test_failed_lookup_is_remembered():
    calls = []

    def geocoder(address, api_key):
        calls.append(address)
        raise GeocodingError("nope")

    cache = ReferenceLocationCache("Nowhere", "key", geocoder=geocoder)

    assert cache.get() is None
    assert cache.get() is None
    assert len(calls) == 1


def test_annotate_without_api_key():
    cache = ReferenceLocationCache("Forney TX, 75126", None, geocoder=lambda a, k: pytest.fail("no lookup"))

    facility = cache.annotate({"lat": 32.0, "lng": -96.0})

    assert facility["distance_miles"] is None


def test_annotate_rounds_to_tenth():
    cache = ReferenceLocationCache("ref", "key", geocoder=lambda a, k: (32.0, -96.0))

    distance = cache.annotate({"lat": 32.5, "lng": -96.5})["distance_miles"]

    assert distance == round(distance, 1)
    assert distance > 0
