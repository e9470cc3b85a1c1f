# tests/unit/test_extractors.py
import pytest

from src.core.normalize import (
    estimate_occupancy,
    extract_amenities,
    extract_photos,
    extract_price,
    normalize_rating,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("€100", 100.0),
        ("$125.50", 125.5),
        ("€100,50", 100.5),
        ("R$ 1,234.56", 1234.56),
        (99, 99.0),
        (42.5, 42.5),
    ],
)
def test_extract_price_parses_currency_strings(raw, expected):
    assert extract_price(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "free", "—", True, [], {}, float("nan")])
def test_extract_price_returns_none_without_a_number(raw):
    assert extract_price(raw) is None


def test_extract_amenities_accepts_strings_objects_and_flags():
    assert extract_amenities(["Wifi", " Pool ", "Wifi", ""]) == ["Wifi", "Pool"]
    assert extract_amenities([{"name": "Parking"}, {"title": "Gym"}, {"other": "x"}, 3]) == ["Parking", "Gym"]
    assert extract_amenities({"wifi": True, "pool": False, "kitchen": 1}) == ["wifi", "kitchen"]


@pytest.mark.parametrize("raw", [None, "Wifi, Pool", 12, 3.5])
def test_extract_amenities_other_shapes_are_empty(raw):
    assert extract_amenities(raw) == []


def test_extract_photos_reads_urls_and_dedupes():
    photos = extract_photos(["a.jpg", {"url": "b.jpg"}, {"src": "c.jpg"}, "a.jpg", {"alt": "x"}])
    assert photos == ["a.jpg", "b.jpg", "c.jpg"]
    assert extract_photos("a.jpg") == []


@pytest.mark.parametrize(
    "value, scale, expected",
    [
        (4.5, 5, 4.5),
        (9.0, 10, 4.5),
        (96, 100, 4.8),
        (None, 10, 0.0),
        (0, 5, 0.0),
        (11, 10, 5.0),
    ],
)
def test_normalize_rating_converts_to_five_point_scale(value, scale, expected):
    assert normalize_rating(value, scale) == pytest.approx(expected)


@pytest.mark.parametrize(
    "reviews, rating, expected",
    [
        (100, 9.0, 75.0),
        (25, 7.5, 65.0),
        (5, 6.0, 45.0),
        (51, 4.1, 75.0),
        (50, 4.8, 65.0),  # boundaries are strict
        (21, 3.5, 55.0),
        (11, 1.0, 55.0),
        (10, 5.0, 45.0),
        (0, 0.0, 45.0),
    ],
)
def test_occupancy_tiers(reviews, rating, expected):
    assert estimate_occupancy(reviews, rating) == expected


def test_occupancy_prefers_explicit_rate_then_availability():
    assert estimate_occupancy(100, 5.0, occupancy_rate=0.62) == pytest.approx(62.0)
    assert estimate_occupancy(100, 5.0, occupancy_rate=80) == pytest.approx(80.0)
    assert estimate_occupancy(100, 5.0, available_days=73, total_days=365) == 80.0
    # total defaults to a 365-day window
    assert estimate_occupancy(0, 0.0, available_days=365) == 0.0
