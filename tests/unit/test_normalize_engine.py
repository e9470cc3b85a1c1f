# tests/unit/test_normalize_engine.py
import pytest

from src.core.adapters import adapt
from src.core.normalize import normalize, normalize_payload, summarize_data_quality, validate_scraped_data
from src.schemas.labels import PLACEHOLDER_NAME
from tests.utils import (
    EMPTY_LISTING,
    make_airbnb_payload,
    make_booking_payload,
    make_listing_payload,
    make_processed,
    make_vrbo_payload,
)


def test_platform_dispatch_is_case_insensitive():
    item = adapt("booking", make_booking_payload())
    infos = [normalize(p, item).basic_info for p in ("BOOKING", "Booking", "booking")]
    assert infos[0] == infos[1] == infos[2]


def test_normalization_is_idempotent():
    payload = make_booking_payload()
    first = normalize_payload("booking", payload)
    second = normalize_payload("booking", payload)
    assert first == second
    assert first.model_dump() == second.model_dump()


def test_booking_canonical_fields():
    data = normalize_payload("booking", make_booking_payload())
    assert data.platform == "booking"
    assert data.basic_info.property_type == "Hotel"
    assert data.performance.rating == pytest.approx(4.3)
    assert data.performance.occupancy_rate == 75.0
    assert data.pricing.base_price == pytest.approx(100.5)
    assert data.amenities == ["Free WiFi", "Parking", "Pool"]
    assert len(data.photos) == 2
    assert data.policies.check_out == "11:00"


def test_airbnb_canonical_fields():
    data = normalize_payload("airbnb", make_airbnb_payload())
    assert data.basic_info.location == "Rio de Janeiro, Brazil"
    assert data.basic_info.property_type == "Entire home/apt"
    assert data.performance.rating == pytest.approx(4.8)
    assert data.pricing.base_price == pytest.approx(125.5)
    assert data.pricing.additional_fees == {"service_fee": 12.0, "occupancy_tax": 5.0}
    assert data.amenities == ["wifi", "kitchen"]


def test_vrbo_canonical_fields():
    data = normalize_payload("vrbo", make_vrbo_payload())
    assert data.performance.rating == pytest.approx(4.6)
    assert data.pricing.cleaning_fee == 80.0
    assert data.policies.house_rules == ["No smoking", "No parties"]


def test_unknown_platform_falls_back_to_generic():
    data = normalize_payload("tripadvisor", make_listing_payload(property_type=None))
    assert data.platform == "generic"
    assert data.basic_info.property_type == "Property"


def test_discounts_are_collected():
    data = make_processed(weekly_discount="10", discounts={"early": 0.05})
    assert data.pricing.discounts == {"early": 0.05, "weekly": 10.0}


def test_explicit_occupancy_and_availability_override_tiers():
    assert make_processed(occupancy_rate=0.5).performance.occupancy_rate == 50.0
    assert make_processed(available_days=146, total_days=365).performance.occupancy_rate == 60.0


def test_quality_gate_passes_real_listing():
    data = make_processed()
    assert validate_scraped_data(data) is True
    quality = summarize_data_quality(data)
    assert quality.has_name and quality.has_location and quality.has_rating
    assert quality.photo_count == 6


def test_quality_gate_rejects_placeholders_without_signals():
    data = normalize_payload("airbnb", EMPTY_LISTING)
    assert data.basic_info.name == PLACEHOLDER_NAME
    assert validate_scraped_data(data) is False


def test_quality_gate_needs_one_signal_besides_name_and_location():
    bare = normalize_payload("airbnb", {"name": "Loft", "location": "Rio"})
    assert validate_scraped_data(bare) is False
    with_amenity = normalize_payload("airbnb", {"name": "Loft", "location": "Rio", "amenities": ["Wifi"]})
    assert validate_scraped_data(with_amenity) is True
