# tests/unit/test_market_intelligence.py
from datetime import timedelta

import pytest

from src.market.intelligence import (
    StaticCompSource,
    analyze_market,
    default_market_insight,
    estimate_rate,
    generate_competitor_analysis,
    market_insight_for,
    market_property_from,
)
from src.schemas.labels import MarketSaturation
from tests.utils import FIXED_NOW, make_market_property, make_processed


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({}, 80.0),
        ({"property_type": "house"}, 104.0),
        ({"property_type": "Entire place"}, 96.0),
        ({"property_type": "shared-room"}, 32.0),
        ({"property_type": "castle"}, 80.0),
        ({"guest_capacity": 4}, 110.0),
        ({"bedrooms": 2}, 120.0),
        ({"amenities": ["Pool", "Free WiFi", "Air conditioning", "Sauna"]}, 110.0),
    ],
)
def test_estimate_rate_rule_table(overrides, expected):
    assert estimate_rate(make_market_property(**overrides)) == pytest.approx(expected)


def test_estimate_rate_is_rounded_to_whole_units():
    rate = estimate_rate(make_market_property(property_type="private_room"))
    assert rate == 56
    assert isinstance(rate, int)


def test_zero_occupancy_comps_are_left_out_of_the_mean():
    comps = [
        make_market_property(id="idle", occupancy_rate=0),
        make_market_property(id="busy", occupancy_rate=60),
    ]
    insight = analyze_market(make_market_property(), comps, now=FIXED_NOW)
    assert insight.occupancy_rate == 60
    assert insight.competitor_count == 2


def test_analyze_market_averages_comps_and_applies_seasonality():
    comps = [make_market_property(id=f"c{i}", occupancy_rate=60 + i) for i in range(10)]
    comps.append(make_market_property(id="big", bedrooms=1))  # 100
    insight = analyze_market(make_market_property(), comps, now=FIXED_NOW)

    assert insight.average_daily_rate == 82  # (10 x 80 + 100) / 11
    assert insight.occupancy_rate == 64
    assert insight.competitor_count == 11
    assert insight.market_saturation == MarketSaturation.medium
    assert insight.seasonal_trends.summer == round(82 * 1.2)
    assert insight.seasonal_trends.winter == round(82 * 0.85)
    assert insight.is_default is False


def test_saturation_tiers():
    few = analyze_market(make_market_property(), [make_market_property()] * 8, now=FIXED_NOW)
    many = analyze_market(make_market_property(), [make_market_property()] * 16, now=FIXED_NOW)
    assert few.market_saturation == MarketSaturation.low
    assert many.market_saturation == MarketSaturation.high


def test_quality_multiplier_and_price_band():
    subject = make_market_property(
        photo_count=25,
        amenities=[f"a{i}" for i in range(25)],
        last_analyzed_at=FIXED_NOW - timedelta(days=3),
    )
    insight = analyze_market(subject, [make_market_property()], now=FIXED_NOW)
    rec = insight.price_recommendation
    assert rec.suggested == 116  # 80 x 1.45
    assert rec.min == 93
    assert rec.max == 151


def test_no_comps_uses_fixed_rate_and_occupancy():
    insight = analyze_market(make_market_property(), [], now=FIXED_NOW)
    assert insight.average_daily_rate == 100
    assert insight.occupancy_rate == 70
    assert insight.competitor_count == 0
    assert insight.market_saturation == MarketSaturation.low


def test_failing_comp_source_returns_default_insight():
    class Broken:
        def find_comparables(self, prop, limit):
            raise ConnectionError("db down")

    insight = market_insight_for(make_market_property(), Broken(), now=FIXED_NOW)
    assert insight == default_market_insight()
    assert insight.is_default is True


def test_bad_comp_rows_return_default_insight():
    insight = analyze_market(make_market_property(), [object()], now=FIXED_NOW)  # type: ignore[list-item]
    assert insight.is_default is True


def test_static_comp_source_excludes_subject():
    subject = make_market_property(id="me")
    source = StaticCompSource([make_market_property(id="me"), make_market_property(id="other")])
    assert [c.id for c in source.find_comparables(subject, 10)] == ["other"]


def test_competitor_analysis_strengths_and_weaknesses():
    subject = make_market_property(amenities=["wifi", "kitchen"], bedrooms=1)
    cheap_rich = make_market_property(
        id="c1", property_type="private_room", amenities=["a", "b", "c"], bedrooms=2, photo_count=10
    )
    pricey_bare = make_market_property(id="c2", property_type="house", bedrooms=3, photo_count=1)
    comps = [cheap_rich, pricey_bare] + [make_market_property(id=f"x{i}") for i in range(6)]

    result = generate_competitor_analysis(subject, comps)
    assert len(result) == 5
    first, second = result[0], result[1]
    assert first.competitor.id == "c1"
    assert "Lower pricing" in first.strengths
    assert "More amenities" in first.strengths
    assert "More bedrooms" in first.strengths
    assert "Limited photos" not in first.weaknesses
    assert "Higher pricing" in second.weaknesses
    assert "Fewer amenities" in second.weaknesses
    assert "Limited photos" in second.weaknesses


def test_market_property_from_listing():
    prop = market_property_from(make_processed(), id="s1")
    assert prop.id == "s1"
    assert prop.bedrooms == 2
    assert prop.guest_capacity == 4
    assert prop.photo_count == 6
    assert prop.price == 450.0
