# src/schemas/raw.py
"""
Raw listing payloads, one variant per supported platform

Purpose
-------
Describe the shapes the scraping provider returns for each platform. Every
attribute lists its known source field names in priority order (pydantic
`AliasChoices`), so adapters read typed attributes instead of probing dicts.

Design
------
- `RawListing` holds the aliases shared by most sources.
- One subclass per platform overrides aliases that differ and declares
  `RATING_SCALE` (the scale the source reports ratings on).
- The variants form a tagged union on `source`; `parse_raw_payload` injects
  the tag from the enumerated platform and validates.
- Unknown keys are ignored (the adapter keeps the full payload as raw_data);
  missing keys default to None.

Public API
----------
RawPayload                       (Annotated union, discriminator="source")
parse_raw_payload(platform, payload) -> RawListing
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

from src.schemas.labels import Platform


def _aliases(*names: str) -> Any:
    return Field(None, validation_alias=AliasChoices(*names))


class RawListing(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    RATING_SCALE: ClassVar[Literal[5, 10, 100]] = 5

    source: str = "generic"
    name: Any = _aliases("property_name", "name", "title")
    location: Any = _aliases("location", "address")
    property_type: Any = _aliases("property_type", "type")
    description: Any = _aliases("description")
    rating: Any = _aliases("rating")
    review_count: Any = _aliases("review_count", "reviews_count", "reviews")
    amenities: Any = _aliases("amenities")
    photos: Any = _aliases("images", "photos")
    price: Any = _aliases("price_per_night", "price")
    cleaning_fee: Any = _aliases("cleaning_fee")
    fees: Any = _aliases("fees", "additional_fees")
    recent_reviews: Any = _aliases("recent_reviews")
    check_in: Any = _aliases("check_in", "check_in_time")
    check_out: Any = _aliases("check_out", "check_out_time")
    cancellation_policy: Any = _aliases("cancellation_policy")
    house_rules: Any = _aliases("house_rules")
    bedrooms: Any = _aliases("bedrooms")
    max_guests: Any = _aliases("max_guests", "guests", "accommodates")
    occupancy_rate: Any = _aliases("occupancy_rate")
    available_days: Any = _aliases("available_days")
    total_days: Any = _aliases("total_days")


class GenericRaw(RawListing):
    source: Literal["generic"] = "generic"


class BookingRaw(RawListing):
    RATING_SCALE: ClassVar[Literal[5, 10, 100]] = 10

    source: Literal["booking"] = "booking"
    name: Any = _aliases("property_name", "hotel_name", "name")
    property_type: Any = _aliases("property_type", "hotel_type")
    description: Any = _aliases("description", "hotel_description")
    rating: Any = _aliases("rating", "review_score")
    review_count: Any = _aliases("review_count", "reviews_count")
    price: Any = _aliases("price_per_night", "price", "rate")
    amenities: Any = _aliases("amenities", "facilities")
    check_in: Any = _aliases("check_in_time", "checkin", "check_in")
    check_out: Any = _aliases("check_out_time", "checkout", "check_out")


class AgodaRaw(BookingRaw):
    source: Literal["agoda"] = "agoda"  # type: ignore[assignment]


class ExpediaRaw(BookingRaw):
    source: Literal["expedia"] = "expedia"  # type: ignore[assignment]


class HotelsRaw(BookingRaw):
    source: Literal["hotels"] = "hotels"  # type: ignore[assignment]


class AirbnbRaw(RawListing):
    source: Literal["airbnb"] = "airbnb"
    name: Any = _aliases("property_name", "name", "title")
    property_type: Any = _aliases("property_type", "room_type")
    description: Any = _aliases("description", "summary")
    # 5-point rating; `review_scores_rating` is the 100-point listing export field.
    review_scores_rating: Any = _aliases("review_scores_rating")
    review_count: Any = _aliases("review_count", "number_of_reviews", "reviews_count")
    photos: Any = _aliases("images", "photos", "picture_urls")
    city: Any = _aliases("city")
    country: Any = _aliases("country")
    service_fee: Any = _aliases("service_fee")
    occupancy_tax: Any = _aliases("occupancy_tax")


class VrboRaw(RawListing):
    source: Literal["vrbo"] = "vrbo"
    name: Any = _aliases("property_name", "headline", "name")
    property_type: Any = _aliases("property_type", "propertyType")
    rating: Any = _aliases("rating", "averageRating")
    review_count: Any = _aliases("review_count", "reviewCount", "reviews_count")
    price: Any = _aliases("price_per_night", "nightlyRate", "price")
    cleaning_fee: Any = _aliases("cleaning_fee", "cleaningFee")
    check_in: Any = _aliases("check_in", "checkInTime")
    check_out: Any = _aliases("check_out", "checkOutTime")
    cancellation_policy: Any = _aliases("cancellation_policy", "cancellationPolicy")
    house_rules: Any = _aliases("house_rules", "houseRules")


RawPayload = Annotated[
    Union[GenericRaw, BookingRaw, AgodaRaw, ExpediaRaw, HotelsRaw, AirbnbRaw, VrboRaw],
    Field(discriminator="source"),
]

_RAW_ADAPTER: TypeAdapter[Any] = TypeAdapter(RawPayload)


def parse_raw_payload(platform: Platform | str | None, payload: Mapping[str, Any]) -> RawListing:
    """
    Validate `payload` as the variant for `platform` (generic when unknown).
    Raises pydantic.ValidationError / TypeError if payload is not a mapping.
    """
    if not isinstance(payload, Mapping):
        raise TypeError(f"raw payload must be a mapping, got {type(payload).__name__}")
    plat = Platform.parse(platform)
    tag = plat.value if plat else "generic"
    data = {k: v for k, v in payload.items() if k != "source"}
    data["source"] = tag
    return _RAW_ADAPTER.validate_python(data)


__all__ = [
    "RawListing",
    "GenericRaw",
    "BookingRaw",
    "AgodaRaw",
    "ExpediaRaw",
    "HotelsRaw",
    "AirbnbRaw",
    "VrboRaw",
    "RawPayload",
    "parse_raw_payload",
]
