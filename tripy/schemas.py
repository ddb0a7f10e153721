from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Slot(str, Enum):
    ORIGIN = "origin"
    DESTINATION = "destination"
    TRAVEL_DATE = "travel_date"
    RETURN_DATE = "return_date"
    TRANSPORT_MODE = "transport_mode"
    BUDGET_TIER = "budget_tier"
    PARTY_SIZE = "party_size"


class Selection(str, Enum):
    OUTBOUND_TRANSPORT = "outbound_transport"
    RETURN_TRANSPORT = "return_transport"
    HOTEL = "hotel"


class BudgetTier(str, Enum):
    LUXURY = "Luxury"
    MEDIUM = "Medium"
    BUDGET_FRIENDLY = "Budget-friendly"


class TransportMode(str, Enum):
    TRAIN = "Train"
    BUS = "Bus"
    FLIGHT = "Flight"


class Phase(str, Enum):
    COLLECTING_SLOTS = "COLLECTING_SLOTS"
    SEARCHING_TRANSPORT = "SEARCHING_TRANSPORT"
    AWAITING_TRANSPORT_SELECTION = "AWAITING_TRANSPORT_SELECTION"
    SEARCHING_RETURN_TRANSPORT = "SEARCHING_RETURN_TRANSPORT"
    AWAITING_RETURN_SELECTION = "AWAITING_RETURN_SELECTION"
    SEARCHING_HOTEL = "SEARCHING_HOTEL"
    AWAITING_HOTEL_SELECTION = "AWAITING_HOTEL_SELECTION"
    FINALIZED = "FINALIZED"


class LegKind(str, Enum):
    OUTBOUND_TRANSPORT = "outbound_transport"
    RETURN_TRANSPORT = "return_transport"
    HOTEL = "hotel"
    CAB_TO_STATION = "cab_to_station"
    CAB_TO_HOTEL = "cab_to_hotel"


class LegStatus(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    FAILED = "failed"


# ── Search results ────────────────────────────────────────────────

class TransportOption(BaseModel):
    """One bookable flight, train or bus returned by a transport search."""

    model_config = ConfigDict(frozen=True)

    id: str
    mode: TransportMode
    display_name: str
    operator: str = ""
    price: float
    currency: str = "INR"
    departure_time: str
    arrival_time: str
    duration: str
    origin: str
    destination: str
    date: str
    details: Optional[str] = None


class HotelOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: float
    currency: str = "INR"
    rating: Optional[float] = None
    address: str = ""
    category: Optional[BudgetTier] = None


class CabQuote(BaseModel):
    """A priced local transfer. Quoted once per leg, never per traveler."""

    model_config = ConfigDict(frozen=True)

    id: str
    provider: str
    cab_type: str
    price: float
    currency: str = "INR"
    pickup: str
    dropoff: str
    eta_min: Optional[int] = None


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    transport: float
    hotel: float
    cabs: float
    total: float


class Itinerary(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: str
    destination: str
    travel_date: str
    return_date: Optional[str] = None
    party_size: int
    transport_mode: TransportMode
    budget_tier: BudgetTier
    outbound_transport: TransportOption
    return_transport: Optional[TransportOption] = None
    hotel: HotelOption
    cab_to_station: CabQuote
    cab_to_hotel: CabQuote
    pricing: PriceBreakdown
    currency: str = "INR"

    @property
    def total(self) -> float:
        return self.pricing.total


# ── Collaborator inputs / outputs ────────────────────────────────

class ExtractedTrip(BaseModel):
    """Best-effort structured guess from a free-text utterance."""

    origin: Optional[str] = None
    destination: Optional[str] = None
    travel_date: Optional[str] = None
    return_date: Optional[str] = None
    budget_tier: Optional[BudgetTier] = None
    transport_mode: Optional[TransportMode] = None
    party_size: Optional[int] = None
    is_round_trip: Optional[bool] = None
    intent: str = "unknown"


class Geolocation(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class TravelerDetails(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = None


class LegResult(BaseModel):
    leg_id: str
    kind: LegKind
    status: LegStatus
    confirmation_code: Optional[str] = None
    error: Optional[str] = None


class BookingResult(BaseModel):
    booking_id: str
    status: BookingStatus
    legs: list[LegResult]
    total: float
    currency: str = "INR"
    itinerary: Itinerary

    @property
    def confirmed_legs(self) -> list[LegResult]:
        return [leg for leg in self.legs if leg.status is LegStatus.CONFIRMED]

    @property
    def failed_legs(self) -> list[LegResult]:
        return [leg for leg in self.legs if leg.status is LegStatus.FAILED]
