from abc import ABC, abstractmethod
from typing import Optional

from tripy.schemas import (
    BudgetTier,
    CabQuote,
    HotelOption,
    LegKind,
    LegResult,
    TransportMode,
    TravelerDetails,
)


class TransportProvider(ABC):
    mode: TransportMode

    @abstractmethod
    def search(self, origin: str, destination: str, date_iso: str, party_size: int) -> list:
        """Return TransportOption list; an empty list means no results."""


class HotelsProvider(ABC):
    @abstractmethod
    def search_hotels(
        self,
        city: str,
        checkin_iso: str,
        checkout_iso: str,
        party_size: int,
        budget_tier: Optional[BudgetTier],
    ) -> list[HotelOption]:
        ...


class CabsProvider(ABC):
    @abstractmethod
    def search_cabs(self, pickup: str, dropoff: str, party_size: int = 1) -> list[CabQuote]:
        ...


class BookingProvider(ABC):
    @abstractmethod
    def book_leg(self, kind: LegKind, selection, traveler: TravelerDetails) -> LegResult:
        """Book one leg. May return a failed LegResult or raise; both count as failure."""


class Geocoder(ABC):
    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        ...
