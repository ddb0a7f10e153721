import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional

from tripy.providers.base import (
    BookingProvider,
    CabsProvider,
    Geocoder,
    HotelsProvider,
    TransportProvider,
)
from tripy.providers.mock_booking import MockBookingProvider
from tripy.providers.mock_cabs import MockCabsProvider
from tripy.providers.mock_hotels import MockHotelsProvider
from tripy.providers.mock_transport import (
    MockBusesProvider,
    MockFlightsProvider,
    MockTrainsProvider,
)
from tripy.schemas import ExtractedTrip, TransportMode

log = logging.getLogger("tripy.providers")

DEFAULT_CAB_PLACEHOLDER_FARE = 350.0


@dataclass
class TripServices:
    """Every collaborator one turn may call. Tests swap in stubs here."""

    parser: Callable[[str], ExtractedTrip]
    transport: Dict[TransportMode, TransportProvider]
    hotels: HotelsProvider
    cabs: CabsProvider
    booking: BookingProvider
    geocoder: Optional[Geocoder] = None
    cab_placeholder_fare: float = DEFAULT_CAB_PLACEHOLDER_FARE


def build_services(today: Optional[Callable[[], date]] = None) -> TripServices:
    """Wire collaborators from environment variables.

    `today` is the clock the parser resolves relative dates against.
    """
    from tripy.llm.trip_parser import TripParser

    flights: TransportProvider
    if os.getenv("TRIPY_FLIGHTS_PROVIDER", "mock").lower() == "amadeus":
        from tripy.providers.amadeus_flights import AmadeusFlightsProvider
        flights = AmadeusFlightsProvider()
    else:
        flights = MockFlightsProvider()

    hotels: HotelsProvider
    if os.getenv("TRIPY_HOTELS_PROVIDER", "mock").lower() == "amadeus":
        from tripy.providers.amadeus_hotels import AmadeusHotelsProvider
        hotels = AmadeusHotelsProvider()
    else:
        hotels = MockHotelsProvider()

    geocoder: Optional[Geocoder] = None
    if os.getenv("TRIPY_GEOCODER", "nominatim").lower() == "nominatim":
        from tripy.providers.nominatim import NominatimGeocoder
        geocoder = NominatimGeocoder()

    fare = float(os.getenv("TRIPY_CAB_PLACEHOLDER_FARE", DEFAULT_CAB_PLACEHOLDER_FARE))
    log.info(
        "Services: flights=%s hotels=%s geocoder=%s",
        type(flights).__name__, type(hotels).__name__, type(geocoder).__name__,
    )
    return TripServices(
        parser=TripParser.from_env(today=today),
        transport={
            TransportMode.TRAIN: MockTrainsProvider(),
            TransportMode.BUS: MockBusesProvider(),
            TransportMode.FLIGHT: flights,
        },
        hotels=hotels,
        cabs=MockCabsProvider(),
        booking=MockBookingProvider(),
        geocoder=geocoder,
        cab_placeholder_fare=fare,
    )
