import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import List, Tuple

from tripy.providers.base import BookingProvider
from tripy.schemas import (
    BookingResult,
    BookingStatus,
    Itinerary,
    LegKind,
    LegResult,
    LegStatus,
    TravelerDetails,
)

log = logging.getLogger("tripy.agents.booking")


def itinerary_legs(itinerary: Itinerary) -> List[Tuple[LegKind, object]]:
    legs = [(LegKind.OUTBOUND_TRANSPORT, itinerary.outbound_transport)]
    if itinerary.return_transport is not None:
        legs.append((LegKind.RETURN_TRANSPORT, itinerary.return_transport))
    legs += [
        (LegKind.HOTEL, itinerary.hotel),
        (LegKind.CAB_TO_STATION, itinerary.cab_to_station),
        (LegKind.CAB_TO_HOTEL, itinerary.cab_to_hotel),
    ]
    return legs


def overall_status(legs: List[LegResult]) -> BookingStatus:
    confirmed = sum(1 for leg in legs if leg.status is LegStatus.CONFIRMED)
    if legs and confirmed == len(legs):
        return BookingStatus.CONFIRMED
    if confirmed:
        return BookingStatus.PARTIAL
    return BookingStatus.FAILED


def _book_one(provider: BookingProvider, kind: LegKind, selection, traveler: TravelerDetails) -> LegResult:
    try:
        return provider.book_leg(kind, selection, traveler)
    except Exception as e:
        log.exception("Booking %s failed", kind.value)
        return LegResult(
            leg_id=f"{kind.value.upper()}-{uuid.uuid4().hex[:8].upper()}",
            kind=kind,
            status=LegStatus.FAILED,
            error=str(e) or type(e).__name__,
        )


def book_itinerary(itinerary: Itinerary, traveler: TravelerDetails, provider: BookingProvider) -> BookingResult:
    """Book every leg at once. A failed leg never cancels or hides its siblings."""
    legs = itinerary_legs(itinerary)
    with ThreadPoolExecutor(max_workers=len(legs)) as pool:
        futures = [pool.submit(_book_one, provider, kind, sel, traveler) for kind, sel in legs]
        results = [f.result() for f in futures]

    status = overall_status(results)
    booking_id = uuid.uuid4().hex
    log.info(
        "Booking %s: %s (%d/%d legs confirmed)",
        booking_id, status.value, sum(r.status is LegStatus.CONFIRMED for r in results), len(results),
    )
    return BookingResult(
        booking_id=booking_id,
        status=status,
        legs=results,
        total=itinerary.total,
        currency=itinerary.currency,
        itinerary=itinerary,
    )
