import random
import string
import uuid
from typing import Optional

from tripy.providers.base import BookingProvider
from tripy.schemas import LegKind, LegResult, LegStatus, TravelerDetails

SUCCESS_RATE = {
    LegKind.OUTBOUND_TRANSPORT: 0.9,
    LegKind.RETURN_TRANSPORT: 0.9,
    LegKind.HOTEL: 0.95,
    LegKind.CAB_TO_STATION: 0.85,
    LegKind.CAB_TO_HOTEL: 0.85,
}

FAILURE_REASON = {
    LegKind.OUTBOUND_TRANSPORT: "no seats available",
    LegKind.RETURN_TRANSPORT: "no seats available",
    LegKind.HOTEL: "no rooms available",
    LegKind.CAB_TO_STATION: "no drivers available",
    LegKind.CAB_TO_HOTEL: "no drivers available",
}


class MockBookingProvider(BookingProvider):
    """Simulated booking desk. Each leg succeeds independently at its own rate."""

    def __init__(self, rng: Optional[random.Random] = None, success_rate: Optional[dict] = None):
        self._rng = rng or random.Random()
        self._success_rate = {**SUCCESS_RATE, **(success_rate or {})}

    def _code(self, n: int = 8) -> str:
        return "".join(self._rng.choice(string.ascii_uppercase + string.digits) for _ in range(n))

    def book_leg(self, kind: LegKind, selection, traveler: TravelerDetails) -> LegResult:
        leg_id = f"{kind.value.upper()}-{uuid.uuid4().hex[:8].upper()}"
        if self._rng.random() >= self._success_rate[kind]:
            return LegResult(
                leg_id=leg_id,
                kind=kind,
                status=LegStatus.FAILED,
                error=f"{kind.value.replace('_', ' ')} booking failed - {FAILURE_REASON[kind]}",
            )
        return LegResult(
            leg_id=leg_id,
            kind=kind,
            status=LegStatus.CONFIRMED,
            confirmation_code=self._code(),
        )
