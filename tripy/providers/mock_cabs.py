import random
import uuid
from typing import Optional

from tripy.providers.base import CabsProvider
from tripy.schemas import CabQuote

TYPES = {
    "Mini": 0,
    "Sedan": 200,
    "SUV": 450,
}
VENDORS = ["Uber", "Ola", "Rapido", "BluSmart"]


class MockCabsProvider(CabsProvider):
    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def search_cabs(self, pickup: str, dropoff: str, party_size: int = 1) -> list[CabQuote]:
        # groups of five or more do not fit a Mini
        types = {t: extra for t, extra in TYPES.items() if party_size < 5 or t == "SUV"}
        out = []
        for v in VENDORS:
            for t, extra in types.items():
                out.append(CabQuote(
                    id=f"CAB-{v.upper()}-{uuid.uuid4().hex[:8]}",
                    provider=v,
                    cab_type=t,
                    pickup=pickup,
                    dropoff=dropoff,
                    eta_min=self._rng.randint(3, 12),
                    price=self._rng.randint(180, 450) + extra,
                ))
        return sorted(out, key=lambda x: x.price)
