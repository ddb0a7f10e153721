import random
import uuid
from typing import Optional

from tripy.providers.base import HotelsProvider
from tripy.schemas import BudgetTier, HotelOption

# nightly price bands, shared with the Amadeus budget filter
PRICE_BANDS = {
    BudgetTier.LUXURY: (5000, 9000),
    BudgetTier.MEDIUM: (2000, 4999),
    BudgetTier.BUDGET_FRIENDLY: (800, 1999),
}

NAMES = {
    BudgetTier.LUXURY: ["The Grand {city}", "Taj {city}", "{city} Palace", "Oberoi {city}"],
    BudgetTier.MEDIUM: ["Lemon Tree {city}", "Courtyard {city}", "Hotel {city} Residency", "Ginger {city}"],
    BudgetTier.BUDGET_FRIENDLY: ["OYO Townhouse {city}", "Zostel {city}", "{city} Inn", "FabHotel {city} Central"],
}
AREAS = ["Station Road", "MG Road", "Old Town", "City Centre", "Airport Road", "Lake View"]


def category_for_price(price: float) -> BudgetTier:
    if price >= PRICE_BANDS[BudgetTier.LUXURY][0]:
        return BudgetTier.LUXURY
    if price >= PRICE_BANDS[BudgetTier.MEDIUM][0]:
        return BudgetTier.MEDIUM
    return BudgetTier.BUDGET_FRIENDLY


class MockHotelsProvider(HotelsProvider):
    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def search_hotels(self, city, checkin_iso, checkout_iso, party_size, budget_tier=None):
        tiers = [budget_tier] if budget_tier else list(PRICE_BANDS)
        out = []
        for tier in tiers:
            low, high = PRICE_BANDS[tier]
            for template in NAMES[tier]:
                out.append(HotelOption(
                    id=f"HOTEL-{uuid.uuid4().hex[:10].upper()}",
                    name=template.format(city=city),
                    price=self._rng.randint(low, high),
                    rating=round(self._rng.uniform(3.0, 5.0), 1),
                    address=f"{self._rng.choice(AREAS)}, {city}",
                    category=tier,
                ))
        return sorted(out, key=lambda x: x.price)
