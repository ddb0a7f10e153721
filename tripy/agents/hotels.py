from datetime import date, timedelta
from typing import Optional

from tripy.providers.base import HotelsProvider
from tripy.schemas import BudgetTier


def checkout_for(checkin_iso: str, return_iso: Optional[str] = None) -> str:
    """Stay until the return date; one night when there is none."""
    if return_iso and return_iso > checkin_iso:
        return return_iso
    return (date.fromisoformat(checkin_iso) + timedelta(days=1)).isoformat()


def run_hotels_agent(
    provider: HotelsProvider,
    city: str,
    checkin_iso: str,
    checkout_iso: str,
    party_size: int,
    budget_tier: Optional[BudgetTier] = None,
) -> dict:
    hotels = provider.search_hotels(city, checkin_iso, checkout_iso, party_size, budget_tier)
    if budget_tier:
        # providers may ignore the filter
        hotels = [h for h in hotels if h.category in (None, budget_tier)]
    hotels = sorted(hotels, key=lambda h: h.price)
    cheapest = hotels[0] if hotels else None
    return {"hotels": hotels, "cheapest": cheapest}
