from datetime import date
from typing import Dict, List, Optional

from amadeus import Client, ResponseError, Location

from tripy.errors import ProviderError, UnknownLocationError
from tripy.providers.amadeus_flights import amadeus_client
from tripy.providers.base import HotelsProvider
from tripy.providers.mock_hotels import category_for_price
from tripy.schemas import BudgetTier, HotelOption


class AmadeusHotelsProvider(HotelsProvider):
    """
    - Resolve user city text -> IATA city code via Airport & City Search
    - Get hotelIds by cityCode
    - Fetch offers by hotelIds + dates, keep the cheapest offer per hotel
    - Filter by nightly price band of the requested budget tier
    """

    def __init__(self, client: Client = None):
        self.client = client or amadeus_client()
        self._city_cache: Dict[str, str] = {}

    @staticmethod
    def _norm(s: str) -> str:
        return (s or "").strip().lower()

    def _search_cities(self, keyword: str, max_items: int = 6) -> List[dict]:
        try:
            resp = self.client.reference_data.locations.get(
                keyword=keyword,
                subType=Location.CITY,
            )
        except ResponseError:
            return []

        out = []
        for it in (resp.data or [])[: max_items * 2]:
            code = it.get("iataCode")
            if code:
                out.append({"name": it.get("name"), "iataCode": code})
        return out[:max_items]

    def _resolve_city_code(self, city_text: str) -> str:
        raw = (city_text or "").strip()
        if not raw:
            raise UnknownLocationError("destination", city_text, [])

        if len(raw) == 3 and raw.isalpha():
            return raw.upper()

        key = self._norm(raw)
        if key in self._city_cache:
            return self._city_cache[key]

        candidates = self._search_cities(raw)
        if not candidates and len(raw) >= 3:
            candidates = self._search_cities(raw[:3])

        if not candidates:
            raise UnknownLocationError("destination", raw, [])

        code = candidates[0]["iataCode"].upper()
        self._city_cache[key] = code
        return code

    def _get_hotel_ids_by_city(self, city_code: str, limit: int = 15) -> List[str]:
        try:
            resp = self.client.reference_data.locations.hotels.by_city.get(cityCode=city_code)
        except ResponseError as e:
            raise ProviderError(str(e)) from e

        ids = [h.get("hotelId") for h in (resp.data or []) if h.get("hotelId")]
        return ids[:limit]

    def search_hotels(
        self,
        city: str,
        checkin_iso: str,
        checkout_iso: str,
        party_size: int,
        budget_tier: Optional[BudgetTier] = None,
    ) -> list[HotelOption]:
        city_code = self._resolve_city_code(city)

        hotel_ids = self._get_hotel_ids_by_city(city_code, limit=15)
        if not hotel_ids:
            return []

        try:
            offers = self.client.shopping.hotel_offers_search.get(
                hotelIds=hotel_ids,
                adults=str(party_size),
                checkInDate=checkin_iso,
                checkOutDate=checkout_iso,
            )
        except ResponseError as e:
            raise ProviderError(str(e)) from e

        nights = max(1, _nights_between(checkin_iso, checkout_iso))

        out = []
        for item in offers.data or []:
            hotel_info = item.get("hotel", {}) or {}

            cheapest_total = None
            currency = "INR"
            for off in item.get("offers") or []:
                total = off.get("price", {}).get("total")
                try:
                    total_f = float(total)
                except (TypeError, ValueError):
                    continue
                if cheapest_total is None or total_f < cheapest_total:
                    cheapest_total = total_f
                    currency = off.get("price", {}).get("currency", currency)

            if cheapest_total is None:
                continue

            per_night = round(cheapest_total / nights, 2)
            category = category_for_price(per_night)
            if budget_tier and category is not budget_tier:
                continue

            rating = hotel_info.get("rating") or hotel_info.get("hotelRating")
            out.append(HotelOption(
                id=f"HOTEL-{hotel_info.get('hotelId') or item.get('hotelId')}",
                name=hotel_info.get("name") or "Unknown",
                price=per_night,
                currency=currency,
                rating=float(rating) if rating else None,
                address=city_code,
                category=category,
            ))

        return sorted(out, key=lambda x: x.price)


def _nights_between(checkin_iso: str, checkout_iso: str) -> int:
    return (date.fromisoformat(checkout_iso) - date.fromisoformat(checkin_iso)).days
