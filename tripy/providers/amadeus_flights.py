import os
from typing import Dict, List, Tuple

from amadeus import Client, ResponseError, Location

from tripy.errors import ProviderError, UnknownLocationError
from tripy.providers.base import TransportProvider
from tripy.schemas import TransportMode, TransportOption


def amadeus_client() -> Client:
    return Client(
        client_id=os.getenv("AMADEUS_CLIENT_ID"),
        client_secret=os.getenv("AMADEUS_CLIENT_SECRET"),
        hostname=os.getenv("AMADEUS_HOSTNAME", "test"),
    )


def _hhmm(at: str) -> str:
    # "2026-08-18T06:15:00" -> "06:15"
    return at[11:16] if at and len(at) >= 16 else (at or "")


def _iso_duration(d: str) -> str:
    # "PT2H5M" -> "2h 5m"
    d = (d or "").replace("PT", "")
    hours, _, rest = d.partition("H") if "H" in d else ("0", "", d)
    minutes = rest.replace("M", "") or "0"
    return f"{int(hours)}h {int(minutes)}m"


class AmadeusFlightsProvider(TransportProvider):
    """
    Flight search on Amadeus Self-Service:
    - Resolve origin/destination from user text using Airport & City Search
    - Then call flight offers search

    Uses:
      amadeus.reference_data.locations.get(keyword=..., subType=Location.ANY)
    """

    mode = TransportMode.FLIGHT

    def __init__(self, client: Client = None):
        self.client = client or amadeus_client()
        # cache: normalized text -> iata
        self._cache: Dict[str, str] = {}

    @staticmethod
    def _norm(s: str) -> str:
        return (s or "").strip().lower()

    def _search_locations(self, keyword: str, max_items: int = 6) -> List[dict]:
        try:
            resp = self.client.reference_data.locations.get(
                keyword=keyword,
                subType=Location.ANY,
            )
        except ResponseError:
            return []

        out = []
        for it in (resp.data or [])[: max_items * 2]:
            code = it.get("iataCode")
            if not code:
                continue
            address = it.get("address") or {}
            out.append({
                "name": it.get("name"),
                "iataCode": code,
                "subType": it.get("subType"),
                "countryCode": address.get("countryCode"),
                "cityName": address.get("cityName"),
            })

        # CITY before AIRPORT
        def score(item: dict) -> Tuple[int]:
            st = (item.get("subType") or "").upper()
            return (2 if st == "CITY" else 1 if st == "AIRPORT" else 0,)

        out.sort(key=score, reverse=True)
        return out[:max_items]

    def _resolve_to_iata(self, text: str, field: str) -> str:
        raw = (text or "").strip()
        if not raw:
            raise UnknownLocationError(field, text, [])

        if len(raw) == 3 and raw.isalpha():
            return raw.upper()

        key = self._norm(raw)
        if key in self._cache:
            return self._cache[key]

        # autocomplete behaves best on prefixes
        candidates = self._search_locations(raw)
        if not candidates and len(raw) >= 3:
            candidates = self._search_locations(raw[:3])

        if not candidates:
            raise UnknownLocationError(field, raw, [])

        code = candidates[0]["iataCode"].upper()
        self._cache[key] = code
        return code

    def search(self, origin: str, destination: str, date_iso: str, party_size: int) -> list[TransportOption]:
        o = self._resolve_to_iata(origin, "origin")
        d = self._resolve_to_iata(destination, "destination")

        try:
            resp = self.client.shopping.flight_offers_search.get(
                originLocationCode=o,
                destinationLocationCode=d,
                departureDate=date_iso,
                adults=party_size,
                currencyCode="INR",
                max=15,
            )
        except ResponseError as e:
            raise ProviderError(str(e)) from e

        out = []
        for off in resp.data or []:
            price = off.get("price", {}).get("grandTotal")
            itineraries = off.get("itineraries", [])
            segments = itineraries[0].get("segments") if itineraries else None
            if price is None or not segments:
                continue

            first, last = segments[0], segments[-1]
            carrier = first.get("carrierCode") or ""
            number = first.get("number") or ""
            stops = len(segments) - 1

            out.append(TransportOption(
                id=f"FLIGHT-{off.get('id')}-{carrier}{number}",
                mode=TransportMode.FLIGHT,
                display_name=f"{carrier} {carrier}-{number}".strip(),
                operator=carrier,
                # grandTotal covers all adults; options are priced per traveler
                price=round(float(price) / max(1, party_size), 2),
                currency=off.get("price", {}).get("currency", "INR"),
                departure_time=_hhmm(first.get("departure", {}).get("at")),
                arrival_time=_hhmm(last.get("arrival", {}).get("at")),
                duration=_iso_duration(itineraries[0].get("duration")),
                origin=o,
                destination=d,
                date=date_iso,
                details="Non-stop" if stops == 0 else f"{stops} stop{'s' if stops > 1 else ''}",
            ))

        return sorted(out, key=lambda x: x.price)
