import random
from types import SimpleNamespace

import pytest
import requests

from tripy.agents.hotels import checkout_for, run_hotels_agent
from tripy.errors import ProviderError, UnknownLocationError
from tripy.providers.amadeus_flights import AmadeusFlightsProvider
from tripy.providers.amadeus_hotels import AmadeusHotelsProvider
from tripy.providers.mock_cabs import MockCabsProvider
from tripy.providers.mock_hotels import PRICE_BANDS, MockHotelsProvider, category_for_price
from tripy.providers.mock_transport import (
    MockBusesProvider,
    MockFlightsProvider,
    MockTrainsProvider,
    _MockTransportProvider,
)
from tripy.providers.nominatim import NominatimGeocoder
from tripy.schemas import BudgetTier, TransportMode


class TestMockTransport:
    @pytest.mark.parametrize("cls,mode,low,high", [
        (MockTrainsProvider, TransportMode.TRAIN, 800, 3000),
        (MockBusesProvider, TransportMode.BUS, 500, 2500),
        (MockFlightsProvider, TransportMode.FLIGHT, 4500, 8000),
    ])
    def test_results(self, cls, mode, low, high):
        options = cls(random.Random(7)).search("Delhi", "Mumbai", "2026-08-18", 2)
        assert options
        assert [o.price for o in options] == sorted(o.price for o in options)
        assert len({o.id for o in options}) == len(options)
        for o in options:
            assert o.mode is mode
            assert low <= o.price <= high
            assert o.date == "2026-08-18"
            assert (o.origin, o.destination) == ("Delhi", "Mumbai")

    def test_name_hook_is_required(self):
        class NoName(_MockTransportProvider):
            mode = TransportMode.TRAIN

        with pytest.raises(TypeError):
            NoName()

    def test_bus_result_count(self):
        options = MockBusesProvider(random.Random(3)).search("Pune", "Goa", "2026-08-18", 1)
        assert 5 <= len(options) <= 10


class TestMockHotels:
    def test_budget_filter(self):
        hotels = MockHotelsProvider(random.Random(1)).search_hotels(
            "Goa", "2026-08-18", "2026-08-19", 2, BudgetTier.BUDGET_FRIENDLY,
        )
        low, high = PRICE_BANDS[BudgetTier.BUDGET_FRIENDLY]
        assert hotels
        assert all(low <= h.price <= high for h in hotels)
        assert all(h.category is BudgetTier.BUDGET_FRIENDLY for h in hotels)

    def test_without_tier_returns_all_categories(self):
        hotels = MockHotelsProvider(random.Random(1)).search_hotels("Goa", "2026-08-18", "2026-08-19", 2, None)
        assert {h.category for h in hotels} == set(BudgetTier)

    @pytest.mark.parametrize("price,tier", [
        (9000, BudgetTier.LUXURY),
        (5000, BudgetTier.LUXURY),
        (4999, BudgetTier.MEDIUM),
        (2000, BudgetTier.MEDIUM),
        (1999, BudgetTier.BUDGET_FRIENDLY),
    ])
    def test_category_for_price(self, price, tier):
        assert category_for_price(price) is tier

    def test_agent_drops_hotels_outside_tier(self):
        provider = MockHotelsProvider(random.Random(1))
        provider.search_hotels = lambda *a: MockHotelsProvider(random.Random(1)).search_hotels(
            "Goa", "2026-08-18", "2026-08-19", 2, None,
        )
        data = run_hotels_agent(provider, "Goa", "2026-08-18", "2026-08-19", 2, BudgetTier.LUXURY)
        assert data["hotels"]
        assert all(h.category is BudgetTier.LUXURY for h in data["hotels"])
        assert data["cheapest"] == data["hotels"][0]

    def test_checkout(self):
        assert checkout_for("2026-08-18") == "2026-08-19"
        assert checkout_for("2026-08-18", "2026-08-25") == "2026-08-25"
        assert checkout_for("2026-12-31") == "2027-01-01"


class TestMockCabs:
    def test_sorted_quotes(self):
        quotes = MockCabsProvider(random.Random(2)).search_cabs("Delhi", "Delhi Airport", 2)
        assert [q.price for q in quotes] == sorted(q.price for q in quotes)
        assert {q.cab_type for q in quotes} == {"Mini", "Sedan", "SUV"}

    def test_large_party_gets_suv(self):
        quotes = MockCabsProvider(random.Random(2)).search_cabs("Delhi", "Delhi Airport", 6)
        assert {q.cab_type for q in quotes} == {"SUV"}


# ── Amadeus adapters against a fake SDK client ─────────────────────

def _resp(data):
    return SimpleNamespace(data=data)


def fake_amadeus(locations=(), offers=(), hotel_ids=(), hotel_offers=()):
    calls = {}

    def flight_search(**kw):
        calls["flights"] = kw
        return _resp(list(offers))

    def hotel_search(**kw):
        calls["hotels"] = kw
        return _resp(list(hotel_offers))

    client = SimpleNamespace(
        reference_data=SimpleNamespace(locations=SimpleNamespace(
            get=lambda **kw: _resp(list(locations)),
            hotels=SimpleNamespace(by_city=SimpleNamespace(
                get=lambda **kw: _resp([{"hotelId": h} for h in hotel_ids]),
            )),
        )),
        shopping=SimpleNamespace(
            flight_offers_search=SimpleNamespace(get=flight_search),
            hotel_offers_search=SimpleNamespace(get=hotel_search),
        ),
    )
    return client, calls


OFFER = {
    "id": "1",
    "price": {"grandTotal": "9000.00", "currency": "INR"},
    "itineraries": [{
        "duration": "PT2H10M",
        "segments": [{
            "carrierCode": "6E",
            "number": "201",
            "departure": {"at": "2026-08-18T06:15:00"},
            "arrival": {"at": "2026-08-18T08:25:00"},
        }],
    }],
}


class TestAmadeusFlights:
    def test_offer_mapping(self):
        client, calls = fake_amadeus(offers=[OFFER])
        options = AmadeusFlightsProvider(client).search("DEL", "BOM", "2026-08-18", 2)
        assert calls["flights"]["adults"] == 2
        assert calls["flights"]["originLocationCode"] == "DEL"
        opt = options[0]
        assert opt.mode is TransportMode.FLIGHT
        assert opt.price == 4500.0
        assert opt.departure_time == "06:15"
        assert opt.arrival_time == "08:25"
        assert opt.duration == "2h 10m"
        assert opt.details == "Non-stop"

    def test_city_name_is_resolved(self):
        locations = [
            {"iataCode": "BOM", "subType": "AIRPORT", "name": "CHHATRAPATI SHIVAJI", "address": {}},
            {"iataCode": "DEL", "subType": "CITY", "name": "DELHI", "address": {}},
        ]
        client, calls = fake_amadeus(locations=locations, offers=[OFFER])
        AmadeusFlightsProvider(client).search("Delhi", "BOM", "2026-08-18", 1)
        # CITY entries rank first
        assert calls["flights"]["originLocationCode"] == "DEL"

    def test_unknown_city(self):
        client, _ = fake_amadeus(locations=[])
        with pytest.raises(UnknownLocationError) as exc:
            AmadeusFlightsProvider(client).search("Atlantis", "BOM", "2026-08-18", 1)
        assert exc.value.field == "origin"
        assert exc.value.query == "Atlantis"


class TestAmadeusHotels:
    def _offer(self, hotel_id, total):
        return {
            "hotel": {"hotelId": hotel_id, "name": f"Hotel {hotel_id}", "rating": "4"},
            "offers": [{"id": "o1", "price": {"total": total, "currency": "INR"}}],
        }

    def test_per_night_price_and_tier_filter(self):
        client, calls = fake_amadeus(
            hotel_ids=["H1", "H2"],
            hotel_offers=[self._offer("H1", "6000"), self._offer("H2", "12000")],
        )
        hotels = AmadeusHotelsProvider(client).search_hotels(
            "GOI", "2026-08-18", "2026-08-20", 2, BudgetTier.MEDIUM,
        )
        assert calls["hotels"]["adults"] == "2"
        assert [h.id for h in hotels] == ["HOTEL-H1"]
        assert hotels[0].price == 3000.0
        assert hotels[0].category is BudgetTier.MEDIUM

    def test_no_hotels_in_city(self):
        client, _ = fake_amadeus(hotel_ids=[])
        assert AmadeusHotelsProvider(client).search_hotels("GOI", "2026-08-18", "2026-08-19", 1) == []


# ── Nominatim ──────────────────────────────────────────────────────

class FakeSession:
    def __init__(self, status_code=200, payload=None):
        self.headers = {"User-Agent": "python-requests/2.32"}
        self.status_code = status_code
        self.payload = payload or {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        self.sent_headers = dict(self.headers)
        return SimpleNamespace(status_code=self.status_code, text="err", json=lambda: self.payload)


class TestNominatim:
    def test_city_from_address(self, monkeypatch):
        monkeypatch.delenv("NOMINATIM_USER_AGENT", raising=False)
        session = FakeSession(payload={"address": {"city": "Bengaluru", "state": "Karnataka"}})
        geo = NominatimGeocoder(session=session)
        assert geo.reverse_geocode(12.97, 77.59) == "Bengaluru"
        url, params, timeout = session.calls[0]
        assert url.endswith("/reverse")
        assert params["lat"] == 12.97
        assert timeout == 10
        assert session.sent_headers["User-Agent"] == "tripy/0.1"

    def test_town_fallback(self):
        geo = NominatimGeocoder(session=FakeSession(payload={"address": {"town": "Lonavala"}}))
        assert geo.reverse_geocode(18.75, 73.40) == "Lonavala"

    def test_nothing_found(self):
        assert NominatimGeocoder(session=FakeSession(payload={})).reverse_geocode(0, 0) is None

    def test_http_error(self):
        with pytest.raises(ProviderError):
            NominatimGeocoder(session=FakeSession(status_code=500)).reverse_geocode(0, 0)

    def test_user_agent_replaces_requests_default(self, monkeypatch):
        monkeypatch.setenv("NOMINATIM_USER_AGENT", "tripy-tests/1.0 (ops@example.com)")
        geo = NominatimGeocoder(session=requests.Session())
        assert geo.session.headers["User-Agent"] == "tripy-tests/1.0 (ops@example.com)"
