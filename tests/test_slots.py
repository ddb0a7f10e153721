import pytest

from stubs import TODAY, StubGeocoder, rule_parser
from tripy.errors import TripInputError
from tripy.graph.context import TripContext
from tripy.graph.slots import merge_extraction, resolve_slots
from tripy.schemas import BudgetTier, ExtractedTrip, Geolocation, Slot, TransportMode

SCENARIO = "I want to go to Mumbai on 18 August, flight, medium budget, 2 people"


def resolve(ctx, utterance, answering=None, geolocation=None, parser=rule_parser, geocoder=None):
    return resolve_slots(
        ctx, utterance, answering, geolocation, parser=parser, geocoder=geocoder, today=TODAY,
    )


class TestGeneralStatement:
    def test_delhi_to_mumbai_scenario(self):
        res = resolve(TripContext(origin="Delhi"), SCENARIO)
        ctx = res.context
        assert ctx.origin == "Delhi"
        assert ctx.destination == "Mumbai"
        assert ctx.travel_date == "2026-08-18"
        assert ctx.transport_mode is TransportMode.FLIGHT
        assert ctx.budget_tier is BudgetTier.MEDIUM
        assert ctx.party_size == 2
        assert res.next_slot is None
        assert ctx.pending_slot is None

    def test_set_slots_are_never_overwritten(self):
        ctx = TripContext(origin="Delhi", transport_mode=TransportMode.TRAIN)
        res = resolve(ctx, "from Pune to Goa by flight")
        assert res.context.origin == "Delhi"
        assert res.context.transport_mode is TransportMode.TRAIN
        assert res.context.destination == "Goa"

    def test_precedence_holds_for_any_extracted_value(self):
        ctx = TripContext(
            origin="Delhi", destination="Mumbai", travel_date="2026-08-18",
            budget_tier=BudgetTier.LUXURY, party_size=3,
        )
        guess = ExtractedTrip(
            origin="Pune", destination="Goa", travel_date="2026-09-01",
            budget_tier=BudgetTier.BUDGET_FRIENDLY, party_size=7,
        )
        assert merge_extraction(ctx, guess) == {}

    def test_next_slot_is_asked(self):
        res = resolve(TripContext(), "to Goa")
        assert res.next_slot is Slot.ORIGIN
        assert res.context.pending_slot is Slot.ORIGIN

    def test_parser_failure_degrades_to_unresolved(self):
        def broken(text):
            raise RuntimeError("model down")

        res = resolve(TripContext(origin="Delhi"), "to Goa", parser=broken)
        assert res.context.destination is None
        assert res.next_slot is Slot.DESTINATION

    def test_return_date_before_travel_date_is_ignored(self):
        guess = ExtractedTrip(travel_date="2026-08-18", return_date="2026-08-10", is_round_trip=True)
        update = merge_extraction(TripContext(), guess)
        assert "return_date" not in update
        assert update["is_round_trip"] is True

    def test_return_date_implies_round_trip(self):
        guess = ExtractedTrip(travel_date="2026-08-18", return_date="2026-08-25")
        update = merge_extraction(TripContext(), guess)
        assert update["is_round_trip"] is True
        assert update["return_date"] == "2026-08-25"

    def test_stale_pending_slot_is_discarded(self):
        ctx = TripContext(origin="Delhi", pending_slot=Slot.ORIGIN)
        res = resolve(ctx, "to Goa", answering=Slot.ORIGIN)
        assert res.context.origin == "Delhi"
        assert res.context.destination == "Goa"
        assert res.unrecognized is False


class TestDirectAnswer:
    BASE = dict(origin="Delhi", destination="Mumbai", travel_date="2026-08-18")

    def test_unrecognized_mode_is_asked_again(self):
        ctx = TripContext(**self.BASE, pending_slot=Slot.TRANSPORT_MODE)
        res = resolve(ctx, "purple", answering=Slot.TRANSPORT_MODE)
        assert res.unrecognized is True
        assert res.context.transport_mode is None
        assert res.next_slot is Slot.TRANSPORT_MODE
        assert res.context.pending_slot is Slot.TRANSPORT_MODE

    def test_ambiguous_mode_uses_table_order(self):
        ctx = TripContext(**self.BASE, pending_slot=Slot.TRANSPORT_MODE)
        res = resolve(ctx, "I like trains but also flights", answering=Slot.TRANSPORT_MODE)
        assert res.context.transport_mode is TransportMode.TRAIN
        assert res.next_slot is Slot.BUDGET_TIER

    def test_answer_fills_only_that_slot(self):
        ctx = TripContext(origin="Delhi", pending_slot=Slot.DESTINATION)
        res = resolve(ctx, "Bombay by flight for 2 people", answering=Slot.DESTINATION)
        assert res.context.destination is not None
        assert res.context.transport_mode is None
        assert res.context.party_size is None

    def test_city_answer_is_normalized(self):
        ctx = TripContext(origin="Delhi", pending_slot=Slot.DESTINATION)
        res = resolve(ctx, "bombay", answering=Slot.DESTINATION)
        assert res.context.destination == "Mumbai"

    def test_date_answer(self):
        ctx = TripContext(origin="Delhi", destination="Mumbai", pending_slot=Slot.TRAVEL_DATE)
        res = resolve(ctx, "18th of August", answering=Slot.TRAVEL_DATE)
        assert res.context.travel_date == "2026-08-18"

    def test_unparseable_date_stays_unresolved(self):
        ctx = TripContext(origin="Delhi", destination="Mumbai", pending_slot=Slot.TRAVEL_DATE)
        res = resolve(ctx, "whenever", answering=Slot.TRAVEL_DATE)
        assert res.context.travel_date is None
        assert res.next_slot is Slot.TRAVEL_DATE

    def test_return_before_departure_is_rejected(self):
        ctx = TripContext(**self.BASE, is_round_trip=True, pending_slot=Slot.RETURN_DATE)
        res = resolve(ctx, "10 August", answering=Slot.RETURN_DATE)
        assert res.unrecognized is True
        assert res.context.return_date is None

    def test_party_size_words(self):
        ctx = TripContext(
            **self.BASE, transport_mode=TransportMode.BUS, budget_tier=BudgetTier.MEDIUM,
            pending_slot=Slot.PARTY_SIZE,
        )
        res = resolve(ctx, "a couple", answering=Slot.PARTY_SIZE)
        assert res.context.party_size == 2
        assert res.next_slot is None

    @pytest.mark.parametrize("blank", ["", "   ", None])
    def test_blank_utterance_is_an_input_error(self, blank):
        with pytest.raises(TripInputError):
            resolve(TripContext(), blank)


class TestGeolocationFallback:
    HERE = Geolocation(lat=12.97, lng=77.59)

    def test_origin_from_coordinates(self):
        geo = StubGeocoder("Bengaluru")
        res = resolve(TripContext(), "to Goa", geolocation=self.HERE, geocoder=geo)
        assert res.context.origin == "Bengaluru"
        assert geo.calls == [(12.97, 77.59)]

    def test_stated_origin_wins(self):
        geo = StubGeocoder("Bengaluru")
        res = resolve(TripContext(), "from Pune to Goa", geolocation=self.HERE, geocoder=geo)
        assert res.context.origin == "Pune"
        assert geo.calls == []

    def test_geocoder_failure_is_swallowed(self):
        geo = StubGeocoder(error=RuntimeError("timeout"))
        res = resolve(TripContext(), "to Goa", geolocation=self.HERE, geocoder=geo)
        assert res.context.origin is None
        assert res.next_slot is Slot.ORIGIN

    def test_no_city_found(self):
        res = resolve(TripContext(), "to Goa", geolocation=self.HERE, geocoder=StubGeocoder(None))
        assert res.context.origin is None
