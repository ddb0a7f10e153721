import json
from datetime import date
from types import SimpleNamespace

from stubs import TODAY
from tripy.graph.controller import TripPlanner
from tripy.llm.trip_parser import TripParser, _safe_json_parse, coerce_extraction
from tripy.providers import build_services
from tripy.schemas import BudgetTier, TransportMode


class FakeLLM:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.messages = None

    def invoke(self, messages):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.content)


def parser(llm=None):
    return TripParser(llm=llm, today=lambda: TODAY)


class TestTripParser:
    def test_model_output_is_normalized(self):
        llm = FakeLLM(json.dumps({
            "origin": "bombay", "destination": "Goa", "date": "18 August", "return_date": None,
            "budget": "mid-range", "mode": "Flight", "group_size": 2, "round_trip": False,
            "intent": "book_trip",
        }))
        out = parser(llm)("bombay to goa on 18 aug, 2 of us, flying mid-range")
        assert out.origin == "Mumbai"
        assert out.destination == "Goa"
        assert out.travel_date == "2026-08-18"
        assert out.budget_tier is BudgetTier.MEDIUM
        assert out.transport_mode is TransportMode.FLIGHT
        assert out.party_size == 2
        assert out.is_round_trip is False
        assert json.loads(llm.messages[1].content) == {"user_input": "bombay to goa on 18 aug, 2 of us, flying mid-range"}

    def test_model_failure_falls_back_to_rules(self):
        out = parser(FakeLLM(error=RuntimeError("rate limited")))("from Delhi to Mumbai by train")
        assert (out.origin, out.destination) == ("Delhi", "Mumbai")
        assert out.transport_mode is TransportMode.TRAIN

    def test_non_json_falls_back_to_rules(self):
        out = parser(FakeLLM("Sure! Where to?"))("to Goa")
        assert out.destination == "Goa"

    def test_without_model_uses_rules(self):
        out = parser()("to Goa by bus, 3 people")
        assert out.destination == "Goa"
        assert out.transport_mode is TransportMode.BUS
        assert out.party_size == 3

    def test_from_env_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert TripParser.from_env()._llm is None

    def test_planner_clock_reaches_the_parser(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("TRIPY_GEOCODER", "none")
        planner = TripPlanner(today=lambda: TODAY)
        assert planner.services.parser("to Goa on 18 August").travel_date == "2026-08-18"
        assert build_services(today=lambda: date(2026, 9, 1)).parser("to Goa on 18 August").travel_date == "2027-08-18"


class TestCoerce:
    def test_unrecognized_values_are_dropped(self):
        out = coerce_extraction({"budget": "purple", "mode": "rocket", "date": "someday", "group_size": 0}, TODAY)
        assert out.budget_tier is None
        assert out.transport_mode is None
        assert out.travel_date is None
        assert out.party_size is None
        assert out.intent == "unknown"

    def test_null_strings(self):
        out = coerce_extraction({"origin": "null", "destination": "  "}, TODAY)
        assert out.origin is None
        assert out.destination is None

    def test_group_size_text(self):
        assert coerce_extraction({"group_size": "a couple"}, TODAY).party_size == 2


def test_safe_json_parse_strips_chatter():
    assert _safe_json_parse('Here you go:\n```json\n{"mode": "Train"}\n```') == {"mode": "Train"}
    assert _safe_json_parse("no json here") == {}
