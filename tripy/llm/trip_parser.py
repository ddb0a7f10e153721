# tripy/llm/trip_parser.py
import json
import logging
import os
import re
from datetime import date
from typing import Any, Callable, Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from tripy.graph.intent import (
    extract_trip_details,
    norm_city,
    normalize_budget,
    normalize_date,
    normalize_mode,
    parse_party_size,
)
from tripy.schemas import ExtractedTrip

log = logging.getLogger("tripy.llm.trip_parser")

MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")


SYSTEM_PROMPT = """
You extract structured travel details from ONE user message for a trip booking assistant.

You must output ONLY valid JSON (no markdown, no explanations).

Fields:
- origin: departure city or null
- destination: destination city or null
- date: travel date exactly as the user said it (e.g. "18 August", "tomorrow") or null
- return_date: return date as the user said it, or null
- budget: "Luxury" | "Medium" | "Budget-friendly" | null
- mode: "Train" | "Bus" | "Flight" | null
- group_size: integer number of travellers or null
- round_trip: true | false | null
- intent: "book_trip" | "restart" | "greet" | "unknown"

Rules:
1) Never invent a value the user did not mention; use null.
2) "solo" means group_size 1, "couple" means 2.
3) Dates stay in the user's words; do not convert them.

Output JSON schema:
{
  "origin": null, "destination": null, "date": null, "return_date": null,
  "budget": null, "mode": null, "group_size": null, "round_trip": null,
  "intent": "unknown"
}
"""


def _safe_json_parse(txt: str) -> Dict[str, Any]:
    try:
        return json.loads(txt)
    except Exception:
        m = re.search(r"\{.*\}", txt or "", re.DOTALL)
        if m:
            try:
                return json.loads(m.group(0))
            except Exception:
                return {}
        return {}


def _str_or_none(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip() and v.strip().lower() not in {"null", "none"}:
        return v.strip()
    return None


def coerce_extraction(data: Dict[str, Any], today: Optional[date] = None) -> ExtractedTrip:
    """Map the model's JSON onto ExtractedTrip through the same normalizers
    used for direct answers. Anything that does not normalize is dropped."""
    out: Dict[str, Any] = {}

    origin = _str_or_none(data.get("origin"))
    if origin:
        out["origin"] = norm_city(origin)
    destination = _str_or_none(data.get("destination"))
    if destination:
        out["destination"] = norm_city(destination)

    raw_date = _str_or_none(data.get("date"))
    if raw_date:
        out["travel_date"] = normalize_date(raw_date, today)
    raw_return = _str_or_none(data.get("return_date"))
    if raw_return:
        out["return_date"] = normalize_date(raw_return, today)

    budget = _str_or_none(data.get("budget"))
    if budget:
        out["budget_tier"] = normalize_budget(budget)
    mode = _str_or_none(data.get("mode"))
    if mode:
        out["transport_mode"] = normalize_mode(mode)

    group = data.get("group_size")
    if isinstance(group, bool):
        group = None
    if isinstance(group, int):
        out["party_size"] = group if group > 0 else None
    elif isinstance(group, str):
        out["party_size"] = parse_party_size(group)

    if isinstance(data.get("round_trip"), bool):
        out["is_round_trip"] = data["round_trip"]

    intent = _str_or_none(data.get("intent")) or "unknown"
    return ExtractedTrip(intent=intent, **{k: v for k, v in out.items() if v is not None})


class TripParser:
    """NLP extraction collaborator.

    With a chat model configured the utterance goes to the model; without one,
    or when the call fails, the rule-based extractor answers instead. It never
    raises for "could not parse".
    """

    def __init__(self, llm=None, today: Optional[Callable[[], date]] = None):
        self._llm = llm
        self._today = today or date.today

    @classmethod
    def from_env(cls, today: Optional[Callable[[], date]] = None) -> "TripParser":
        if not os.getenv("OPENAI_API_KEY"):
            log.info("OPENAI_API_KEY not set, using rule-based trip extraction")
            return cls(today=today)

        from langchain_openai import ChatOpenAI

        return cls(llm=ChatOpenAI(model=MODEL, temperature=0), today=today)

    def __call__(self, text: str) -> ExtractedTrip:
        today = self._today()
        if self._llm is None:
            return extract_trip_details(text, today)

        msg = HumanMessage(content=json.dumps({"user_input": text}, ensure_ascii=False))
        try:
            resp = self._llm.invoke([SystemMessage(content=SYSTEM_PROMPT), msg])
        except Exception:
            log.warning("Trip extraction model call failed, falling back to rules", exc_info=True)
            return extract_trip_details(text, today)

        data = _safe_json_parse(resp.content)
        if not data:
            log.warning("Trip extraction model returned no JSON: %.200s", resp.content)
            return extract_trip_details(text, today)
        return coerce_extraction(data, today)
