"""Slot resolution: merge one utterance into the trip context.

Precedence is explicit answer > NLP guess > nothing. A slot that is already
set is never overwritten by an NLP guess; an answer that does not normalize
leaves its slot empty so the same question is asked again.
"""

import logging
from datetime import date
from typing import Callable, NamedTuple, Optional

from tripy.errors import TripInputError
from tripy.graph.context import TripContext, first_unresolved_slot, is_slot_resolved
from tripy.graph.intent import (
    norm_city,
    normalize_budget,
    normalize_date,
    normalize_mode,
    parse_party_size,
)
from tripy.providers.base import Geocoder
from tripy.schemas import ExtractedTrip, Geolocation, Slot

log = logging.getLogger("tripy.graph.slots")


class SlotResolution(NamedTuple):
    context: TripContext
    next_slot: Optional[Slot]
    unrecognized: bool = False


def _valid_iso(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        log.debug("Dropping non-ISO date from extraction: %r", value)
        return None


def _return_ok(travel: Optional[str], ret: Optional[str]) -> bool:
    return not (travel and ret and ret < travel)


def answer_slot(context: TripContext, slot: Slot, utterance: str, today: Optional[date] = None) -> dict:
    """Interpret the utterance as a direct answer to one slot.

    Returns the field update, empty when the answer does not normalize.
    """
    text = utterance.strip()
    if slot in (Slot.ORIGIN, Slot.DESTINATION):
        city = norm_city(text)
        return {slot.value: city} if city else {}

    if slot is Slot.TRAVEL_DATE:
        iso = normalize_date(text, today)
        if iso and _return_ok(iso, context.return_date):
            return {"travel_date": iso}
        return {}

    if slot is Slot.RETURN_DATE:
        iso = normalize_date(text, today)
        if iso and _return_ok(context.travel_date, iso):
            return {"return_date": iso}
        return {}

    if slot is Slot.PARTY_SIZE:
        n = parse_party_size(text)
        return {"party_size": n} if n else {}

    if slot is Slot.BUDGET_TIER:
        tier = normalize_budget(text)
        return {"budget_tier": tier} if tier else {}

    if slot is Slot.TRANSPORT_MODE:
        mode = normalize_mode(text)
        return {"transport_mode": mode} if mode else {}

    return {}


def merge_extraction(context: TripContext, extracted: ExtractedTrip) -> dict:
    """Fill-if-empty merge of an NLP guess. Set slots are left alone."""
    update: dict = {}

    def fill(name: str, value) -> None:
        if value is not None and getattr(context, name) is None:
            update[name] = value

    fill("origin", norm_city(extracted.origin) if extracted.origin else None)
    fill("destination", norm_city(extracted.destination) if extracted.destination else None)
    fill("travel_date", _valid_iso(extracted.travel_date))
    fill("budget_tier", extracted.budget_tier)
    fill("transport_mode", extracted.transport_mode)
    if extracted.party_size and extracted.party_size > 0:
        fill("party_size", extracted.party_size)

    round_trip = extracted.is_round_trip
    ret = _valid_iso(extracted.return_date)
    if ret and round_trip is None:
        round_trip = True
    fill("is_round_trip", round_trip)

    travel = update.get("travel_date", context.travel_date)
    if ret and _return_ok(travel, ret):
        fill("return_date", ret)
    elif ret:
        log.info("Ignoring return date %s before travel date %s", ret, travel)
    return update


def resolve_slots(
    context: TripContext,
    utterance: Optional[str],
    answering_slot: Optional[Slot] = None,
    geolocation: Optional[Geolocation] = None,
    *,
    parser: Callable[[str], ExtractedTrip],
    geocoder: Optional[Geocoder] = None,
    today: Optional[date] = None,
) -> SlotResolution:
    if not utterance or not utterance.strip():
        raise TripInputError("utterance is required")

    if answering_slot is not None and is_slot_resolved(context, answering_slot):
        log.info("Discarding stale pending slot %s; treating turn as a general statement", answering_slot.value)
        answering_slot = None

    unrecognized = False
    if answering_slot is not None:
        update = answer_slot(context, answering_slot, utterance, today)
        unrecognized = not update
        if unrecognized:
            log.info("Unrecognized answer for %s: %.80r", answering_slot.value, utterance)
    else:
        try:
            extracted = parser(utterance)
        except Exception:
            log.warning("Trip extraction failed, no slots filled this turn", exc_info=True)
            extracted = ExtractedTrip()
        update = merge_extraction(context, extracted)

    ctx = context.model_copy(update=update)

    if ctx.origin is None and geolocation is not None and geocoder is not None:
        try:
            city = geocoder.reverse_geocode(geolocation.lat, geolocation.lng)
        except Exception:
            log.warning("Reverse geocoding failed for %s,%s", geolocation.lat, geolocation.lng, exc_info=True)
            city = None
        if city:
            ctx = ctx.model_copy(update={"origin": norm_city(city)})

    next_slot = first_unresolved_slot(ctx)
    ctx = ctx.model_copy(update={"pending_slot": next_slot})
    return SlotResolution(ctx, next_slot, unrecognized)
