"""Turn-level entry point: one request in, one TurnResult out."""

import logging
from datetime import date
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from tripy.agents.booking import book_itinerary
from tripy.errors import TripInputError
from tripy.graph.context import TripContext, phase_of
from tripy.graph.graph import build_graph
from tripy.providers import TripServices, build_services
from tripy.schemas import BookingResult, Geolocation, Itinerary, Phase, TravelerDetails

log = logging.getLogger("tripy.graph.controller")


class TurnResult(BaseModel):
    needs_input: bool
    asking_for: Optional[str] = None
    prompt: str = ""
    options: list[dict[str, Any]] = Field(default_factory=list)
    itinerary_summary: Optional[str] = None
    itinerary: Optional[Itinerary] = None
    phase: Phase
    context: TripContext
    trace: list[dict] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_payload(self) -> dict:
        out = self.model_dump(mode="json", exclude={"context"}, exclude_none=True)
        out["context"] = self.context.to_payload()
        return out


def _errors(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in e.errors()
    )


def parse_context(payload: Union[TripContext, dict, None]) -> TripContext:
    if payload is None:
        return TripContext()
    if isinstance(payload, TripContext):
        return payload
    if not isinstance(payload, dict):
        raise TripInputError("context must be an object")
    try:
        return TripContext.model_validate(payload)
    except ValidationError as e:
        raise TripInputError(f"invalid context: {_errors(e)}") from e


def parse_geolocation(payload: Union[Geolocation, dict, None]) -> Optional[Geolocation]:
    if payload is None or isinstance(payload, Geolocation):
        return payload
    if not isinstance(payload, dict):
        raise TripInputError("geolocation must be an object")
    try:
        return Geolocation.model_validate(payload)
    except ValidationError as e:
        raise TripInputError(f"invalid geolocation: {_errors(e)}") from e


def parse_traveler(payload: Union[TravelerDetails, dict, None]) -> TravelerDetails:
    if isinstance(payload, TravelerDetails):
        return payload
    if not isinstance(payload, dict):
        raise TripInputError("traveler is required")
    try:
        return TravelerDetails.model_validate(payload)
    except ValidationError as e:
        raise TripInputError(f"invalid traveler: {_errors(e)}") from e


class TripPlanner:
    """Stateless planner. Every call gets the full prior context from the caller."""

    def __init__(self, services: Optional[TripServices] = None, today: Optional[Callable[[], date]] = None):
        self.services = services or build_services(today=today)
        self.graph = build_graph(self.services, today=today)

    def handle_turn(
        self,
        utterance: Optional[str],
        context: Union[TripContext, dict, None] = None,
        geolocation: Union[Geolocation, dict, None] = None,
        selection: Optional[str] = None,
    ) -> TurnResult:
        ctx = parse_context(context)
        geo = parse_geolocation(geolocation)

        if utterance is not None and not isinstance(utterance, str):
            raise TripInputError("utterance must be a string")
        text = (utterance or "").strip()
        if selection is not None:
            selection = str(selection).strip() or None
        if not text and selection:
            text = selection
        if not text:
            raise TripInputError("utterance is required")

        out = self.graph.invoke({
            "utterance": text,
            "selection": selection,
            "geolocation": geo,
            "context": ctx,
            "trace": [],
        })

        new_ctx: TripContext = out["context"]
        itin = new_ctx.final_itinerary if not out.get("error") else None
        result = TurnResult(
            needs_input=out.get("needs_input", True),
            asking_for=out.get("asking_for"),
            prompt=out.get("prompt", ""),
            options=out.get("options") or [],
            itinerary_summary=out.get("itinerary_summary"),
            itinerary=itin,
            phase=phase_of(new_ctx),
            context=new_ctx,
            trace=out.get("trace", []),
            error=out.get("error"),
            error_kind=out.get("error_kind"),
        )
        log.info(
            "Turn done: phase=%s asking_for=%s error_kind=%s",
            result.phase.value, result.asking_for, result.error_kind,
        )
        return result

    def book(
        self,
        context: Union[TripContext, dict, None],
        traveler: Union[TravelerDetails, dict, None],
    ) -> BookingResult:
        ctx = parse_context(context)
        person = parse_traveler(traveler)
        if ctx.final_itinerary is None:
            raise TripInputError("nothing to book: the trip is not finalized yet")
        return book_itinerary(ctx.final_itinerary, person, self.services.booking)
