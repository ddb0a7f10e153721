from typing import Any, Optional, TypedDict

from tripy.graph.context import TripContext
from tripy.schemas import Geolocation


class TurnState(TypedDict, total=False):
    # request
    utterance: str
    selection: Optional[str]
    geolocation: Optional[Geolocation]

    # trip snapshot; replaced, never mutated
    context: TripContext
    restarted: bool
    unrecognized: bool
    notice: Optional[str]          # message shown before the next question
    halt: bool                     # stop routing after this node

    # outputs
    needs_input: bool
    asking_for: Optional[str]
    prompt: str
    options: list[dict[str, Any]]
    itinerary_summary: Optional[str]
    error: Optional[str]
    error_kind: Optional[str]
    trace: list[dict]
