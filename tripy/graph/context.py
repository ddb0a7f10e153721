"""Trip context: the per-conversation slot set threaded through every turn.

The server keeps no per-user state. Each turn receives the full prior
snapshot from the client and returns a new one, so the model is frozen and
every update goes through ``model_copy(update=...)``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tripy.schemas import (
    BudgetTier,
    HotelOption,
    Itinerary,
    Phase,
    Slot,
    TransportMode,
    TransportOption,
)

# Itinerary basics first, preferences after: no search runs on a half-known route.
REQUIRED_SLOTS: tuple[Slot, ...] = (
    Slot.ORIGIN,
    Slot.DESTINATION,
    Slot.TRAVEL_DATE,
    Slot.TRANSPORT_MODE,
    Slot.BUDGET_TIER,
    Slot.PARTY_SIZE,
)


class TripContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: Optional[str] = None
    destination: Optional[str] = None
    travel_date: Optional[str] = None
    return_date: Optional[str] = None
    budget_tier: Optional[BudgetTier] = None
    party_size: Optional[int] = Field(default=None, gt=0)
    transport_mode: Optional[TransportMode] = None
    is_round_trip: Optional[bool] = None

    selected_outbound_transport: Optional[TransportOption] = None
    selected_return_transport: Optional[TransportOption] = None
    selected_hotel: Optional[HotelOption] = None

    # result sets last shown to the user; selection is by option id
    outbound_options: tuple[TransportOption, ...] = ()
    return_options: tuple[TransportOption, ...] = ()
    hotel_options: tuple[HotelOption, ...] = ()

    pending_slot: Optional[Slot] = None
    final_itinerary: Optional[Itinerary] = None

    @model_validator(mode="after")
    def _itinerary_only_when_complete(self) -> "TripContext":
        if self.final_itinerary is not None and not is_ready_to_finalize(self):
            raise ValueError(
                "final_itinerary requires selected transport, selected hotel and party_size"
            )
        return self

    def get_slot(self, slot: Slot):
        return getattr(self, slot.value)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True, exclude_defaults=True)


def required_slots(context: TripContext) -> list[Slot]:
    slots = list(REQUIRED_SLOTS)
    if context.is_round_trip:
        slots.insert(slots.index(Slot.TRAVEL_DATE) + 1, Slot.RETURN_DATE)
    return slots


def first_unresolved_slot(context: TripContext) -> Optional[Slot]:
    for slot in required_slots(context):
        if context.get_slot(slot) is None:
            return slot
    return None


def is_slot_resolved(context: TripContext, slot: Slot) -> bool:
    return context.get_slot(slot) is not None


def is_ready_to_finalize(context: TripContext) -> bool:
    if context.selected_outbound_transport is None:
        return False
    if context.selected_hotel is None or context.party_size is None:
        return False
    if context.is_round_trip and context.selected_return_transport is None:
        return False
    return True


def phase_of(context: TripContext) -> Phase:
    """Derive the booking phase from what the snapshot already holds."""
    if context.final_itinerary is not None:
        return Phase.FINALIZED
    if first_unresolved_slot(context) is not None:
        return Phase.COLLECTING_SLOTS

    if context.selected_outbound_transport is None:
        if context.outbound_options:
            return Phase.AWAITING_TRANSPORT_SELECTION
        return Phase.SEARCHING_TRANSPORT

    if context.is_round_trip and context.selected_return_transport is None:
        if context.return_options:
            return Phase.AWAITING_RETURN_SELECTION
        return Phase.SEARCHING_RETURN_TRANSPORT

    if context.selected_hotel is None and not context.hotel_options:
        return Phase.SEARCHING_HOTEL
    # a selected, not yet finalized hotel also lands here
    return Phase.AWAITING_HOTEL_SELECTION


def clear_slot(context: TripContext, slot: Slot) -> TripContext:
    """Targeted reset: drop one slot and any search results that depended on it."""
    update: dict = {slot.value: None, "pending_slot": slot}
    if slot in (Slot.ORIGIN, Slot.DESTINATION, Slot.TRAVEL_DATE, Slot.TRANSPORT_MODE):
        update["outbound_options"] = ()
        update["selected_outbound_transport"] = None
    if slot in (Slot.ORIGIN, Slot.DESTINATION, Slot.RETURN_DATE, Slot.TRANSPORT_MODE):
        update["return_options"] = ()
        update["selected_return_transport"] = None
    if slot in (Slot.DESTINATION, Slot.BUDGET_TIER, Slot.PARTY_SIZE):
        update["hotel_options"] = ()
        update["selected_hotel"] = None
    return context.model_copy(update=update)
