import logging
from datetime import date
from typing import Callable, Optional

from langgraph.graph import StateGraph, END

from tripy.agents.hotels import checkout_for, run_hotels_agent
from tripy.agents.transport import run_transport_agent
from tripy.errors import UnknownLocationError
from tripy.graph.context import TripContext, clear_slot, first_unresolved_slot, phase_of
from tripy.graph.intent import is_restart
from tripy.graph.itinerary import build_itinerary, quote_cab_legs, summarize_itinerary
from tripy.graph.slots import resolve_slots
from tripy.graph.state import TurnState
from tripy.providers import TripServices
from tripy.schemas import Phase, Selection, Slot, TransportMode

log = logging.getLogger("tripy.graph.graph")

QUESTIONS = {
    Slot.ORIGIN: "Where will you be travelling from?",
    Slot.DESTINATION: "Where would you like to go?",
    Slot.TRAVEL_DATE: "What date would you like to travel? (e.g. 18 August)",
    Slot.RETURN_DATE: "When would you like to come back?",
    Slot.TRANSPORT_MODE: "How would you like to travel: Train, Bus or Flight?",
    Slot.BUDGET_TIER: "What's your budget for the stay: Luxury, Medium or Budget-friendly?",
    Slot.PARTY_SIZE: "How many people are travelling?",
}

MODE_PLURAL = {
    TransportMode.TRAIN: "trains",
    TransportMode.BUS: "buses",
    TransportMode.FLIGHT: "flights",
}

# phase -> (selection awaited, options field, selected field)
SELECTIONS = {
    Phase.AWAITING_TRANSPORT_SELECTION: (
        Selection.OUTBOUND_TRANSPORT, "outbound_options", "selected_outbound_transport",
    ),
    Phase.AWAITING_RETURN_SELECTION: (
        Selection.RETURN_TRANSPORT, "return_options", "selected_return_transport",
    ),
    Phase.AWAITING_HOTEL_SELECTION: (
        Selection.HOTEL, "hotel_options", "selected_hotel",
    ),
}


# ---------------------------
# Utilities
# ---------------------------
def add_trace(state: TurnState, node: str, detail: dict):
    state.setdefault("trace", [])
    state["trace"].append({"node": node, "detail": detail})


def _with_notice(state: TurnState, text: str) -> str:
    notice = state.get("notice")
    return f"{notice}\n\n{text}" if notice else text


def _add_notice(state: TurnState, text: str):
    prev = state.get("notice")
    state["notice"] = f"{prev} {text}" if prev else text


def _transient(state: TurnState, node: str, what: str, e: Exception) -> TurnState:
    log.exception("%s failed", what)
    msg = f"{what} failed: {e}. Please try again in a moment."
    state["error"] = msg
    state["error_kind"] = "transient"
    state["prompt"] = msg
    state["needs_input"] = True
    state["halt"] = True
    add_trace(state, f"{node}_error", {"error": str(e)})
    return state


def _unknown_location(state: TurnState, node: str, ctx: TripContext, slot: Slot, e: UnknownLocationError) -> TurnState:
    state["context"] = clear_slot(ctx, slot)
    _add_notice(state, f"I couldn't find a matching {slot.value} for “{e.query}”.")
    add_trace(state, f"{node}_unknown_location", {"field": e.field, "query": e.query, "suggestions": e.suggestions})
    return state


# ---------------------------
# Nodes
# ---------------------------
def node_intake(state: TurnState) -> TurnState:
    ctx = state.get("context") or TripContext()
    if is_restart(state.get("utterance") or ""):
        ctx = TripContext()
        state["restarted"] = True
        state["notice"] = "Okay, let's plan a new trip."
    state["context"] = ctx
    add_trace(state, "intake", {"phase": phase_of(ctx).value, "restarted": bool(state.get("restarted"))})
    return state


def route_intake(state: TurnState) -> str:
    ctx = state["context"]
    if state.get("restarted"):
        return "ask_slot"
    phase = phase_of(ctx)
    if phase is Phase.FINALIZED:
        return "summarize"
    if phase is Phase.AWAITING_HOTEL_SELECTION and ctx.selected_hotel is not None:
        return "finalize"
    if phase in SELECTIONS:
        return "select_option"
    return "resolve_slots"


def node_resolve_slots(state: TurnState, services: TripServices, today: Callable[[], date]) -> TurnState:
    ctx = state["context"]
    res = resolve_slots(
        ctx,
        state.get("utterance"),
        answering_slot=ctx.pending_slot,
        geolocation=state.get("geolocation"),
        parser=services.parser,
        geocoder=services.geocoder,
        today=today(),
    )
    state["context"] = res.context
    state["unrecognized"] = res.unrecognized
    add_trace(state, "resolve_slots", {
        "answering": ctx.pending_slot.value if ctx.pending_slot else None,
        "next_slot": res.next_slot.value if res.next_slot else None,
        "unrecognized": res.unrecognized,
    })
    return state


def node_ask_slot(state: TurnState) -> TurnState:
    ctx = state["context"]
    slot = first_unresolved_slot(ctx)
    state["context"] = ctx.model_copy(update={"pending_slot": slot})

    q = QUESTIONS[slot]
    if state.get("unrecognized"):
        q = f"Sorry, I didn't catch that. {q}"
    state["prompt"] = _with_notice(state, q)
    state["asking_for"] = slot.value
    state["needs_input"] = True
    add_trace(state, "ask_slot", {"slot": slot.value})
    return state


def node_search_transport(state: TurnState, services: TripServices) -> TurnState:
    ctx = state["context"]
    provider = services.transport[ctx.transport_mode]
    try:
        data = run_transport_agent(provider, ctx.origin, ctx.destination, ctx.travel_date, ctx.party_size)
    except UnknownLocationError as e:
        slot = Slot.ORIGIN if e.field == "origin" else Slot.DESTINATION
        return _unknown_location(state, "search_transport", ctx, slot, e)
    except Exception as e:
        return _transient(state, "search_transport", f"{ctx.transport_mode.value} search", e)

    if not data["cheapest"]:
        state["context"] = clear_slot(ctx, Slot.TRAVEL_DATE)
        _add_notice(state, (
            f"No {MODE_PLURAL[ctx.transport_mode]} found from {ctx.origin} to {ctx.destination} "
            f"on {ctx.travel_date}. Let's try another date."
        ))
        add_trace(state, "search_transport_none", {})
        return state

    state["context"] = ctx.model_copy(update={"outbound_options": tuple(data["options"]), "pending_slot": None})
    add_trace(state, "search_transport_ok", {"count": len(data["options"]), "cheapest": data["cheapest"].id})
    return state


def node_search_return(state: TurnState, services: TripServices) -> TurnState:
    ctx = state["context"]
    provider = services.transport[ctx.transport_mode]
    try:
        data = run_transport_agent(provider, ctx.destination, ctx.origin, ctx.return_date, ctx.party_size)
    except UnknownLocationError as e:
        # legs are swapped on the way back
        slot = Slot.DESTINATION if e.field == "origin" else Slot.ORIGIN
        return _unknown_location(state, "search_return", ctx, slot, e)
    except Exception as e:
        return _transient(state, "search_return", f"Return {ctx.transport_mode.value.lower()} search", e)

    if not data["cheapest"]:
        state["context"] = clear_slot(ctx, Slot.RETURN_DATE)
        _add_notice(state, (
            f"No return {MODE_PLURAL[ctx.transport_mode]} found from {ctx.destination} to {ctx.origin} "
            f"on {ctx.return_date}. Let's try another return date."
        ))
        add_trace(state, "search_return_none", {})
        return state

    state["context"] = ctx.model_copy(update={"return_options": tuple(data["options"]), "pending_slot": None})
    add_trace(state, "search_return_ok", {"count": len(data["options"]), "cheapest": data["cheapest"].id})
    return state


def node_search_hotel(state: TurnState, services: TripServices) -> TurnState:
    ctx = state["context"]
    checkout = checkout_for(ctx.travel_date, ctx.return_date if ctx.is_round_trip else None)
    try:
        data = run_hotels_agent(
            services.hotels, ctx.destination, ctx.travel_date, checkout, ctx.party_size, ctx.budget_tier,
        )
    except UnknownLocationError as e:
        return _unknown_location(state, "search_hotel", ctx, Slot.DESTINATION, e)
    except Exception as e:
        return _transient(state, "search_hotel", "Hotel search", e)

    if not data["cheapest"]:
        state["context"] = clear_slot(ctx, Slot.BUDGET_TIER)
        _add_notice(state, (
            f"No {ctx.budget_tier.value} hotels found in {ctx.destination} "
            f"for {ctx.travel_date} → {checkout}. Let's try a different budget."
        ))
        add_trace(state, "search_hotel_none", {})
        return state

    state["context"] = ctx.model_copy(update={"hotel_options": tuple(data["hotels"]), "pending_slot": None})
    add_trace(state, "search_hotel_ok", {"count": len(data["hotels"]), "cheapest": data["cheapest"].id})
    return state


def node_select_option(state: TurnState) -> TurnState:
    ctx = state["context"]
    selection, options_field, selected_field = SELECTIONS[phase_of(ctx)]
    choice = (state.get("selection") or state.get("utterance") or "").strip()

    picked = None
    for opt in getattr(ctx, options_field):
        if opt.id == choice or opt.id.lower() == choice.lower():
            picked = opt
            break

    if picked is None:
        _add_notice(state, f"I couldn't find option “{choice}”.")
        add_trace(state, "select_option_unknown", {"selection": selection.value, "id": choice})
        return state

    state["context"] = ctx.model_copy(update={selected_field: picked})
    add_trace(state, "select_option", {"selection": selection.value, "id": picked.id})
    return state


def node_present_options(state: TurnState) -> TurnState:
    ctx = state["context"]
    phase = phase_of(ctx)
    selection, options_field, _ = SELECTIONS[phase]
    options = getattr(ctx, options_field)

    if selection is Selection.HOTEL:
        head = f"Here are {ctx.budget_tier.value} hotels in {ctx.destination} (cheapest first)."
    elif selection is Selection.RETURN_TRANSPORT:
        head = (
            f"Here are return {MODE_PLURAL[ctx.transport_mode]} from {ctx.destination} to {ctx.origin} "
            f"on {ctx.return_date} (cheapest first)."
        )
    else:
        head = (
            f"Here are {MODE_PLURAL[ctx.transport_mode]} from {ctx.origin} to {ctx.destination} "
            f"on {ctx.travel_date} (cheapest first)."
        )

    state["prompt"] = _with_notice(state, f"{head} Reply with the id of the one you want.")
    state["options"] = [o.model_dump(mode="json") for o in options]
    state["asking_for"] = selection.value
    state["needs_input"] = True
    add_trace(state, "present_options", {"selection": selection.value, "count": len(options)})
    return state


def node_finalize(state: TurnState, services: TripServices) -> TurnState:
    ctx = state["context"]
    cab_to_station, cab_to_hotel = quote_cab_legs(ctx, services.cabs, services.cab_placeholder_fare)
    itin = build_itinerary(ctx, cab_to_station, cab_to_hotel)
    state["context"] = ctx.model_copy(update={"final_itinerary": itin, "pending_slot": None})
    add_trace(state, "finalize", {"total": itin.total, "currency": itin.currency})
    return state


def node_summarize(state: TurnState) -> TurnState:
    itin = state["context"].final_itinerary
    summary = summarize_itinerary(itin)
    state["itinerary_summary"] = summary
    state["prompt"] = _with_notice(state, f"{summary}\n\nConfirm to book every leg, or say 'start over'.")
    state["needs_input"] = False
    state["asking_for"] = None
    add_trace(state, "summarize", {"total": itin.total})
    return state


def route(state: TurnState) -> str:
    if state.get("halt"):
        return "end"
    ctx = state["context"]
    phase = phase_of(ctx)
    if phase is Phase.COLLECTING_SLOTS:
        return "ask_slot"
    if phase is Phase.SEARCHING_TRANSPORT:
        return "search_transport"
    if phase is Phase.SEARCHING_RETURN_TRANSPORT:
        return "search_return"
    if phase is Phase.SEARCHING_HOTEL:
        return "search_hotel"
    if phase is Phase.AWAITING_HOTEL_SELECTION and ctx.selected_hotel is not None:
        return "finalize"
    if phase is Phase.FINALIZED:
        return "summarize"
    return "present_options"


# ---------------------------
# Build graph
# ---------------------------
def build_graph(services: TripServices, today: Optional[Callable[[], date]] = None):
    today = today or date.today
    g = StateGraph(TurnState)

    g.add_node("intake", node_intake)
    g.add_node("resolve_slots", lambda s: node_resolve_slots(s, services, today))
    g.add_node("ask_slot", node_ask_slot)
    g.add_node("search_transport", lambda s: node_search_transport(s, services))
    g.add_node("search_return", lambda s: node_search_return(s, services))
    g.add_node("search_hotel", lambda s: node_search_hotel(s, services))
    g.add_node("select_option", node_select_option)
    g.add_node("present_options", node_present_options)
    g.add_node("finalize", lambda s: node_finalize(s, services))
    g.add_node("summarize", node_summarize)

    g.set_entry_point("intake")

    g.add_conditional_edges("intake", route_intake, {
        "ask_slot": "ask_slot",
        "resolve_slots": "resolve_slots",
        "select_option": "select_option",
        "finalize": "finalize",
        "summarize": "summarize",
    })

    step = {
        "ask_slot": "ask_slot",
        "search_transport": "search_transport",
        "search_return": "search_return",
        "search_hotel": "search_hotel",
        "present_options": "present_options",
        "finalize": "finalize",
        "summarize": "summarize",
        "end": END,
    }
    for node in ("resolve_slots", "search_transport", "search_return", "search_hotel", "select_option", "finalize"):
        g.add_conditional_edges(node, route, step)

    g.add_edge("ask_slot", END)
    g.add_edge("present_options", END)
    g.add_edge("summarize", END)

    return g.compile()
