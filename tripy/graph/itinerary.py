import logging
from typing import Optional, Tuple

from tripy.agents.cabs import run_cabs_agent
from tripy.graph.context import TripContext, is_ready_to_finalize
from tripy.providers.base import CabsProvider
from tripy.schemas import (
    CabQuote,
    HotelOption,
    Itinerary,
    PriceBreakdown,
    TransportMode,
    TransportOption,
)

log = logging.getLogger("tripy.graph.itinerary")

HUB = {
    TransportMode.FLIGHT: "Airport",
    TransportMode.TRAIN: "Railway Station",
    TransportMode.BUS: "Bus Terminal",
}


def compute_pricing(
    outbound: TransportOption,
    hotel: HotelOption,
    party_size: int,
    cab_to_station: CabQuote,
    cab_to_hotel: CabQuote,
    return_transport: Optional[TransportOption] = None,
) -> PriceBreakdown:
    """Transport and hotel are per traveler; each cab is one booking per leg."""
    fares = outbound.price + (return_transport.price if return_transport else 0)
    transport = fares * party_size
    hotel_total = hotel.price * party_size
    cabs = cab_to_station.price + cab_to_hotel.price
    return PriceBreakdown(
        transport=round(transport, 2),
        hotel=round(hotel_total, 2),
        cabs=round(cabs, 2),
        total=round(transport + hotel_total + cabs, 2),
    )


def cab_routes(context: TripContext) -> Tuple[Tuple[str, str], Tuple[str, str]]:
    hub = HUB.get(context.transport_mode, "Station")
    hotel = context.selected_hotel.name if context.selected_hotel else f"Hotel, {context.destination}"
    return (
        (context.origin, f"{context.origin} {hub}"),
        (f"{context.destination} {hub}", hotel),
    )


def _placeholder(leg: str, pickup: str, dropoff: str, fare: float) -> CabQuote:
    return CabQuote(
        id=f"CAB-ESTIMATE-{leg.upper()}",
        provider="Local taxi (estimate)",
        cab_type="Standard",
        price=fare,
        pickup=pickup,
        dropoff=dropoff,
    )


def quote_cab_legs(
    context: TripContext,
    provider: CabsProvider,
    placeholder_fare: float,
) -> Tuple[CabQuote, CabQuote]:
    """Quote both transfers once: cheapest offer, or a flat estimate when none."""
    quotes = []
    for leg, (pickup, dropoff) in zip(("station", "hotel"), cab_routes(context)):
        try:
            cheapest = run_cabs_agent(provider, pickup, dropoff, context.party_size or 1)["cheapest"]
        except Exception:
            log.warning("Cab quote failed for %s -> %s, using estimate", pickup, dropoff, exc_info=True)
            cheapest = None
        quotes.append(cheapest or _placeholder(leg, pickup, dropoff, placeholder_fare))
    return quotes[0], quotes[1]


def build_itinerary(context: TripContext, cab_to_station: CabQuote, cab_to_hotel: CabQuote) -> Itinerary:
    if not is_ready_to_finalize(context):
        raise ValueError("cannot build itinerary: transport, hotel and party size must be selected")
    for name in ("origin", "destination", "travel_date", "transport_mode", "budget_tier"):
        if getattr(context, name) is None:
            raise ValueError(f"cannot build itinerary: {name} is not resolved")

    ret = context.selected_return_transport if context.is_round_trip else None
    pricing = compute_pricing(
        context.selected_outbound_transport,
        context.selected_hotel,
        context.party_size,
        cab_to_station,
        cab_to_hotel,
        return_transport=ret,
    )
    return Itinerary(
        origin=context.origin,
        destination=context.destination,
        travel_date=context.travel_date,
        return_date=context.return_date if context.is_round_trip else None,
        party_size=context.party_size,
        transport_mode=context.transport_mode,
        budget_tier=context.budget_tier,
        outbound_transport=context.selected_outbound_transport,
        return_transport=ret,
        hotel=context.selected_hotel,
        cab_to_station=cab_to_station,
        cab_to_hotel=cab_to_hotel,
        pricing=pricing,
        currency=context.selected_outbound_transport.currency,
    )


def _money(x: float) -> str:
    return f"₹{x:,.2f}"


def summarize_itinerary(itin: Itinerary) -> str:
    n = itin.party_size
    people = "traveller" if n == 1 else "travellers"
    out = itin.outbound_transport
    lines = [
        f"Trip: {itin.origin} → {itin.destination}, {itin.travel_date}"
        + (f" (return {itin.return_date})" if itin.return_date else "")
        + f", {n} {people}.",
        f"- {out.mode.value}: {out.display_name} {out.departure_time} → {out.arrival_time}, "
        f"{_money(out.price)} x {n}",
    ]
    if itin.return_transport:
        r = itin.return_transport
        lines.append(
            f"- Return {r.mode.value}: {r.display_name} {r.departure_time} → {r.arrival_time}, "
            f"{_money(r.price)} x {n}"
        )
    h = itin.hotel
    rating = f" (⭐ {h.rating})" if h.rating else ""
    lines.append(f"- Hotel: {h.name}{rating}, {_money(h.price)} x {n}")
    for label, cab in (("Cab to station", itin.cab_to_station), ("Cab to hotel", itin.cab_to_hotel)):
        lines.append(f"- {label}: {cab.provider} {cab.cab_type}, {cab.pickup} → {cab.dropoff}, {_money(cab.price)}")
    p = itin.pricing
    lines.append(
        f"Transport {_money(p.transport)} + Hotel {_money(p.hotel)} + Cabs {_money(p.cabs)} "
        f"= Total {_money(p.total)}"
    )
    return "\n".join(lines)
