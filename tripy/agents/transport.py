from tripy.providers.base import TransportProvider


def run_transport_agent(
    provider: TransportProvider,
    origin: str,
    destination: str,
    date_iso: str,
    party_size: int,
) -> dict:
    options = sorted(provider.search(origin, destination, date_iso, party_size), key=lambda o: o.price)
    cheapest = options[0] if options else None
    return {"options": options, "cheapest": cheapest}
