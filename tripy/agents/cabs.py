from tripy.providers.base import CabsProvider


def run_cabs_agent(provider: CabsProvider, pickup: str, dropoff: str, party_size: int = 1) -> dict:
    cabs = sorted(provider.search_cabs(pickup, dropoff, party_size), key=lambda c: c.price)
    cheapest = cabs[0] if cabs else None
    return {"cabs": cabs, "cheapest": cheapest}
