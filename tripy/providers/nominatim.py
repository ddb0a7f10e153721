from __future__ import annotations

import os
from typing import Any, Dict, Optional

import requests

from tripy.errors import ProviderError
from tripy.providers.base import Geocoder


class NominatimGeocoder(Geocoder):
    """
    Reverse geocoding through OpenStreetMap Nominatim (no API key).
    Mind the usage policy: one request per turn at most, identified by User-Agent.
    """

    BASE_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")

    def __init__(self, timeout: int = 10, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = os.getenv("NOMINATIM_USER_AGENT", "tripy/0.1")

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.BASE_URL}{path}"
        r = self.session.get(url, params=params or {}, timeout=self.timeout)
        if r.status_code >= 400:
            raise ProviderError(f"Nominatim error {r.status_code}: {r.text[:200]}")
        return r.json()

    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        # zoom 10 keeps the answer at city/town level
        data = self._get("/reverse", params={"format": "json", "lat": lat, "lon": lng, "zoom": 10})
        address = (data or {}).get("address") or {}
        for key in ("city", "town", "village", "suburb", "state_district"):
            if address.get(key):
                return address[key]
        return None
