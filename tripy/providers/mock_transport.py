"""Randomized transport generators standing in for rail, bus and airline APIs."""

import random
import uuid
from abc import abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from tripy.providers.base import TransportProvider
from tripy.schemas import TransportMode, TransportOption


def _fmt_duration(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


class _MockTransportProvider(TransportProvider):
    mode: TransportMode
    min_results = 3
    max_results = 6
    price_range = (500, 2500)
    duration_range = (180, 720)  # minutes
    first_departure_hour = 6
    last_departure_hour = 22

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    @abstractmethod
    def _name(self, origin: str, destination: str) -> tuple[str, str, Optional[str]]:
        """Display name, operator and details for one generated option."""

    def search(self, origin: str, destination: str, date_iso: str, party_size: int) -> list[TransportOption]:
        rng = self._rng
        day = datetime.fromisoformat(date_iso)
        out = []
        for _ in range(rng.randint(self.min_results, self.max_results)):
            depart = day.replace(
                hour=rng.randint(self.first_departure_hour, self.last_departure_hour),
                minute=rng.choice((0, 10, 15, 20, 30, 40, 45, 50)),
            )
            minutes = rng.randint(*self.duration_range)
            arrive = depart + timedelta(minutes=minutes)
            name, operator, details = self._name(origin, destination)
            out.append(TransportOption(
                id=f"{self.mode.value.upper()}-{uuid.uuid4().hex[:10].upper()}",
                mode=self.mode,
                display_name=name,
                operator=operator,
                price=rng.randint(*self.price_range),
                departure_time=depart.strftime("%H:%M"),
                arrival_time=arrive.strftime("%H:%M"),
                duration=_fmt_duration(minutes),
                origin=origin,
                destination=destination,
                date=date_iso,
                details=details,
            ))
        return sorted(out, key=lambda x: x.price)


class MockTrainsProvider(_MockTransportProvider):
    mode = TransportMode.TRAIN
    price_range = (800, 3000)
    duration_range = (180, 720)
    classes = ("1A", "2A", "3A", "SL", "CC", "EC")

    def _name(self, origin, destination):
        kind = self._rng.choice(("Express", "Shatabdi", "Rajdhani", "Duronto", "Superfast"))
        number = self._rng.randint(10000, 99999)
        name = f"{number} {origin}-{destination} {kind}"
        return name, "Indian Railways", f"Class {self._rng.choice(self.classes)}"


class MockBusesProvider(_MockTransportProvider):
    mode = TransportMode.BUS
    min_results = 5
    max_results = 10
    price_range = (500, 2500)
    duration_range = (180, 780)
    last_departure_hour = 23
    operators = (
        "RedBus Express", "AbhiBus Travels", "eTravelSmart", "Travelyaari",
        "KSRTC", "MSRTC", "GSRTC", "UPSRTC",
    )
    bus_types = (
        "Volvo A/C Sleeper", "Volvo A/C Seater", "Non A/C Sleeper",
        "Semi Sleeper", "Super Deluxe",
    )

    def _name(self, origin, destination):
        operator = self._rng.choice(self.operators)
        bus_type = self._rng.choice(self.bus_types)
        return f"{operator} {bus_type}", operator, bus_type


class MockFlightsProvider(_MockTransportProvider):
    mode = TransportMode.FLIGHT
    price_range = (4500, 8000)
    duration_range = (60, 240)
    last_departure_hour = 23
    airlines = {"IndiGo": "6E", "Air India": "AI", "Vistara": "UK", "SpiceJet": "SG", "Akasa Air": "QP"}

    def _name(self, origin, destination):
        airline = self._rng.choice(sorted(self.airlines))
        flight_no = f"{self.airlines[airline]}-{self._rng.randint(100, 999)}"
        stops = self._rng.choice((0, 0, 0, 1))
        details = "Non-stop" if stops == 0 else "1 stop"
        return f"{airline} {flight_no}", airline, details
