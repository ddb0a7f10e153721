import pytest

from stubs import TODAY, make_services
from tripy.graph.controller import TripPlanner


@pytest.fixture
def services():
    return make_services()


@pytest.fixture
def planner(services):
    return TripPlanner(services, today=lambda: TODAY)
