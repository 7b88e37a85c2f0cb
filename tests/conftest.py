import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SESSION_BACKEND", "memory")

import pytest
from benefitflow.infrastructure.benefit_application_client import MockBenefitApplicationClient
from benefitflow.infrastructure.session_store import InMemorySession
from benefitflow.services.wizard import FlowParams, FlowStateManager, StepService, get_flow_config

from tests.factories import FLOW_ID, TODAY, FakeClock, StubAddressService


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return InMemorySession("session-1")


@pytest.fixture
def params():
    return FlowParams(id=FLOW_ID, lang="en")


@pytest.fixture
def apply_adult_config():
    return get_flow_config("apply-adult")


@pytest.fixture
def manager(apply_adult_config, session, clock):
    return FlowStateManager(apply_adult_config, session, clock=clock)


@pytest.fixture
def address_service():
    return StubAddressService()


@pytest.fixture
def make_service(session, clock, address_service):
    def _make(kind: str = "apply-adult") -> StepService:
        return StepService(
            get_flow_config(kind),
            session,
            today=TODAY,
            clock=clock,
            address_validation=address_service,
            benefit_application=MockBenefitApplicationClient(),
        )

    return _make
