import pytest

from lunchbell.services.factory import ServiceFactory
from tests.helpers import (
    FakeBindingProvider,
    FakeClock,
    MemoryStore,
    RecordingDisplaySender,
    RecordingSlackSender,
    RecordingSmsSender,
)


@pytest.fixture
def provider() -> FakeBindingProvider:
    return FakeBindingProvider()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def slack() -> RecordingSlackSender:
    return RecordingSlackSender()


@pytest.fixture
def sms() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture
def display_sender() -> RecordingDisplaySender:
    return RecordingDisplaySender()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_factory():
    ServiceFactory.reset()
    yield
    ServiceFactory.reset()
