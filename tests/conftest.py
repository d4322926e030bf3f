import logging
import random

import pytest

from voice_relay.bot.realtime_bridge import RealtimeBridge
from voice_relay.models.conversation import UpstreamState
from voice_relay.services.context_manager import ConversationContextManager
from voice_relay.services.profile_store import InMemoryProfileStore


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeRealtimeClient:
    """Stands in for RealtimeClient; records sent events instead of using a socket."""

    connect_result = True

    def __init__(self, session_id, api_key, model):
        self.session_id = session_id
        self.api_key = api_key
        self.model = model
        self.state = UpstreamState.CONNECTING
        self.greeting_sent = False
        self.sent = []
        self.receiving = False
        self.closed = False
        self._message_handler = None
        self._error_handler = None
        self._closed_handler = None

    @property
    def is_open(self):
        return self.state == UpstreamState.OPEN

    def set_handlers(self, message_handler, error_handler=None, closed_handler=None):
        self._message_handler = message_handler
        self._error_handler = error_handler
        self._closed_handler = closed_handler

    async def connect(self):
        self.state = UpstreamState.OPEN if self.connect_result else UpstreamState.CLOSED
        return self.connect_result

    def start_receiving(self):
        self.receiving = True

    async def send_event(self, event):
        if not self.is_open:
            return False
        self.sent.append(event)
        return True

    async def close(self):
        self.closed = True
        self.state = UpstreamState.CLOSED

    # Test helpers
    async def deliver(self, event):
        await self._message_handler(event)

    async def drop(self, failure="Connection to voice service was lost"):
        self.state = UpstreamState.CLOSED
        if failure:
            await self._error_handler(failure)
        await self._closed_handler()

    def sent_types(self):
        return [event["type"] for event in self.sent]


@pytest.fixture
def fake_clients():
    """Every FakeRealtimeClient created by the factory, in creation order."""
    return []


@pytest.fixture
def client_factory(fake_clients):
    def factory(session_id, api_key, model):
        client = FakeRealtimeClient(session_id, api_key, model)
        fake_clients.append(client)
        return client

    return factory


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def context_manager(profile_store):
    return ConversationContextManager(profile_store, rng=random.Random(7))


@pytest.fixture
def bridge(context_manager, client_factory):
    return RealtimeBridge(
        context_manager,
        api_key="test-api-key",
        model="gpt-4o-realtime-preview-test",
        production=False,
        greeting_delay=0,
        client_factory=client_factory,
    )


class EventRecorder:
    """Collects client events emitted by the bridge."""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    def types(self):
        return [event.type for event in self.events]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def fake_client_class():
    return FakeRealtimeClient
