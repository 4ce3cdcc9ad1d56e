"""
Pytest configuration and fixtures for the interaction client tests.

Provides a scripted presentation engine, a recording transport and helpers
to drive the timeline without a display or a network.
"""

import pytest
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from interaction.execution.step import INDEFINITE  # noqa: E402
from interaction.presentation.base import PresentationEngine  # noqa: E402


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (with fakes)")


# ==================== FAKES ====================

def immediate_defer(func, delay=0.0):
    """Timeline scheduler that runs the next step straight away."""
    func()


class ScriptedPresenter(PresentationEngine):
    """
    Presentation engine driven by the test.

    Timed steps complete on their own as soon as they start (no response);
    steps waiting for a response stay active until respond() is called;
    indefinite steps only end through force_complete().
    """

    def __init__(self, auto_timeout=True):
        super().__init__()
        self.auto_timeout = auto_timeout
        self.shown = []
        self.forced = []
        self.shuffle_calls = 0
        self.current = None
        self._callback = None

    def run(self, descriptor, on_complete):
        self.shown.append(descriptor)
        self.current = descriptor
        self._callback = on_complete
        timed = descriptor.duration is not None and descriptor.duration is not INDEFINITE
        if timed and self.auto_timeout:
            self._complete(None, None)

    def force_complete(self, descriptor):
        if descriptor is not self.current:
            return
        self.forced.append(descriptor)
        self._complete(None, None)

    def shuffle(self, sequence):
        # Reversed so the displayed order always differs from the configured one
        self.shuffle_calls += 1
        return list(reversed(list(sequence)))

    def respond(self, choice, rt=500.0):
        """Click the button labelled ``choice`` (or at index ``choice``)."""
        assert self.current is not None, "Nothing is being shown"
        index = choice if isinstance(choice, int) else self.current.choices.index(choice)
        self._complete(index, rt)

    def timeout(self):
        """Let a step that ignores responses run out."""
        self._complete(None, None)

    def _complete(self, response, rt):
        callback = self._callback
        self.current = None
        self._callback = None
        callback(response, rt)

    def names_shown(self):
        return [d.name for d in self.shown]


class RecordingTransport:
    """Transport that keeps what was sent instead of using a socket."""

    def __init__(self, connect_ok=True):
        self.connect_ok = connect_ok
        self.sent = []
        self.closed = False
        self.connected = False
        self.queued = []

    def start(self):
        # Same contract as CoordinatorClient.start: failure arrives as a dropout
        from interaction.ipc.messages import PartnerDropout

        self.connected = self.connect_ok
        if not self.connect_ok:
            self.queued.append(PartnerDropout())

    def send(self, message):
        self.sent.append(message.to_dict())
        return True

    def poll(self):
        items, self.queued = self.queued, []
        return items

    def close(self):
        self.closed = True

    def sent_types(self):
        return [m['response_type'] for m in self.sent]


# ==================== FIXTURES ====================

@pytest.fixture
def presenter():
    return ScriptedPresenter()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def interaction_config(tmp_path):
    from config.interaction import InteractionConfig

    return InteractionConfig(
        participant_id="P1",
        output_dir=str(tmp_path / "data"),
        run_observation=False
    )


@pytest.fixture
def data_collector(tmp_path):
    from interaction.data_collector import DataCollector

    return DataCollector(str(tmp_path / "data"), "P1")


@pytest.fixture
def timeline(presenter):
    from interaction.execution.timeline import Timeline

    return Timeline(presenter, defer=immediate_defer)


@pytest.fixture
def session():
    from interaction.session import Session

    return Session(participant_id="P1")


@pytest.fixture
def dispatcher(interaction_config, session, timeline, transport, data_collector):
    from interaction.dispatcher import Dispatcher

    return Dispatcher(interaction_config, session, timeline, transport, data_collector)


@pytest.fixture
def client(interaction_config, presenter, transport, data_collector, monkeypatch):
    """InteractionClient on the fakes; ``client.polling`` replaces the pyglet poll schedule."""
    from interaction.client import InteractionClient

    client = InteractionClient(interaction_config, presenter, transport=transport,
                               data_collector=data_collector, defer=immediate_defer)
    client.polling = []
    monkeypatch.setattr(client, "_start_polling", lambda: client.polling.append(True))
    return client
