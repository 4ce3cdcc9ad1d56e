"""
Unit tests for the coordinator transport.

Socket tests use a local socket pair in place of a real coordinator.
"""

import json
import queue
import socket
import time

import pytest
from interaction.ipc import transport as transport_module
from interaction.ipc.messages import (
    DirectorTurn,
    FinishedFeedbackMessage,
    InvalidInstructionError,
    MatcherResponseMessage,
    PartnerDropout,
    UnknownInstructionError,
    WaitForPartner,
)
from interaction.ipc.transport import CoordinatorClient


@pytest.fixture
def connected(monkeypatch):
    """CoordinatorClient connected to one end of a socket pair; yields (client, peer)."""
    client_end, peer = socket.socketpair()
    monkeypatch.setattr(transport_module.socket, "create_connection",
                        lambda address, timeout=None: client_end)
    client = CoordinatorClient("coordinator.test", 9002)
    client.start()
    deadline = time.monotonic() + 2
    while not client.is_connected():
        assert time.monotonic() < deadline, "background connect did not finish"
        time.sleep(0.01)
    yield client, peer
    client.close()
    peer.close()


def read_line(peer):
    buffer = b""
    while not buffer.endswith(b"\n"):
        chunk = peer.recv(4096)
        assert chunk, "connection closed before a full line arrived"
        buffer += chunk
    return json.loads(buffer.decode('utf-8'))


# ==================== LINE DECODING ====================

@pytest.mark.unit
def test_handle_line_queues_instruction():
    client = CoordinatorClient()

    client.handle_line('{"command_type": "DirectorTurn", "target_object": "object4", "partner_id": "P2"}\n')

    assert client.poll() == [DirectorTurn(target_object="object4", partner_id="P2")]


@pytest.mark.unit
def test_handle_line_skips_blank_lines():
    client = CoordinatorClient()

    client.handle_line("   \n")

    assert client.poll() == []


@pytest.mark.unit
def test_malformed_json_is_queued_as_error():
    client = CoordinatorClient()

    client.handle_line("{not json")

    items = client.poll()
    assert len(items) == 1
    assert isinstance(items[0], InvalidInstructionError)


@pytest.mark.unit
def test_unknown_instruction_is_queued_as_error():
    client = CoordinatorClient()

    client.handle_line('{"command_type": "Teleport"}')

    assert isinstance(client.poll()[0], UnknownInstructionError)


@pytest.mark.unit
@pytest.mark.parametrize("line", [
    '{"command_type": ["EnterWaitingRoom"]}',
    '{"command_type": {"tag": "Feedback"}}',
])
def test_non_string_tag_is_queued_as_error(line):
    client = CoordinatorClient()

    client.handle_line(line)

    assert isinstance(client.poll()[0], UnknownInstructionError)


@pytest.mark.unit
def test_unexpected_decoder_failure_is_queued_as_error(monkeypatch):
    def broken_decoder(data):
        raise RuntimeError("decoder bug")

    monkeypatch.setattr(transport_module, "instruction_from_dict", broken_decoder)
    client = CoordinatorClient()

    client.handle_line('{"command_type": "WaitForPartner"}')

    assert isinstance(client.poll()[0], InvalidInstructionError)


@pytest.mark.unit
def test_poll_preserves_arrival_order():
    client = CoordinatorClient()
    client.handle_line('{"command_type": "WaitForPartner"}')
    client.handle_line('{"command_type": "PartnerDropout"}')

    assert client.poll() == [WaitForPartner(), PartnerDropout()]
    assert client.poll() == []


# ==================== CONNECTION ====================

@pytest.mark.unit
def test_send_when_not_connected_returns_false():
    client = CoordinatorClient()

    assert client.send(FinishedFeedbackMessage()) is False


@pytest.mark.unit
def test_connect_failure_returns_false(monkeypatch):
    def refuse(address, timeout=None):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(transport_module.socket, "create_connection", refuse)
    client = CoordinatorClient()

    assert client.connect() is False
    assert not client.is_connected()


@pytest.mark.unit
def test_start_returns_before_connecting(monkeypatch):
    """start() hands the blocking connect to the reader thread."""
    calls = []

    def slow_refuse(address, timeout=None):
        calls.append(address)
        time.sleep(0.2)
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(transport_module.socket, "create_connection", slow_refuse)
    client = CoordinatorClient("coordinator.test", 9002)

    started = time.monotonic()
    client.start()

    assert time.monotonic() - started < 0.2
    assert client.inbound.get(timeout=2) == PartnerDropout()
    assert calls == [("coordinator.test", 9002)]


@pytest.mark.unit
def test_close_is_idempotent():
    client = CoordinatorClient()

    client.close()
    client.close()

    assert not client.is_connected()


@pytest.mark.unit
def test_send_writes_json_line(connected):
    client, peer = connected

    assert client.send(MatcherResponseMessage(
        participant="P1", partner="P2", director_label="zop", response="object5"
    ))

    assert read_line(peer) == {
        'response_type': 'RESPONSE',
        'participant': 'P1',
        'partner': 'P2',
        'role': 'Matcher',
        'director_label': 'zop',
        'response': 'object5',
    }


@pytest.mark.unit
def test_reader_queues_received_instructions(connected):
    client, peer = connected

    # Split across writes to exercise buffering
    peer.sendall(b'{"command_type": "Feed')
    peer.sendall(b'back", "score": 1}\n{"command_type": "WaitForPartner"}\n')

    first = client.inbound.get(timeout=2)
    second = client.inbound.get(timeout=2)
    assert first.score == 1
    assert second == WaitForPartner()


@pytest.mark.unit
def test_reader_survives_non_string_tag(connected):
    """A bad line is reported and the lines after it are still read."""
    client, peer = connected

    peer.sendall(b'{"command_type": ["EnterWaitingRoom"]}\n{"command_type": "WaitForPartner"}\n')

    assert isinstance(client.inbound.get(timeout=2), UnknownInstructionError)
    assert client.inbound.get(timeout=2) == WaitForPartner()


@pytest.mark.unit
def test_connection_drop_becomes_partner_dropout(connected):
    client, peer = connected

    peer.close()

    assert client.inbound.get(timeout=2) == PartnerDropout()


@pytest.mark.unit
def test_local_close_does_not_report_dropout(connected):
    client, peer = connected
    reader = client._reader

    client.close()
    reader.join(timeout=2)

    with pytest.raises(queue.Empty):
        client.inbound.get_nowait()
