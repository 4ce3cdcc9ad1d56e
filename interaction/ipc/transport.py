"""
Coordinator transport.

Connects to the coordinator over TCP and exchanges newline-delimited JSON.
Inbound instructions are decoded on a background reader thread and queued;
the client drains the queue from its own event loop, so the timeline is only
ever touched from one thread.
"""

from typing import List, Optional, Union
import json
import logging
import queue
import socket
import threading

from .messages import (
    Instruction,
    InstructionError,
    InvalidInstructionError,
    OutboundMessage,
    PartnerDropout,
    instruction_from_dict,
)

logger = logging.getLogger(__name__)

# Queue items are decoded instructions or the error a line produced
InboundItem = Union[Instruction, InstructionError]


class CoordinatorClient:
    """
    TCP client for the coordinator.

    Attributes:
        host: Coordinator hostname/IP (default: 'localhost')
        port: Coordinator port (default: 9002)
        timeout: Connection timeout in seconds (default: 5.0)
    """

    def __init__(self, host: str = 'localhost', port: int = 9002, timeout: float = 5.0):
        """
        Initialize coordinator client.

        Args:
            host: Coordinator hostname
            port: Coordinator port
            timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket: Optional[socket.socket] = None
        self.inbound: "queue.Queue[InboundItem]" = queue.Queue()
        self._reader: Optional[threading.Thread] = None
        self._closing = threading.Event()

    def connect(self) -> bool:
        """
        Establish connection to the coordinator (blocking).

        Returns:
            True if connection successful, False otherwise
        """
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            # Reads block until the coordinator pushes something
            sock.settimeout(None)
        except (socket.timeout, ConnectionRefusedError, OSError) as e:
            logger.warning(f"Could not connect to coordinator at {self.host}:{self.port}: {e}")
            self.socket = None
            return False

        self.socket = sock
        logger.info(f"Connected to coordinator at {self.host}:{self.port}")
        return True

    def start(self):
        """
        Connect and read on a background thread; returns immediately.

        A failed connection is queued as a PartnerDropout, like a lost one.
        """
        self._closing.clear()
        self._reader = threading.Thread(target=self._run, name="coordinator-reader", daemon=True)
        self._reader.start()

    def is_connected(self) -> bool:
        return self.socket is not None

    def send(self, message: OutboundMessage) -> bool:
        """
        Send a message to the coordinator (fire-and-forget).

        Args:
            message: Fully populated outbound message

        Returns:
            True if the message was written to the socket
        """
        payload = message.to_dict()
        if not self.is_connected():
            logger.error(f"Cannot send {payload['response_type']}: not connected")
            return False

        try:
            self.socket.sendall((json.dumps(payload) + "\n").encode('utf-8'))
            logger.debug(f"Sent {payload}")
            return True
        except (socket.error, OSError) as e:
            logger.warning(f"Failed to send {payload['response_type']}: {e}")
            return False

    def poll(self) -> List[InboundItem]:
        """Drain and return everything received since the last poll, oldest first."""
        items = []
        while True:
            try:
                items.append(self.inbound.get_nowait())
            except queue.Empty:
                return items

    def close(self):
        """Close the connection. Safe to call more than once."""
        self._closing.set()
        if self.socket is None:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.socket.close()
        self.socket = None
        logger.info("Coordinator connection closed")

    def handle_line(self, line: str):
        """Decode one received line and queue the result."""
        line = line.strip()
        if not line:
            return
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            self.inbound.put(InvalidInstructionError(f"Malformed instruction {line!r}: {e}"))
            return
        try:
            self.inbound.put(instruction_from_dict(data))
        except InstructionError as e:
            self.inbound.put(e)
        except Exception as e:
            # Decoder bug or payload shape nobody anticipated: still fatal for the session
            logger.exception(f"Could not decode instruction {line!r}")
            self.inbound.put(InvalidInstructionError(f"Undecodable instruction {line!r}: {e}"))

    def _run(self):
        if not self.connect():
            if not self._closing.is_set():
                self.inbound.put(PartnerDropout())
            return
        if self._closing.is_set():
            # close() ran while we were still connecting
            self.socket.close()
            self.socket = None
            return
        self._read_loop()

    def _read_loop(self):
        sock = self.socket
        buffer = b""
        try:
            while not self._closing.is_set():
                chunk = sock.recv(4096)
                if not chunk:
                    break
                buffer += chunk
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    self.handle_line(line.decode('utf-8', errors='replace'))
        except OSError as e:
            if not self._closing.is_set():
                logger.warning(f"Coordinator connection lost: {e}")

        if not self._closing.is_set():
            # Connection dropped without us closing it: treat as partner dropout
            logger.warning("Coordinator closed the connection")
            self.inbound.put(PartnerDropout())

    def __repr__(self):
        state = "connected" if self.is_connected() else "disconnected"
        return f"CoordinatorClient({self.host}:{self.port}, {state})"
