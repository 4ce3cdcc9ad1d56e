"""
InteractionClient class for the dyadic interaction client.

Top-level orchestrator wiring session, timeline, dispatcher, transport,
recorder and presentation together on one pyglet event loop.
"""

from typing import Optional
import logging

from config.interaction import InteractionConfig
from .data_collector import DataCollector
from .dispatcher import Dispatcher
from .execution.timeline import Timeline
from .ipc.messages import InstructionError, PartnerDropout
from .ipc.transport import CoordinatorClient
from .observation import make_intro_timeline
from .session import Session

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


class InteractionClient:
    """
    One participant's client.

    Lifecycle:
    1. __init__: Build components from configuration
    2. start: Queue the intro timeline and resume
    3. (intro ends) connect: Open the coordinator connection, poll instructions
    4. shutdown: Stop polling and close the connection
    """

    def __init__(self, config: InteractionConfig, presenter, transport=None,
                 data_collector: Optional[DataCollector] = None, defer=None):
        """
        Initialize client.

        Args:
            config: InteractionConfig
            presenter: PresentationEngine
            transport: CoordinatorClient (default: built from config host/port)
            data_collector: DataCollector (default: one file per participant in output_dir)
            defer: Timeline scheduler override (tests)
        """
        self.config = config
        self.session = Session(participant_id=config.resolve_participant_id())
        self.presenter = presenter
        self.transport = transport or CoordinatorClient(config.host, config.port)
        self.data_collector = data_collector or DataCollector(
            config.output_dir, self.session.participant_id
        )
        self.timeline = Timeline(presenter, defer=defer, on_halt=self._on_halt)
        self.dispatcher = Dispatcher(
            config, self.session, self.timeline, self.transport, self.data_collector
        )
        self.failed: Optional[Exception] = None
        self._polling = False
        self._finished = False

    def start(self):
        """Queue the intro timeline (header, observation, instructions) and run it."""
        logger.info(f"Starting session for participant {self.session.participant_id}")
        self.timeline.append(make_intro_timeline(
            self.config, self.data_collector, self.presenter.shuffle, self.connect
        ))
        self.timeline.resume()

    def connect(self):
        """
        Open the coordinator connection in the background and start draining
        instructions. An unreachable coordinator arrives as a PartnerDropout.
        """
        self.transport.start()
        self._start_polling()

    def poll(self, dt: float = 0.0):
        """Dispatch every instruction received since the last poll, in arrival order."""
        for item in self.transport.poll():
            if self.timeline.is_halted or self.failed:
                logger.warning(f"Session over, dropping {item!r}")
                continue
            if isinstance(item, InstructionError):
                self.fail(item)
                return
            try:
                self.dispatcher.dispatch(item)
            except InstructionError as e:
                self.fail(e)
                return

    def fail(self, error: Exception):
        """
        Malformed or unexpected instruction: log it and terminate the session.

        Whatever is on screen is abandoned (its on_finish never runs), then
        the dropout and final screens are shown; the final screen halts the
        timeline. There is no recovery path, so nothing is guessed.
        """
        logger.error(f"Fatal protocol error, terminating session: {error}")
        self.failed = error
        self._stop_polling()
        self.transport.close()
        if self.timeline.is_halted:
            return
        self.timeline.interrupt()
        self.dispatcher.partner_dropout(PartnerDropout())

    def shutdown(self):
        self._stop_polling()
        self.transport.close()

    # ==================== PYGLET WIRING ====================

    def _start_polling(self):
        import pyglet
        pyglet.clock.schedule_interval(self.poll, POLL_INTERVAL)
        self._polling = True

    def _stop_polling(self):
        if not self._polling:
            return
        import pyglet
        pyglet.clock.unschedule(self.poll)
        self._polling = False

    def _on_halt(self):
        if self._finished:
            return
        self._finished = True
        self._stop_polling()
        logger.info(
            f"Session ended ({self.data_collector.get_row_count()} rows recorded, "
            f"{self.timeline.trial_index} trials run)"
        )

    def run(self):
        """
        Start the session and block in the pyglet event loop until it ends.
        """
        import pyglet

        def exit_when_halted(dt):
            if self.timeline.is_halted:
                pyglet.clock.unschedule(exit_when_halted)
                pyglet.app.exit()

        try:
            self.start()
            pyglet.clock.schedule_interval(exit_when_halted, 0.1)
            pyglet.app.run()
        finally:
            self.shutdown()
            self.presenter.close()

    def __repr__(self):
        return (
            f"InteractionClient(participant='{self.session.participant_id}', "
            f"transport={self.transport!r}, timeline={self.timeline!r})"
        )
