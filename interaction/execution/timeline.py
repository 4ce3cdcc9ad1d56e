"""
Timeline engine for the dyadic interaction client.

Runs an ordered, dynamically extensible and suspendable schedule of trial
steps, one leaf at a time.
"""

from collections import deque
from typing import Callable, Deque, Iterator, Optional
import logging
import time

from .step import Leaf, StepDescriptor, StepResult, TrialStep, LeafKind, expand

logger = logging.getLogger(__name__)


def pyglet_defer(func: Callable[[], None], delay: float = 0.0):
    """Schedule ``func`` on the pyglet clock (avoids deep recursion between leaves)."""
    import pyglet
    pyglet.clock.schedule_once(lambda dt: func(), delay)


class Timeline:
    """
    Owned, mutable schedule of trial steps.

    Lifecycle:
    1. __init__: Empty and suspended
    2. append/resume: Driven by instruction handlers
    3. halt: Terminal, nothing runs afterwards

    Only one leaf is ever active. A leaf with ``suspend_after`` set pauses the
    timeline once it completes, unless more top-level steps are already
    waiting, in which case execution carries on with them.
    """

    def __init__(self, presenter, defer: Optional[Callable] = None,
                 on_halt: Optional[Callable[[], None]] = None):
        """
        Initialize timeline.

        Args:
            presenter: PresentationEngine used to run leaves
            defer: defer(func, delay) scheduler (default: pyglet clock)
            on_halt: Called once when the timeline halts
        """
        self.presenter = presenter
        self._defer = defer or pyglet_defer
        self.on_halt = on_halt

        self._schedule: Deque[TrialStep] = deque()
        self._current: Optional[Iterator[Leaf]] = None
        self._active_leaf: Optional[Leaf] = None
        self._active_descriptor: Optional[StepDescriptor] = None
        self._forcing: Optional[StepDescriptor] = None

        self._suspended = True
        self._halted = False

        self.trial_index = 0
        self.start_time: Optional[float] = None

    # ==================== STATE ====================

    @property
    def active_leaf(self) -> Optional[Leaf]:
        return self._active_leaf

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @property
    def is_halted(self) -> bool:
        return self._halted

    def has_pending(self) -> bool:
        """True when top-level steps are queued and not yet started."""
        return bool(self._schedule)

    # ==================== CONTROL ====================

    def append(self, step: TrialStep):
        """
        Add a step to the end of the schedule.

        Args:
            step: Leaf, Sequence or RepeatUntil
        """
        if self._halted:
            logger.warning(f"Timeline halted, ignoring appended step {step!r}")
            return
        self._schedule.append(step)
        logger.debug(f"Appended {step!r} ({len(self._schedule)} pending)")

    def resume(self):
        """Un-suspend execution. No-op unless suspended with work pending."""
        if self._halted or not self._suspended:
            return
        if self._current is None and not self._schedule:
            logger.debug("Resume requested with nothing scheduled")
            return

        self._suspended = False
        if self.start_time is None:
            self.start_time = time.time()
        self._defer(self._advance)

    def halt(self):
        """Stop permanently and drop anything still scheduled or on screen."""
        if self._halted:
            return
        self._halted = True
        self._drop_all()
        logger.info(f"Timeline halted after {self.trial_index} trials")
        if self.on_halt:
            self.on_halt()

    def interrupt(self):
        """
        Abandon the active leaf and everything scheduled, then suspend.

        Unlike force_complete_active, the abandoned leaf's on_finish never
        runs and no result is produced. New steps can be appended afterwards.
        """
        if self._halted:
            return
        if self._active_leaf is not None:
            logger.info(f"Interrupting '{self._active_leaf.name}'")
        self._drop_all()

    def _drop_all(self):
        descriptor = self._active_descriptor
        self._suspended = True
        self._schedule.clear()
        self._current = None
        self._active_leaf = None
        self._active_descriptor = None
        if descriptor is not None:
            # Clear the screen; the callback is ignored as late
            self.presenter.force_complete(descriptor)

    def force_complete_active(self) -> bool:
        """
        End the active leaf as if it had completed with no response.

        Returns:
            True if a leaf was ended
        """
        leaf = self._active_leaf
        descriptor = self._active_descriptor
        if leaf is None:
            return False

        self._forcing = descriptor
        try:
            self.presenter.force_complete(descriptor)
        finally:
            self._forcing = None
        # Presenter should have called back; finish ourselves if it did not
        if self._active_descriptor is descriptor:
            self._finish_leaf(leaf, descriptor, None, None, forced=True)
        return True

    # ==================== EXECUTION ====================

    def _next_leaf(self) -> Optional[Leaf]:
        while True:
            if self._current is None:
                if not self._schedule:
                    return None
                self._current = expand(self._schedule.popleft())
            try:
                return next(self._current)
            except StopIteration:
                self._current = None

    def _advance(self):
        if self._halted or self._suspended or self._active_leaf is not None:
            return

        leaf = self._next_leaf()
        if leaf is None:
            # Ran out of work: wait for the next append/resume
            self._suspended = True
            logger.debug("Timeline idle, suspended")
            return

        self._start_leaf(leaf)

    def _start_leaf(self, leaf: Leaf):
        descriptor = leaf.describe()
        if leaf.on_start:
            leaf.on_start(descriptor)

        self._active_leaf = leaf
        self._active_descriptor = descriptor
        logger.debug(f"Starting {leaf!r} (trial {self.trial_index})")

        if leaf.kind is LeafKind.CALL:
            self._finish_leaf(leaf, descriptor, None, None)
            return

        if leaf.is_wait and self._schedule:
            # Newer work was queued before this wait even started
            logger.info(f"Skipping superseded wait '{leaf.name}'")
            self._finish_leaf(leaf, descriptor, None, None, forced=True)
            return

        self.presenter.run(
            descriptor,
            lambda response, rt: self._finish_leaf(leaf, descriptor, response, rt)
        )

    def _finish_leaf(self, leaf: Leaf, descriptor: StepDescriptor,
                     response: Optional[int], rt: Optional[float], forced: bool = False):
        if descriptor is not self._active_descriptor:
            # Late callback for a leaf that already finished
            return
        forced = forced or descriptor is self._forcing

        elapsed = int(round((time.time() - self.start_time) * 1000)) if self.start_time else 0
        result = StepResult(
            trial_index=self.trial_index,
            time_elapsed=elapsed,
            stimulus=descriptor.stimulus,
            choices=list(descriptor.choices),
            response=response,
            rt=rt,
            data=dict(descriptor.data),
            forced=forced
        )
        self.trial_index += 1
        self._active_leaf = None
        self._active_descriptor = None

        if leaf.on_finish:
            leaf.on_finish(result)

        if self._halted:
            return

        if leaf.suspend_after and not self._schedule:
            self._suspended = True
            logger.debug(f"Suspended after '{leaf.name}', awaiting instructions")
            return

        self._defer(self._advance, leaf.post_gap)

    def __repr__(self):
        state = "halted" if self._halted else ("suspended" if self._suspended else "running")
        return (
            f"Timeline(state={state}, "
            f"pending={len(self._schedule)}, "
            f"trials={self.trial_index})"
        )
