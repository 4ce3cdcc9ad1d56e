"""
Presentation engine interface.

The timeline never draws anything itself; it hands a StepDescriptor to a
presentation engine and is called back when the participant responds or the
step's duration runs out.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence
import random

from ..execution.step import StepDescriptor

# on_complete(response_index_or_None, rt_ms_or_None)
CompletionCallback = Callable[[Optional[int], Optional[float]], None]


class PresentationEngine(ABC):
    """
    Abstract base class for presentation engines.

    Subclasses:
    - PygletPresenter: Draws steps in a pyglet window
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    @abstractmethod
    def run(self, descriptor: StepDescriptor, on_complete: CompletionCallback) -> None:
        """
        Present a step (non-blocking, callback-based).

        Args:
            descriptor: What to show
            on_complete: Called exactly once with (response, rt_ms) when the
                step ends. Both are None when the step timed out or was forced.
        """
        pass

    @abstractmethod
    def force_complete(self, descriptor: StepDescriptor) -> None:
        """
        End the presentation of ``descriptor`` immediately.

        Must invoke the pending on_complete callback with (None, None).
        Does nothing if ``descriptor`` is not the step being shown.
        """
        pass

    def shuffle(self, sequence: Sequence[str]) -> List[str]:
        """Return a shuffled copy of ``sequence``."""
        items = list(sequence)
        self._rng.shuffle(items)
        return items

    def close(self):
        """Release windows or other display resources."""
        pass
