"""
Wait-state guard.

Indefinite-wait leaves ("waiting room", "waiting for partner") have no way to
end on their own. Every instruction handler that may arrive during such a
wait calls the guard first to release the participant.
"""

import logging

from .timeline import Timeline

logger = logging.getLogger(__name__)


class WaitGuard:
    """Ends the active leaf if, and only if, it is an indefinite wait."""

    def __init__(self, timeline: Timeline):
        self.timeline = timeline

    def is_waiting(self) -> bool:
        leaf = self.timeline.active_leaf
        return leaf is not None and leaf.is_wait

    def force_end_if_waiting(self) -> bool:
        """
        Force-complete the active wait leaf.

        Returns:
            True if a wait was ended, False if nothing was waiting
        """
        if not self.is_waiting():
            return False

        leaf = self.timeline.active_leaf
        logger.info(f"Ending wait '{leaf.wait_marker.value}'")
        return self.timeline.force_complete_active()
