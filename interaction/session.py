"""
Session state for one participant.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging
import random
import string

logger = logging.getLogger(__name__)


class Role(Enum):
    NONE = "None"
    DIRECTOR = "Director"
    MATCHER = "Matcher"


def random_participant_id(length: int = 10, rng: Optional[random.Random] = None) -> str:
    """Random alphanumeric id, one per client session."""
    rng = rng or random.SystemRandom()
    alphabet = string.ascii_lowercase + string.digits
    return "".join(rng.choice(alphabet) for _ in range(length))


@dataclass
class Session:
    """
    Identifiers and role of the local participant.

    Attributes:
        participant_id: Opaque id of this participant
        partner_id: Id of the paired partner (None until the first turn)
        role: Role in the current turn
    """
    participant_id: str
    partner_id: Optional[str] = None
    role: Role = Role.NONE

    def begin_turn(self, role: Role, partner_id: str):
        """Set role and partner for the turn that is about to run."""
        if self.partner_id is not None and partner_id != self.partner_id:
            logger.info(f"Partner changed from {self.partner_id} to {partner_id}")
        self.role = role
        self.partner_id = partner_id

    def end_turn(self):
        self.role = Role.NONE
