"""
Message protocol for talking to the coordinator.

Defines the outbound responses this client sends and the eight inbound
instructions the coordinator can push.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Type


class ResponseType(Enum):
    """Outbound message types (client → coordinator)."""
    INTERACTION_INSTRUCTIONS_COMPLETE = "INTERACTION_INSTRUCTIONS_COMPLETE"
    RESPONSE = "RESPONSE"
    FINISHED_FEEDBACK = "FINISHED_FEEDBACK"


class InstructionType(Enum):
    """Inbound instruction tags (coordinator → client)."""
    ENTER_WAITING_ROOM = "EnterWaitingRoom"
    WAIT_FOR_PARTNER = "WaitForPartner"
    PAIRED_INSTRUCTIONS = "PairedInstructions"
    PARTNER_DROPOUT = "PartnerDropout"
    END_EXPERIMENT = "EndExperiment"
    DIRECTOR_TURN = "DirectorTurn"
    MATCHER_TURN = "MatcherTurn"
    FEEDBACK = "Feedback"


class InstructionError(ValueError):
    """Base exception for inbound instructions the client cannot act on."""


class UnknownInstructionError(InstructionError):
    """Raised when an instruction tag is not one of the eight known tags."""


class InvalidInstructionError(InstructionError):
    """Raised when a known instruction is missing fields or has bad values."""


# ==================== OUTBOUND ====================

@dataclass
class OutboundMessage:
    """
    Base for messages sent to the coordinator.

    Subclasses only declare the fields they carry; ``response_type`` is
    added on serialization.
    """
    response_type = None  # type: ResponseType

    def to_dict(self) -> Dict[str, Any]:
        """Serialize message to dictionary."""
        message = {'response_type': self.response_type.value}
        message.update(asdict(self))
        return message


@dataclass
class InstructionsCompleteMessage(OutboundMessage):
    """Sent once the participant has read the pre-interaction instructions."""
    response_type = ResponseType.INTERACTION_INSTRUCTIONS_COMPLETE


@dataclass
class DirectorResponseMessage(OutboundMessage):
    """Label chosen by the director for ``target_object``."""
    participant: str
    partner: str
    target_object: str
    response: str
    role: str = "Director"
    response_type = ResponseType.RESPONSE


@dataclass
class MatcherResponseMessage(OutboundMessage):
    """Object chosen by the matcher for the director's label."""
    participant: str
    partner: str
    director_label: str
    response: str
    role: str = "Matcher"
    response_type = ResponseType.RESPONSE


@dataclass
class FinishedFeedbackMessage(OutboundMessage):
    """Sent once the feedback screen has been shown."""
    response_type = ResponseType.FINISHED_FEEDBACK


# ==================== INBOUND ====================

@dataclass
class Instruction:
    """Base for instructions pushed by the coordinator."""
    instruction_type = None  # type: InstructionType

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Instruction':
        """Build the instruction from its decoded payload."""
        return cls()


@dataclass
class EnterWaitingRoom(Instruction):
    instruction_type = InstructionType.ENTER_WAITING_ROOM


@dataclass
class WaitForPartner(Instruction):
    instruction_type = InstructionType.WAIT_FOR_PARTNER


@dataclass
class PairedInstructions(Instruction):
    instruction_type = InstructionType.PAIRED_INSTRUCTIONS


@dataclass
class PartnerDropout(Instruction):
    instruction_type = InstructionType.PARTNER_DROPOUT


@dataclass
class EndExperiment(Instruction):
    instruction_type = InstructionType.END_EXPERIMENT


@dataclass
class DirectorTurn(Instruction):
    target_object: str
    partner_id: str
    instruction_type = InstructionType.DIRECTOR_TURN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DirectorTurn':
        return cls(
            target_object=_require_str(data, 'target_object'),
            partner_id=_require_str(data, 'partner_id')
        )


@dataclass
class MatcherTurn(Instruction):
    label: str
    partner_id: str
    instruction_type = InstructionType.MATCHER_TURN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatcherTurn':
        return cls(
            label=_require_str(data, 'label'),
            partner_id=_require_str(data, 'partner_id')
        )


@dataclass
class Feedback(Instruction):
    score: int
    instruction_type = InstructionType.FEEDBACK

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Feedback':
        score = data.get('score')
        # JSON may deliver the score as "1" or 1.0, but never as true/1.5
        if isinstance(score, str) and score.strip() in ("0", "1"):
            return cls(score=int(score))
        if isinstance(score, (int, float)) and not isinstance(score, bool) and score in (0, 1):
            return cls(score=int(score))
        raise InvalidInstructionError(f"Feedback score must be 0 or 1, got {score!r}")


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or value == "":
        raise InvalidInstructionError(
            f"Instruction '{data.get('command_type')}' is missing '{key}' (got {value!r})"
        )
    return value


# Instruction registry for deserialization
INSTRUCTION_TYPES: Dict[str, Type[Instruction]] = {
    cls.instruction_type.value: cls
    for cls in (
        EnterWaitingRoom,
        WaitForPartner,
        PairedInstructions,
        PartnerDropout,
        EndExperiment,
        DirectorTurn,
        MatcherTurn,
        Feedback,
    )
}


def instruction_from_dict(data: Dict[str, Any]) -> Instruction:
    """
    Create instruction instance from a decoded coordinator message.

    Args:
        data: Dictionary with 'command_type' key and instruction payload

    Returns:
        Instruction instance

    Raises:
        UnknownInstructionError: Tag missing or not recognized
        InvalidInstructionError: Payload incomplete or out of range
    """
    if not isinstance(data, dict):
        raise InvalidInstructionError(f"Instruction must be an object, got {type(data).__name__}")

    command_type = data.get('command_type')
    if not isinstance(command_type, str) or command_type not in INSTRUCTION_TYPES:
        raise UnknownInstructionError(f"Unknown instruction type: {command_type!r}")

    return INSTRUCTION_TYPES[command_type].from_dict(data)
