"""
Communication with the coordinator.

This module provides the message protocol and the TCP transport used to
exchange it.
"""

from .messages import (
    ResponseType,
    InstructionType,
    InstructionError,
    UnknownInstructionError,
    InvalidInstructionError,
    OutboundMessage,
    InstructionsCompleteMessage,
    DirectorResponseMessage,
    MatcherResponseMessage,
    FinishedFeedbackMessage,
    Instruction,
    EnterWaitingRoom,
    WaitForPartner,
    PairedInstructions,
    PartnerDropout,
    EndExperiment,
    DirectorTurn,
    MatcherTurn,
    Feedback,
    instruction_from_dict,
)

from .transport import CoordinatorClient

__all__ = [
    'ResponseType',
    'InstructionType',
    'InstructionError',
    'UnknownInstructionError',
    'InvalidInstructionError',
    'OutboundMessage',
    'InstructionsCompleteMessage',
    'DirectorResponseMessage',
    'MatcherResponseMessage',
    'FinishedFeedbackMessage',
    'Instruction',
    'EnterWaitingRoom',
    'WaitForPartner',
    'PairedInstructions',
    'PartnerDropout',
    'EndExperiment',
    'DirectorTurn',
    'MatcherTurn',
    'Feedback',
    'instruction_from_dict',
    'CoordinatorClient',
]
