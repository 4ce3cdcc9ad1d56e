"""
Execution module for the dyadic interaction client.

This module contains the core execution architecture:
- Leaf / Sequence / RepeatUntil: Schedulable trial steps
- Timeline: Suspendable, dynamically extended schedule of steps
- WaitGuard: Ends indefinite waits when new work arrives
- ProductionState: Per-turn state of the production-effort loop
"""

from .step import (
    INDEFINITE,
    Leaf,
    LeafKind,
    RepeatUntil,
    Sequence,
    StepDescriptor,
    StepResult,
    TrialStep,
    WaitMarker,
)
from .timeline import Timeline
from .guard import WaitGuard
from .production import ProductionState, make_production_loop

__all__ = [
    'INDEFINITE',
    'Leaf',
    'LeafKind',
    'RepeatUntil',
    'Sequence',
    'StepDescriptor',
    'StepResult',
    'TrialStep',
    'WaitMarker',
    'Timeline',
    'WaitGuard',
    'ProductionState',
    'make_production_loop',
]
