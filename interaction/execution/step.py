"""
Trial step classes for the dyadic interaction client.

A trial step is either a Leaf (one stimulus/response cycle), a Sequence of
steps, or a RepeatUntil loop whose length is decided while it runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union


class LeafKind(Enum):
    """How a leaf is presented."""
    HTML = "html"      # Text stimulus with buttons
    IMAGE = "image"    # Image stimulus with buttons
    CALL = "call"      # Nothing shown, only runs its callbacks


class WaitMarker(Enum):
    """Tags for leaves that wait indefinitely for the coordinator."""
    WAITING_ROOM = "waiting_room"
    WAITING_FOR_PARTNER = "waiting_for_partner"


class _Indefinite:
    """Sentinel duration for leaves that never end on their own."""

    def __repr__(self):
        return "INDEFINITE"


INDEFINITE = _Indefinite()

Duration = Union[float, _Indefinite, None]


@dataclass
class StepDescriptor:
    """
    What the presentation engine is asked to show for one presentation of a leaf.

    A fresh descriptor is built every time a leaf starts, so ``on_start``
    callbacks can change the choices without touching the leaf itself.
    """
    name: str
    kind: LeafKind
    stimulus: Optional[str] = None
    prompt: str = ""
    choices: List[str] = field(default_factory=list)
    duration: Duration = None
    response_ends_trial: bool = True
    hidden_choices: bool = False
    choice_images: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_indefinite(self) -> bool:
        return self.duration is INDEFINITE


@dataclass
class StepResult:
    """Outcome of one completed leaf."""
    trial_index: int
    time_elapsed: int
    stimulus: Optional[str]
    choices: List[str]
    response: Optional[int] = None
    rt: Optional[float] = None
    data: Dict[str, Any] = field(default_factory=dict)
    forced: bool = False

    @property
    def selected_choice(self) -> Optional[str]:
        """Choice label of the button pressed, or None when nothing was pressed."""
        if self.response is None:
            return None
        return self.choices[self.response]


class TrialStep:
    """Base class for everything the timeline can schedule."""

    name: str = "step"


class Leaf(TrialStep):
    """
    Atomic schedulable unit: a single stimulus/response cycle.

    Example:
        Leaf(
            name="feedback",
            stimulus="Correct!",
            duration=1.5,
            on_finish=lambda result: transport.send(FinishedFeedbackMessage()),
            suspend_after=True,
        )

    ``on_start(descriptor)`` runs right before presentation and may mutate the
    descriptor. ``on_finish(result)`` runs synchronously when the leaf
    completes, before the timeline decides whether to suspend.
    """

    def __init__(
        self,
        name: str,
        kind: LeafKind = LeafKind.HTML,
        stimulus: Optional[str] = None,
        prompt: str = "",
        choices: Optional[List[str]] = None,
        duration: Duration = None,
        response_ends_trial: bool = True,
        hidden_choices: bool = False,
        choice_images: bool = False,
        wait_marker: Optional[WaitMarker] = None,
        post_gap: float = 0.0,
        data: Optional[Dict[str, Any]] = None,
        on_start: Optional[Callable[[StepDescriptor], None]] = None,
        on_finish: Optional[Callable[[StepResult], None]] = None,
        suspend_after: bool = False
    ):
        if wait_marker is not None and duration is not INDEFINITE:
            raise ValueError(f"Wait leaf '{name}' must have an indefinite duration")

        self.name = name
        self.kind = kind
        self.stimulus = stimulus
        self.prompt = prompt
        self.choices = list(choices) if choices else []
        self.duration = duration
        self.response_ends_trial = response_ends_trial
        self.hidden_choices = hidden_choices
        self.choice_images = choice_images
        self.wait_marker = wait_marker
        self.post_gap = post_gap
        self.data = dict(data) if data else {}
        self.on_start = on_start
        self.on_finish = on_finish
        self.suspend_after = suspend_after

    @property
    def is_wait(self) -> bool:
        return self.wait_marker is not None

    def describe(self) -> StepDescriptor:
        """Build a fresh descriptor for one presentation of this leaf."""
        return StepDescriptor(
            name=self.name,
            kind=self.kind,
            stimulus=self.stimulus,
            prompt=self.prompt,
            choices=list(self.choices),
            duration=self.duration,
            response_ends_trial=self.response_ends_trial,
            hidden_choices=self.hidden_choices,
            choice_images=self.choice_images,
            data=dict(self.data)
        )

    def __repr__(self):
        marker = f", wait={self.wait_marker.value}" if self.wait_marker else ""
        return f"Leaf(name='{self.name}', kind={self.kind.value}{marker})"


class Sequence(TrialStep):
    """Ordered list of steps, expanded depth-first."""

    def __init__(self, steps: List[TrialStep], name: str = "sequence"):
        self.name = name
        self.steps = list(steps)

    def __repr__(self):
        return f"Sequence(name='{self.name}', steps={len(self.steps)})"


class RepeatUntil(TrialStep):
    """
    Runs ``body`` and re-evaluates ``predicate`` after every completion.

    The body always runs at least once; looping continues while the
    predicate returns True.
    """

    def __init__(self, body: TrialStep, predicate: Callable[[], bool], name: str = "loop"):
        self.name = name
        self.body = body
        self.predicate = predicate

    def __repr__(self):
        return f"RepeatUntil(name='{self.name}', body={self.body!r})"


def expand(step: TrialStep):
    """
    Lazily yield the leaves of ``step`` in execution order.

    Laziness matters: a RepeatUntil predicate is only evaluated once the
    caller asks for the leaf after the body's last leaf, i.e. after that
    leaf has completed.
    """
    if isinstance(step, Leaf):
        yield step
    elif isinstance(step, Sequence):
        for child in step.steps:
            yield from expand(child)
    elif isinstance(step, RepeatUntil):
        while True:
            yield from expand(step.body)
            if not step.predicate():
                break
    else:
        raise TypeError(f"Unknown trial step type: {type(step).__name__}")
