"""
Production-effort sub-loop.

After choosing a label, the director has to click the chosen label once per
character before it is sent to the partner, so longer labels cost more effort.
"""

from dataclasses import dataclass
from typing import Optional

from .step import Leaf, LeafKind, RepeatUntil, StepDescriptor, StepResult


@dataclass
class ProductionState:
    """
    In-trial state shared by the steps of one director turn.

    A new instance is allocated for every director turn; it must never be
    reused across trials.
    """
    selected_label: Optional[str] = None
    required_repetitions: Optional[int] = None
    completed_repetitions: int = 0

    def select(self, label: str):
        """Record the chosen label and reset the click counters."""
        self.selected_label = label
        self.required_repetitions = len(label)
        self.completed_repetitions = 0

    def record_repetition(self):
        self.completed_repetitions += 1

    def needs_more(self) -> bool:
        if self.required_repetitions is None:
            return False
        return self.completed_repetitions < self.required_repetitions


def click_prompt(state: ProductionState) -> str:
    return f"Click {state.required_repetitions} times to send!"


def make_production_loop(state: ProductionState, stimulus: str,
                         kind: LeafKind = LeafKind.IMAGE) -> RepeatUntil:
    """
    Build the loop that asks for one click per character of the selected label.

    Args:
        state: ProductionState of the current director turn
        stimulus: Stimulus kept on screen while clicking (the target object)
        kind: Leaf kind for the click leaf

    Returns:
        RepeatUntil wrapping a single-click confirmation leaf
    """
    def on_start(descriptor: StepDescriptor):
        if state.selected_label is None:
            raise RuntimeError("Production loop started before a label was selected")
        descriptor.choices = [state.selected_label]
        descriptor.prompt = click_prompt(state)

    def on_finish(result: StepResult):
        state.record_repetition()

    click = Leaf(
        name="production_click",
        kind=kind,
        stimulus=stimulus,
        on_start=on_start,
        on_finish=on_finish
    )
    return RepeatUntil(click, state.needs_more, name="production_effort")
