"""
Observation (training) phase and the intro timeline that precedes the
interaction loop.

Each observation trial shows an object on its own, then the object together
with one of its labels. Only the second part is recorded.
"""

from typing import Callable, List
import logging

from .data_collector import DataCollector
from .execution.step import Leaf, LeafKind, Sequence, StepResult, TrialStep

logger = logging.getLogger(__name__)


def make_observation_trial(config, obj: str, label: str, data_collector: DataCollector) -> Sequence:
    """
    Build one observation trial.

    Args:
        config: InteractionConfig
        obj: Object name (image file stem)
        label: Label paired with the object
        data_collector: Recorder for the labelled part

    Returns:
        Sequence of the object-only and object-plus-label leaves
    """
    object_filename = config.image_path(obj)

    def on_finish(result: StepResult):
        data_collector.record(result, 'observation', observation_label=label)

    return Sequence([
        Leaf(
            name="observation_object",
            kind=LeafKind.IMAGE,
            stimulus=object_filename,
            response_ends_trial=False,
            duration=config.object_preview_duration
        ),
        Leaf(
            name="observation_label",
            kind=LeafKind.IMAGE,
            stimulus=object_filename,
            prompt=label,
            response_ends_trial=False,
            duration=config.observation_label_duration,
            post_gap=config.observation_gap,
            data={'observation_label': label},
            on_finish=on_finish
        ),
    ], name=f"observation_{obj}_{label}")


def make_observation_trials(config, data_collector: DataCollector,
                            shuffle: Callable[[List], List]) -> List[TrialStep]:
    """
    Repeat every configured object/label pair and shuffle the result.

    Args:
        config: InteractionConfig with observation_pairs
        data_collector: Recorder for observation rows
        shuffle: Shuffle function (usually the presenter's)
    """
    trials = []
    for pair in config.observation_pairs:
        for _ in range(pair['repetitions']):
            trials.append(make_observation_trial(config, pair['object'], pair['label'], data_collector))
    return shuffle(trials)


def make_intro_timeline(config, data_collector: DataCollector, shuffle: Callable[[List], List],
                        start_interaction: Callable[[], None]) -> Sequence:
    """
    Everything that runs before the coordinator takes over.

    Args:
        config: InteractionConfig
        data_collector: Recorder (its header row is written first)
        shuffle: Shuffle function for the observation trials
        start_interaction: Connects to the coordinator; runs as the last step

    Returns:
        Sequence ending in a suspending call leaf
    """
    continue_choice = [config.texts['continue']]
    steps: List[TrialStep] = [
        Leaf(name="write_headers", kind=LeafKind.CALL,
             on_finish=lambda result: data_collector.write_header()),
    ]

    if config.run_observation:
        steps.append(Leaf(
            name="observation_instructions",
            stimulus=config.texts['observation_instructions'],
            choices=continue_choice
        ))
        steps.extend(make_observation_trials(config, data_collector, shuffle))
    else:
        logger.info("Observation phase disabled")

    steps.append(Leaf(
        name="enter_waiting_room_instructions",
        stimulus=config.texts['enter_waiting_room'],
        choices=continue_choice
    ))
    steps.append(Leaf(
        name="start_interaction_loop",
        kind=LeafKind.CALL,
        on_finish=lambda result: start_interaction(),
        suspend_after=True
    ))
    return Sequence(steps, name="intro")
