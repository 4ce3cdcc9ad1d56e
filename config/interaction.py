"""
Client configuration: coordinator address, stimuli, timings and screen texts.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional
import json

from interaction.session import random_participant_id


def _default_object_labels() -> Dict[str, List[str]]:
    # Each object has a short label and a long label
    return {
        'object4': ['zop', 'zopekil'],
        'object5': ['zop', 'zopudon'],
    }


def _default_observation_pairs() -> List[Dict]:
    # object4 is three times as frequent as object5; each object appears
    # equally often with its short and long label
    return [
        {'object': 'object4', 'label': 'zopekil', 'repetitions': 6},
        {'object': 'object4', 'label': 'zop', 'repetitions': 6},
        {'object': 'object5', 'label': 'zopudon', 'repetitions': 2},
        {'object': 'object5', 'label': 'zop', 'repetitions': 2},
    ]


def _default_texts() -> Dict[str, str]:
    return {
        'waiting_room': "You are in the waiting room",
        'waiting_for_partner': "Waiting for partner",
        'observation_instructions': "Observation Instructions\n\nInstructions for the observation stage.",
        'enter_waiting_room': (
            "Instructions before entering the waiting room\n\n"
            "Once you continue you will connect to the server and be paired with another participant."
        ),
        'interaction_instructions': "Pre-interaction Instructions\n\nInstructions for the interaction stage.",
        'partner_dropout': (
            "Oh no, something has gone wrong!\n\n"
            "Unfortunately it looks like something has gone wrong - sorry!\n"
            "Continue to progress to the final screen and finish the experiment."
        ),
        'final': (
            "Finished!\n\n"
            "This is a placeholder for the completion information."
        ),
        'correct': "Correct!",
        'incorrect': "Incorrect!",
        'continue': "Continue",
    }


@dataclass
class InteractionConfig:
    """
    Complete client configuration.

    Attributes:
        host: Coordinator hostname
        port: Coordinator port
        participant_id: Fixed participant id (None = random per session)
        output_dir: Directory for di_<participant>.csv files
        image_dir: Directory holding <object>.jpg stimuli
        object_labels: Candidate labels per object, shown to the director
        matcher_objects: Objects offered to the matcher
        observation_pairs: Object/label pairs and repetitions for training
        object_preview_duration: Seconds the object is shown alone (director and observation)
        observation_label_duration: Seconds object + label are shown in observation
        observation_gap: Seconds of blank screen after each observation trial
        feedback_duration: Seconds the feedback text is shown
        run_observation: Run the observation phase before connecting
        fullscreen: Open the presentation window fullscreen
        log_level: Logging level name
        texts: Screen texts keyed by screen
    """
    host: str = "localhost"
    port: int = 9002
    participant_id: Optional[str] = None
    output_dir: str = "data"
    image_dir: str = "images"
    object_labels: Dict[str, List[str]] = field(default_factory=_default_object_labels)
    matcher_objects: List[str] = field(default_factory=lambda: ['object4', 'object5'])
    observation_pairs: List[Dict] = field(default_factory=_default_observation_pairs)
    object_preview_duration: float = 1.0
    observation_label_duration: float = 2.0
    observation_gap: float = 0.5
    feedback_duration: float = 1.5
    run_observation: bool = True
    fullscreen: bool = False
    log_level: str = "INFO"
    texts: Dict[str, str] = field(default_factory=_default_texts)

    def __post_init__(self):
        """Fill in any screen texts a loaded config left out."""
        texts = _default_texts()
        texts.update(self.texts)
        self.texts = texts

    def resolve_participant_id(self) -> str:
        """Configured participant id, or a fresh random one."""
        return self.participant_id or random_participant_id()

    def labels_for(self, target_object: str) -> List[str]:
        """
        Candidate labels for an object.

        Raises:
            KeyError: Object not in the label table
        """
        return list(self.object_labels[target_object])

    def image_path(self, obj: str) -> str:
        return f"{self.image_dir}/{obj}.jpg"

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not (0 < self.port < 65536):
            errors.append(f"Port must be between 1 and 65535, got {self.port}")

        if not self.object_labels:
            errors.append("Object label table is empty")
        for obj, labels in self.object_labels.items():
            if len(labels) != 2:
                errors.append(f"Object '{obj}' must have exactly 2 labels, got {len(labels)}")
            if any(not label for label in labels):
                errors.append(f"Object '{obj}' has an empty label")

        if not self.matcher_objects:
            errors.append("Matcher object set is empty")

        for pair in self.observation_pairs:
            if pair.get('repetitions', 0) < 0:
                errors.append(f"Negative repetitions for observation pair {pair}")

        for name in ('object_preview_duration', 'observation_label_duration', 'feedback_duration'):
            if getattr(self, name) <= 0:
                errors.append(f"{name} must be positive, got {getattr(self, name)}")
        if self.observation_gap < 0:
            errors.append(f"observation_gap must be non-negative, got {self.observation_gap}")

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'InteractionConfig':
        """Create InteractionConfig instance from dictionary."""
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def save(self, filepath: str):
        """
        Save configuration to JSON.

        Args:
            filepath: Path to save JSON file
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'InteractionConfig':
        """
        Load configuration from JSON.

        Args:
            filepath: Path to JSON config file
        """
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))
