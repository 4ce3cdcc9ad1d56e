"""
DataCollector class for the dyadic interaction client.

Appends one CSV row per scoring-relevant trial to a per-participant file.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging
import os

import pandas as pd

from .execution.step import StepResult

logger = logging.getLogger(__name__)

COLUMNS = [
    'participant_id',
    'trial_index',
    'trial_type',
    'time_elapsed',
    'partner_id',
    'stimulus',
    'observation_label',
    'button1',
    'button2',
    'button_selected',
    'rt',
]


def row_from_result(participant_id: str, result: StepResult, trial_type: str,
                    partner_id: Optional[str] = None,
                    observation_label: Optional[str] = None) -> List[Any]:
    """
    Flatten a step result into a row aligned with COLUMNS.

    Args:
        participant_id: Local participant id
        result: Completed step result
        trial_type: 'observation', 'director' or 'matcher'
        partner_id: Partner id (None outside the interaction phase)
        observation_label: Label shown during an observation trial

    Returns:
        List of field values, one per column
    """
    # The displayed choice order fills the two button columns
    buttons = list(result.choices[:2]) + [None] * (2 - len(result.choices[:2]))
    return [
        participant_id,
        result.trial_index,
        trial_type,
        result.time_elapsed,
        partner_id,
        result.stimulus,
        observation_label,
        buttons[0],
        buttons[1],
        result.selected_choice,
        result.rt,
    ]


class DataCollector:
    """
    Manages data output for one participant.

    Responsibilities:
    - Write the header row once at session start
    - Append one row per recorded trial (fire-and-forget)
    - Keep an in-memory copy of all rows
    """

    def __init__(self, output_dir: str = "data", participant_id: str = "unknown",
                 enabled: bool = True):
        """
        Initialize data collector.

        Args:
            output_dir: Directory to save data files
            participant_id: Participant id used in the filename
            enabled: False to keep rows in memory only
        """
        self.output_dir = output_dir
        self.participant_id = participant_id
        self.data_saving_enabled = enabled
        self.rows: List[Dict[str, Any]] = []

        if self.data_saving_enabled:
            os.makedirs(output_dir, exist_ok=True)

        logger.info(f"DataCollector initialized (output: {self.get_output_filename()})")

    def get_output_filename(self) -> str:
        """Full path of this participant's data file."""
        return os.path.join(self.output_dir, f"di_{self.participant_id}.csv")

    def write_header(self):
        """Write the header row. An existing file is kept and appended to."""
        if not self.data_saving_enabled:
            return
        if os.path.exists(self.get_output_filename()):
            logger.warning(f"{self.get_output_filename()} already exists, appending to it")
            return
        try:
            pd.DataFrame(columns=COLUMNS).to_csv(self.get_output_filename(), index=False)
        except OSError as e:
            logger.warning(f"Could not write header to {self.get_output_filename()}: {e}")

    def append_row(self, fields: Sequence[Any]):
        """
        Append one row positionally aligned with COLUMNS.

        Write failures are logged and otherwise ignored.

        Args:
            fields: Field values in column order
        """
        if len(fields) != len(COLUMNS):
            raise ValueError(f"Expected {len(COLUMNS)} fields, got {len(fields)}")

        record = dict(zip(COLUMNS, fields))
        self.rows.append(record)

        if not self.data_saving_enabled:
            return
        try:
            pd.DataFrame([record], columns=COLUMNS).to_csv(
                self.get_output_filename(), mode='a', header=False, index=False
            )
        except OSError as e:
            logger.warning(f"Dropped data row for trial {record['trial_index']}: {e}")

    def record(self, result: StepResult, trial_type: str, partner_id: Optional[str] = None,
               observation_label: Optional[str] = None):
        """Append the row for a completed step."""
        self.append_row(row_from_result(
            self.participant_id, result, trial_type,
            partner_id=partner_id, observation_label=observation_label
        ))

    def get_row_count(self) -> int:
        return len(self.rows)

    def __repr__(self):
        return (
            f"DataCollector("
            f"participant='{self.participant_id}', "
            f"rows={len(self.rows)})"
        )
