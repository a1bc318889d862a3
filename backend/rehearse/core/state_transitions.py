"""
State transition management for the recording flow.

Pure functions describing which steps a practice attempt may move between.
The recording flow controller consults them before every transition.
"""

from enum import Enum
from typing import Dict, List


class RecordingStep(Enum):
    SELECTING = "selecting"
    RECORDING = "recording"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"
    COMPLETE = "complete"
    ERROR = "error"


def allowed_transitions() -> Dict[RecordingStep, List[RecordingStep]]:
    """Return the allowed transitions graph for recording steps."""
    return {
        RecordingStep.SELECTING: [RecordingStep.SELECTING, RecordingStep.RECORDING, RecordingStep.ERROR],
        RecordingStep.RECORDING: [RecordingStep.REVIEWING, RecordingStep.ERROR, RecordingStep.SELECTING],
        # re-record discards the buffer and goes back to recording
        RecordingStep.REVIEWING: [
            RecordingStep.RECORDING,
            RecordingStep.SUBMITTING,
            RecordingStep.ERROR,
            RecordingStep.SELECTING,
        ],
        RecordingStep.SUBMITTING: [RecordingStep.COMPLETE, RecordingStep.REVIEWING],
        RecordingStep.COMPLETE: [RecordingStep.SELECTING],
        RecordingStep.ERROR: [RecordingStep.RECORDING, RecordingStep.ERROR, RecordingStep.SELECTING],
    }


def initial_step() -> RecordingStep:
    """Initial step for a new practice attempt."""
    return RecordingStep.SELECTING


def is_terminal(step: RecordingStep) -> bool:
    """A completed attempt only leaves via an explicit reset."""
    return step == RecordingStep.COMPLETE
