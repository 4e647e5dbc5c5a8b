"""Live merge previews for git branches."""

from .controller import SelectionController, initial_selection
from .floor import MERGE_STATUS_FLOOR_SECONDS, run_with_floor
from .models import (
    AheadBehind,
    BranchRef,
    Clean,
    Conflicted,
    Loading,
    MergePreviewResult,
    MergeResultKind,
    Repository,
    SelectionState,
    Unknown,
)
from .resolver import MergeStatusResolver, ResultSink

__version__ = "0.1.0"

__all__ = [
    "AheadBehind",
    "BranchRef",
    "Clean",
    "Conflicted",
    "initial_selection",
    "Loading",
    "MERGE_STATUS_FLOOR_SECONDS",
    "MergePreviewResult",
    "MergeResultKind",
    "MergeStatusResolver",
    "Repository",
    "ResultSink",
    "run_with_floor",
    "SelectionController",
    "SelectionState",
    "Unknown",
]
