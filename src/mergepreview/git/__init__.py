"""Git collaborators for merge previews."""

from .branches import BranchListing, list_branches
from .gateway import GitGateway, MergePreviewGateway
from .operations import get_ahead_behind, merge_branch, merge_tree, rev_symmetric_difference
from .runner import AsyncRunner, run_subprocess

__all__ = [
    "AsyncRunner",
    "BranchListing",
    "get_ahead_behind",
    "GitGateway",
    "list_branches",
    "merge_branch",
    "merge_tree",
    "MergePreviewGateway",
    "rev_symmetric_difference",
    "run_subprocess",
]
