"""Version-control port and its git implementation."""

from .git import GitCommandPort
from .port import ChangeQuery, VersionControlError, VersionControlPort, WorkingTreeDirtyError

__all__ = [
    "ChangeQuery",
    "GitCommandPort",
    "VersionControlError",
    "VersionControlPort",
    "WorkingTreeDirtyError",
]
