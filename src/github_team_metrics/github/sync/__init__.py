"""Sync module - GitHub organization activity to database.

- SyncOrchestrator: single-flight, phase-ordered sync of actors,
  repositories, pull requests (with reviews, comments, commits) and commits
- SyncOptions / SyncResult: run inputs and outcome
- CommitManager: commit boundaries so a crash loses at most one batch
"""

from .commit_manager import CommitManager
from .enums import OutputFormat
from .orchestrator import SyncOrchestrator
from .results import BUSY_MESSAGE, SyncOptions, SyncResult

__all__ = [
    "BUSY_MESSAGE",
    "CommitManager",
    "OutputFormat",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncResult",
]
