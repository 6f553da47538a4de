"""
Ledger -- version history for the credential tree.

GitLedger drives a real repository through the git CLI; MemoryLedger
implements the same contract in memory for tests.
"""

from .base import CommitRecord, FetchOutcome, Ledger
from .git import GitLedger
from .memory import MemoryLedger

__all__ = ["CommitRecord", "FetchOutcome", "GitLedger", "Ledger", "MemoryLedger"]
