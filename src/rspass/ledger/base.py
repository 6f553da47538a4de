"""
Ledger contract -- the version history behind the credential tree.

A ledger owns one repository on a single tracked branch. The credential
store stages every mutation through ``commit``; synchronization
(``fetch`` / ``push``) talks to the ``origin`` remote independently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FetchOutcome(str, Enum):
    """What a fetch did to the local branch."""

    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    LOCAL_AHEAD = "local_ahead"
    MERGED = "merged"
    MERGE_CONFLICT = "merge_conflict"


class CommitRecord(BaseModel):
    """One snapshot in the ledger.

    Attributes:
        oid: Commit id.
        message: Commit message.
        parents: Parent ids; empty for the root commit, two for a merge.
        additions: Paths added or modified by the commit.
        removals: Paths removed by the commit.
    """

    oid: str
    message: str
    parents: list[str] = Field(default_factory=list)
    additions: list[str] = Field(default_factory=list)
    removals: list[str] = Field(default_factory=list)

    @property
    def parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


class Ledger(ABC):
    """Abstract version-control capability used by the credential store."""

    @abstractmethod
    def init(self) -> None:
        """Create a new repository.

        Raises:
            InitializationError: If the path is invalid or already a repository.
        """

    @abstractmethod
    def open(self) -> None:
        """Check that the repository exists.

        Raises:
            NotInitialized: If there is no valid repository.
        """

    @abstractmethod
    def head(self) -> Optional[str]:
        """Current branch tip, or None before the first commit."""

    @abstractmethod
    def commit(
        self,
        additions: Sequence[str] = (),
        removals: Sequence[str] = (),
        message: str = "",
    ) -> CommitRecord:
        """Stage paths and record one commit on top of the current tip.

        Raises:
            InsertionError: If a path cannot be staged.
        """

    @abstractmethod
    def log(self, limit: Optional[int] = None) -> list[CommitRecord]:
        """History of the current branch, newest first."""

    @abstractmethod
    def add_remote(self, uri: str) -> None:
        """Register the ``origin`` remote.

        Raises:
            RemoteError: If ``origin`` already exists.
        """

    @abstractmethod
    def remote_url(self) -> str:
        """URL of ``origin``.

        Raises:
            RemoteError: If no ``origin`` is registered.
        """

    @abstractmethod
    def fetch(self, username: str, token: str) -> FetchOutcome:
        """Fetch the tracked branch from ``origin`` and integrate it.

        Raises:
            FetchError: On transport failure.
        """

    @abstractmethod
    def push(self, username: str, token: str) -> None:
        """Push the tracked branch to ``origin``.

        Raises:
            PushError: If the remote rejects the push.
        """
