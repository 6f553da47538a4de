"""
In-memory ledger.

Implements the full ``Ledger`` contract without touching disk, so the
credential store and the sync decisions can be exercised quickly in
tests. Remotes are other ``MemoryLedger`` instances looked up by URI in
a registry shared between the instances that should see each other.

Content is not versioned, only paths: a commit records which paths it
added or removed, and each commit keeps the set of tracked paths.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from collections.abc import Sequence
from typing import Optional

from ..errors import (
    FetchError,
    InitializationError,
    InsertionError,
    NotInitialized,
    PushError,
    RemoteError,
)
from .base import CommitRecord, FetchOutcome, Ledger

logger = logging.getLogger("rspass.ledger.memory")


class MemoryLedger(Ledger):
    """Ledger held entirely in memory.

    Args:
        registry: URI -> ledger map used to resolve ``origin``.
        credentials: If set, ``(username, token)`` this ledger demands
            when others fetch from or push to it.
        branch: Name reported in merge messages.
    """

    def __init__(
        self,
        registry: Optional[dict[str, MemoryLedger]] = None,
        credentials: Optional[tuple[str, str]] = None,
        branch: str = "master",
    ) -> None:
        self.registry = registry if registry is not None else {}
        self.credentials = credentials
        self.branch = branch
        self._initialized = False
        self._commits: dict[str, CommitRecord] = {}
        self._trees: dict[str, frozenset[str]] = {}
        self._tip: Optional[str] = None
        self._index: set[str] = set()
        self._remote: Optional[str] = None

    def init(self) -> None:
        if self._initialized:
            raise InitializationError("failed to initialize repository. Already a repository")
        self._initialized = True

    def open(self) -> None:
        if not self._initialized:
            raise NotInitialized(
                "failed to access repository. Make sure to initialize a valid repository"
            )

    def head(self) -> Optional[str]:
        return self._tip

    @property
    def tracked(self) -> frozenset[str]:
        return frozenset(self._index)

    def commit(
        self,
        additions: Sequence[str] = (),
        removals: Sequence[str] = (),
        message: str = "",
    ) -> CommitRecord:
        self.open()
        index = set(self._index)
        index.update(additions)
        for path in removals:
            if path not in index:
                raise InsertionError(f"Failed to remove {path} from the index: not tracked")
            index.discard(path)
        parents = [self._tip] if self._tip else []
        record = CommitRecord(
            oid=self._new_oid(message),
            message=message,
            parents=parents,
            additions=list(additions),
            removals=list(removals),
        )
        self._record(record, index)
        return record

    def log(self, limit: Optional[int] = None) -> list[CommitRecord]:
        history = []
        oid = self._tip
        while oid is not None and (limit is None or len(history) < limit):
            record = self._commits[oid]
            history.append(record)
            oid = record.parent
        return history

    def add_remote(self, uri: str) -> None:
        self.open()
        if self._remote is not None:
            raise RemoteError("failed to add remote. remote origin already exists")
        self._remote = uri

    def remote_url(self) -> str:
        self.open()
        if self._remote is None:
            raise RemoteError("failed to find remote")
        return self._remote

    def fetch(self, username: str, token: str) -> FetchOutcome:
        remote = self._peer(FetchError, username, token)
        remote_tip = remote._tip
        if remote_tip is None:
            raise FetchError(f"failed to fetch {self.branch} from origin. no such branch")
        self._import(remote)

        local_tip = self._tip
        if local_tip == remote_tip:
            return FetchOutcome.UP_TO_DATE
        if local_tip is None or self._is_ancestor(local_tip, remote_tip):
            self._tip = remote_tip
            self._index = set(self._trees[remote_tip])
            logger.info("Fast-forwarded to %s", remote_tip[:8])
            return FetchOutcome.FAST_FORWARD
        if self._is_ancestor(remote_tip, local_tip):
            return FetchOutcome.LOCAL_AHEAD

        base = self._merge_base(local_tip, remote_tip)
        ours = self._touched(local_tip, base)
        theirs = self._touched(remote_tip, base)
        if ours & theirs:
            logger.warning("Merge conflict on %s", ", ".join(sorted(ours & theirs)))
            return FetchOutcome.MERGE_CONFLICT

        base_tree = self._trees[base] if base else frozenset()
        tree = set(base_tree)
        for side in (local_tip, remote_tip):
            tree |= self._trees[side] - base_tree
            tree -= base_tree - self._trees[side]
        record = CommitRecord(
            oid=self._new_oid("merge"),
            message=f"Merge branch '{self.branch}' of {self._remote}",
            parents=[local_tip, remote_tip],
            additions=sorted(tree - self._trees[local_tip]),
            removals=sorted(self._trees[local_tip] - tree),
        )
        self._record(record, tree)
        return FetchOutcome.MERGED

    def push(self, username: str, token: str) -> None:
        remote = self._peer(PushError, username, token)
        if self._tip is None:
            raise PushError("failed to push to remote. nothing to push")
        if remote._tip is not None and not self._is_ancestor(remote._tip, self._tip):
            raise PushError(
                "failed to push to remote. rejected (non-fast-forward); fetch first"
            )
        remote._import(self)
        remote._tip = self._tip
        remote._index = set(self._trees[self._tip])

    def _peer(self, error: type, username: str, token: str) -> MemoryLedger:
        uri = self.remote_url()
        remote = self.registry.get(uri)
        if remote is None or not remote._initialized:
            raise error(f"repository '{uri}' not found")
        if remote.credentials is not None and remote.credentials != (username, token):
            raise error(f"authentication failed for '{uri}'")
        return remote

    def _new_oid(self, message: str) -> str:
        seed = f"{uuid.uuid4()}\0{message}".encode("utf-8")
        return hashlib.sha1(seed).hexdigest()

    def _record(self, record: CommitRecord, tree: set[str]) -> None:
        self._commits[record.oid] = record
        self._trees[record.oid] = frozenset(tree)
        self._tip = record.oid
        self._index = set(tree)

    def _import(self, other: MemoryLedger) -> None:
        self._commits.update(other._commits)
        self._trees.update(other._trees)

    def _ancestors(self, oid: str) -> set[str]:
        seen: set[str] = set()
        stack = [oid]
        while stack:
            current = stack.pop()
            if current in seen or current not in self._commits:
                continue
            seen.add(current)
            stack.extend(self._commits[current].parents)
        return seen

    def _is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return ancestor in self._ancestors(descendant)

    def _merge_base(self, a: str, b: str) -> Optional[str]:
        ours = self._ancestors(a)
        queue = [b]
        seen: set[str] = set()
        while queue:
            current = queue.pop(0)
            if current in ours:
                return current
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self._commits[current].parents)
        return None

    def _touched(self, tip: str, base: Optional[str]) -> set[str]:
        excluded = self._ancestors(base) if base else set()
        paths: set[str] = set()
        for oid in self._ancestors(tip) - excluded:
            record = self._commits[oid]
            paths.update(record.additions)
            paths.update(record.removals)
        return paths
