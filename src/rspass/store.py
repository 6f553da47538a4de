"""
Credential store -- named secrets as ciphertext files in the ledger tree.

Every mutation is one unit: write the file (temp file + rename, so a
shorter payload never leaves stale bytes behind), then record exactly
one commit. If the commit fails the filesystem change is undone before
the error propagates, so the tree and the history never disagree.

Commit messages:
    add "<name>"
    update "<name>"
    remove "<name>"
    move <target> to <destination>
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path, PurePosixPath
from typing import Optional

from .credential import Credential, MetadataChanges, MetadataInput, pairs
from .errors import (
    AlreadyExists,
    InsertionError,
    InternalError,
    NotFound,
    PermissionDenied,
    RspassError,
)
from .keys import KeyManager
from .ledger.base import CommitRecord, Ledger

logger = logging.getLogger("rspass.store")

# git reads these as repository configuration
RESERVED_NAMES = {".git", ".gitignore", ".gitattributes", ".gitmodules"}


class CredentialStore:
    """Maps credential names to encrypted files and commits every change.

    Args:
        root: Repository root holding the credential tree.
        keys: Key manager used to seal and unseal payloads.
        ledger: Ledger that records one commit per mutation.
    """

    def __init__(self, root: Path, keys: KeyManager, ledger: Ledger) -> None:
        self.root = Path(root)
        self.keys = keys
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _resolve(self, name: str, error: type[RspassError] = NotFound) -> Path:
        """Map a credential name to its file, rejecting unsafe names."""
        pure = PurePosixPath(name)
        if (
            not name
            or name.endswith("/")
            or "\\" in name
            or pure.is_absolute()
            or any(part in ("", ".", "..") for part in name.split("/"))
            or any(part in RESERVED_NAMES for part in pure.parts)
        ):
            raise error(f"invalid credential name {name!r}")
        return self.root.joinpath(*pure.parts)

    def _make_parents(self, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            raise PermissionDenied(
                "You don't have permission to create a subdirectory"
            ) from exc
        except (FileExistsError, NotADirectoryError) as exc:
            raise AlreadyExists(
                f"A credential already exists at {path.parent.relative_to(self.root)}"
            ) from exc
        except OSError as exc:
            raise InternalError(f"Failed to create {path.parent}: {exc}") from exc

    def _prune_empty_parents(self, path: Path) -> None:
        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def _read(self, name: str) -> tuple[Path, bytes]:
        path = self._resolve(name)
        if not path.is_file():
            raise NotFound(f"no credential found for {name!r}")
        try:
            return path, path.read_bytes()
        except PermissionError as exc:
            raise PermissionDenied(f"You don't have permission to read {name!r}") from exc
        except OSError as exc:
            raise InternalError(f"Failed to read {name!r}: {exc}") from exc

    def _write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to ``path`` atomically via a temp sibling."""
        try:
            fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        except PermissionError as exc:
            raise PermissionDenied(
                "You don't have permission to edit the repository"
            ) from exc
        except OSError as exc:
            raise InternalError(f"Failed to write credential: {exc}") from exc
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise InternalError(f"Failed to write credential: {exc}") from exc

    def _commit_or_revert(
        self,
        additions: Sequence[str],
        removals: Sequence[str],
        message: str,
        revert: Callable[[], None],
    ) -> CommitRecord:
        try:
            return self.ledger.commit(additions, removals, message)
        except RspassError:
            logger.warning("Commit failed, reverting filesystem change: %s", message)
            revert()
            raise

    def _seal(self, credential: Credential) -> bytes:
        public_key = self.keys.load_public_key()
        return self.keys.encrypt(credential.to_payload(), public_key)

    def _unseal(self, data: bytes, passphrase: str) -> str:
        private_key = self.keys.load_private_key()
        return self.keys.decrypt(data, passphrase, private_key)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        try:
            return self._resolve(name).is_file()
        except NotFound:
            return False

    def list_entries(self, prefix: Optional[str] = None) -> list[str]:
        """List credential names, optionally under a directory prefix."""
        base = self.root
        if prefix:
            base = self._resolve(prefix.rstrip("/"))
        if not base.is_dir():
            return []
        names = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = [d for d in dirnames if d not in RESERVED_NAMES]
            for filename in filenames:
                if filename in RESERVED_NAMES:
                    continue
                if filename.startswith(".") and filename.endswith(".tmp"):
                    continue
                rel = Path(dirpath, filename).relative_to(self.root)
                names.append(rel.as_posix())
        return sorted(names)

    def insert(
        self, name: str, secret: str, metadata: MetadataInput = None
    ) -> CommitRecord:
        """Encrypt and store a new credential.

        Args:
            name: Credential name, e.g. ``email/github``.
            secret: The secret (first payload line).
            metadata: Optional key/value pairs.

        Returns:
            The commit recording the addition.

        Raises:
            AlreadyExists: If a credential with this name exists.
            PermissionDenied: If directories or the file cannot be created.
            NotInitialized: If keys or repository are missing.
            EncryptionError: If the payload is too large for the key.
        """
        path = self._resolve(name, InsertionError)
        self.ledger.open()
        if path.exists():
            raise AlreadyExists("A credential already exists with this name")

        credential = Credential(secret=secret, metadata=dict(pairs(metadata)))
        data = self._seal(credential)
        self._make_parents(path)
        self._write(path, data)

        def revert() -> None:
            path.unlink(missing_ok=True)
            self._prune_empty_parents(path)

        record = self._commit_or_revert([name], [], f'add "{name}"', revert)
        logger.info("Inserted credential %s", name)
        return record

    def get(self, name: str, passphrase: str, full: bool = False) -> str:
        """Decrypt a credential.

        Args:
            name: Credential name.
            passphrase: Passphrase for the private key.
            full: Return the whole payload instead of just the secret.

        Raises:
            NotFound: If the credential does not exist.
            DecryptionError: On a wrong passphrase or corrupted file.
        """
        _, data = self._read(name)
        payload = self._unseal(data, passphrase)
        if full:
            return payload
        return Credential.from_payload(payload).secret

    def read(self, name: str, passphrase: str) -> Credential:
        """Decrypt and parse a credential into secret and metadata."""
        _, data = self._read(name)
        return Credential.from_payload(self._unseal(data, passphrase))

    def edit(
        self,
        name: str,
        passphrase: str,
        secret: Optional[str] = None,
        metadata_changes: MetadataChanges = None,
    ) -> CommitRecord:
        """Change the secret and/or metadata of an existing credential.

        Metadata keys keep their position; new keys are appended. A change
        whose value is ``None`` deletes the key.

        Raises:
            NotFound: If the credential does not exist.
            DecryptionError: On a wrong passphrase.
        """
        path, old_data = self._read(name)
        self.ledger.open()
        current = Credential.from_payload(self._unseal(old_data, passphrase))
        updated = current.apply(secret, metadata_changes)
        self._write(path, self._seal(updated))

        def revert() -> None:
            self._write(path, old_data)

        record = self._commit_or_revert([name], [], f'update "{name}"', revert)
        logger.info("Updated credential %s", name)
        return record

    def remove(self, name: str) -> CommitRecord:
        """Delete a credential.

        Raises:
            NotFound: If the credential does not exist.
            PermissionDenied: If the file cannot be removed.
        """
        path, old_data = self._read(name)
        self.ledger.open()
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFound("credential not found") from exc
        except PermissionError as exc:
            raise PermissionDenied(
                "You don't have permission to remove this credential"
            ) from exc

        def revert() -> None:
            self._make_parents(path)
            self._write(path, old_data)

        record = self._commit_or_revert([], [name], f'remove "{name}"', revert)
        self._prune_empty_parents(path)
        logger.info("Removed credential %s", name)
        return record

    def move(self, target: str, destination: str) -> CommitRecord:
        """Rename a credential.

        An existing destination is never overwritten.

        Raises:
            NotFound: If ``target`` does not exist.
            AlreadyExists: If ``destination`` already exists.
            PermissionDenied: On rights failures.
        """
        source = self._resolve(target)
        dest = self._resolve(destination, InsertionError)
        if not source.is_file():
            raise NotFound("credential not found")
        if dest.exists():
            raise AlreadyExists("A credential already exists with this name")
        self.ledger.open()
        self._make_parents(dest)
        try:
            os.rename(source, dest)
        except FileNotFoundError as exc:
            raise NotFound("credential not found") from exc
        except PermissionError as exc:
            raise PermissionDenied(
                "You don't have permission to move this credential"
            ) from exc

        def revert() -> None:
            self._make_parents(source)
            os.rename(dest, source)
            self._prune_empty_parents(dest)

        record = self._commit_or_revert(
            [destination], [target], f"move {target} to {destination}", revert
        )
        self._prune_empty_parents(source)
        logger.info("Moved credential %s to %s", target, destination)
        return record
