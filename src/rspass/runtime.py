"""
rspass runtime -- one object wiring config, keys, ledger and store.

The runtime is the public operation surface: everything the CLI does
goes through here, and embedding applications can use it directly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import DirectorySettings, RspassConfig
from .credential import Credential, MetadataChanges, MetadataInput
from .keys import KeyManager
from .ledger import CommitRecord, FetchOutcome, GitLedger, Ledger
from .passwords import generate_password
from .store import CredentialStore

logger = logging.getLogger("rspass.runtime")


class Rspass:
    """The rspass facade.

    Args:
        config: Resolved configuration.
        ledger: Ledger override; defaults to a ``GitLedger`` at the
            configured repository path.
    """

    def __init__(self, config: RspassConfig, ledger: Optional[Ledger] = None) -> None:
        self.config = config
        self.keys = KeyManager(config.key_dir, key_size=config.key_size)
        self.ledger = ledger if ledger is not None else GitLedger.from_config(config)
        self.store = CredentialStore(config.repo_path, self.keys, self.ledger)

    @property
    def repo_path(self) -> Path:
        return self.config.repo_path

    def init(self) -> Path:
        """Create the credential repository.

        Returns:
            Path to the repository.
        """
        self.ledger.init()
        return self.repo_path

    def generate_keys(self, name: str, email: str, passphrase: str) -> Path:
        """Create the keypair (no-op if it already exists).

        Returns:
            Path to the key directory.
        """
        return self.keys.generate(name, email, passphrase)

    def insert(self, name: str, secret: str, metadata: MetadataInput = None) -> CommitRecord:
        return self.store.insert(name, secret, metadata)

    def get(self, name: str, passphrase: str, full: bool = False) -> str:
        return self.store.get(name, passphrase, full)

    def read(self, name: str, passphrase: str) -> Credential:
        return self.store.read(name, passphrase)

    def edit(
        self,
        name: str,
        passphrase: str,
        secret: Optional[str] = None,
        metadata_changes: MetadataChanges = None,
    ) -> CommitRecord:
        return self.store.edit(name, passphrase, secret, metadata_changes)

    def remove(self, name: str) -> CommitRecord:
        return self.store.remove(name)

    def move(self, target: str, destination: str) -> CommitRecord:
        return self.store.move(target, destination)

    def list_entries(self, prefix: Optional[str] = None) -> list[str]:
        return self.store.list_entries(prefix)

    def log(self, limit: Optional[int] = None) -> list[CommitRecord]:
        return self.ledger.log(limit)

    def add_remote(self, uri: str) -> None:
        self.ledger.add_remote(uri)

    def fetch(self, username: str, token: str) -> FetchOutcome:
        outcome = self.ledger.fetch(username, token)
        logger.info("Fetch finished: %s", outcome.value)
        return outcome

    def push(self, username: str, token: str) -> None:
        self.ledger.push(username, token)

    @staticmethod
    def generate_password(length: int = 20) -> str:
        return generate_password(length)


def get_runtime(
    home: Optional[Path] = None, config_dir: Optional[Path] = None
) -> Rspass:
    """Build a runtime from optional directory overrides.

    Args:
        home: Home directory override.
        config_dir: Config root override.

    Returns:
        A ready-to-use Rspass instance.
    """
    settings = DirectorySettings()
    if home is not None:
        settings.set_home_dir(home)
    if config_dir is not None:
        settings.set_config_dir(config_dir)
    return Rspass(settings.resolve())
