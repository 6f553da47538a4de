"""Shared test fixtures for rspass."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from rspass.config import RspassConfig
from rspass.keys import KeyManager
from rspass.ledger import GitLedger, MemoryLedger
from rspass.store import CredentialStore

PASSPHRASE = "correct horse battery staple"


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's git configuration out of every test."""
    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("RSPASS_HOME", "RSPASS_CONFIG_DIR", "RSPASS_PASSPHRASE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(scope="session")
def generated_key_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Generate one keypair for the whole session (RSA keygen is slow)."""
    key_dir = tmp_path_factory.mktemp("session-keys") / "rspass"
    KeyManager(key_dir).generate("Test User", "test@rspass.local", PASSPHRASE)
    return key_dir


@pytest.fixture
def passphrase() -> str:
    return PASSPHRASE


@pytest.fixture
def config_root(tmp_path: Path, generated_key_dir: Path) -> Path:
    """A config root whose ``rspass/`` holds a copy of the session keys."""
    root = tmp_path / "config"
    shutil.copytree(generated_key_dir, root / "rspass")
    return root


@pytest.fixture
def key_manager(config_root: Path) -> KeyManager:
    return KeyManager(config_root / "rspass")


@pytest.fixture
def rspass_config(tmp_path: Path, config_root: Path) -> RspassConfig:
    return RspassConfig(home_dir=tmp_path / "home", config_root=config_root)


@pytest.fixture
def memory_ledger() -> MemoryLedger:
    ledger = MemoryLedger()
    ledger.init()
    return ledger


@pytest.fixture
def store(tmp_path: Path, key_manager: KeyManager, memory_ledger: MemoryLedger) -> CredentialStore:
    """A credential store on a fresh in-memory ledger."""
    root = tmp_path / "repo"
    root.mkdir()
    return CredentialStore(root, key_manager, memory_ledger)


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    """An empty bare repository to use as ``origin``."""
    path = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "-q", "--bare", "-b", "master", str(path)],
        check=True,
        capture_output=True,
    )
    return path


@pytest.fixture
def git_ledger(tmp_path: Path) -> GitLedger:
    ledger = GitLedger(tmp_path / "repo")
    ledger.init()
    return ledger
