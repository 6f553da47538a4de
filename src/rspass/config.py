"""
Directory configuration and runtime settings.

Directory overrides (home and config root) are collected once at startup
through ``DirectorySettings``. Each override can be set exactly once; a
second attempt raises ``ConfigAlreadySet`` instead of silently replacing
the first value. ``resolve()`` turns the settings into an immutable
``RspassConfig`` that is handed to the key manager, ledger and store.

Layout:
    <config-root>/rspass/
    ├── rspass.pub      # armored PGP public key
    ├── rspass.key      # armored PGP secret key (passphrase-locked)
    ├── rspass.pem      # RSA public key, PKCS#1 PEM
    └── config.yaml     # optional overrides (key size, branch, author)

    <home>/.local/share/rspass/   (Linux; <home>/rspass elsewhere)
    └── one ciphertext file per credential, plus .git/
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigAlreadySet

logger = logging.getLogger("rspass.config")

APP_NAME = "rspass"
CONFIG_FILE = "config.yaml"


def default_home_dir() -> Path:
    """The user's home directory."""
    return Path.home()


def default_config_root() -> Path:
    """Platform config root (the directory that will hold ``rspass/``)."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


class RspassConfig(BaseModel):
    """Resolved configuration for one rspass installation.

    Attributes:
        home_dir: Base directory for the credential repository.
        config_root: Directory that contains the ``rspass/`` key folder.
        key_size: RSA modulus size used when generating keys.
        branch: The single tracked branch.
        remote_name: Name of the sync remote.
        author_name: Author and committer name on every commit.
        author_email: Author and committer email on every commit.
    """

    model_config = ConfigDict(frozen=True)

    home_dir: Path
    config_root: Path
    key_size: int = Field(default=2048, ge=1024)
    branch: str = "master"
    remote_name: str = "origin"
    author_name: str = "rspass"
    author_email: str = "rspass@rspass"

    @property
    def key_dir(self) -> Path:
        return self.config_root / APP_NAME

    @property
    def repo_path(self) -> Path:
        if sys.platform.startswith("linux"):
            return self.home_dir / ".local" / "share" / APP_NAME
        return self.home_dir / APP_NAME

    @property
    def config_file(self) -> Path:
        return self.key_dir / CONFIG_FILE


class DirectorySettings:
    """Set-once directory overrides.

    Unset values fall back to the platform defaults when resolved.
    """

    def __init__(self) -> None:
        self._home_dir: Optional[Path] = None
        self._config_root: Optional[Path] = None

    @property
    def home_dir(self) -> Path:
        return self._home_dir or default_home_dir()

    @property
    def config_root(self) -> Path:
        return self._config_root or default_config_root()

    def set_home_dir(self, path: Path) -> None:
        """Override the home directory.

        Raises:
            ConfigAlreadySet: If the home directory was already overridden.
        """
        if self._home_dir is not None:
            raise ConfigAlreadySet("home_dir already set")
        self._home_dir = Path(path).expanduser()

    def set_config_dir(self, path: Path) -> None:
        """Override the config root.

        Raises:
            ConfigAlreadySet: If the config root was already overridden.
        """
        if self._config_root is not None:
            raise ConfigAlreadySet("config_dir already set")
        self._config_root = Path(path).expanduser()

    def resolve(self) -> RspassConfig:
        """Build the immutable config, applying ``config.yaml`` if present."""
        return load_config(self.home_dir, self.config_root)


def load_config(home_dir: Path, config_root: Path) -> RspassConfig:
    """Load configuration, merging optional overrides from ``config.yaml``.

    A malformed file is reported and ignored; the defaults win.

    Args:
        home_dir: Resolved home directory.
        config_root: Resolved config root.

    Returns:
        RspassConfig for this installation.
    """
    base = {"home_dir": home_dir, "config_root": config_root}
    config_file = config_root / APP_NAME / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            data.pop("home_dir", None)
            data.pop("config_root", None)
            return RspassConfig(**base, **data)
        except (yaml.YAMLError, ValidationError, ValueError, TypeError) as exc:
            logger.warning("Failed to load %s: %s, using defaults", config_file, exc)
    return RspassConfig(**base)
