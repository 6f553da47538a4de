"""Shared utilities for all CLI command modules.

Provides the Rich console, runtime construction from the global
options, and the error handler every command is wrapped in.
"""

from __future__ import annotations

import functools
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console
from rich.markup import escape

from ..errors import RspassError
from ..runtime import Rspass, get_runtime

console = Console()
logger = logging.getLogger("rspass.cli")


def runtime_from(ctx: click.Context) -> Rspass:
    """Build (once per invocation) the runtime for the global options."""
    obj = ctx.find_root().obj
    if obj.get("runtime") is None:
        home: Optional[str] = obj.get("home")
        config_dir: Optional[str] = obj.get("config_dir")
        obj["runtime"] = get_runtime(
            home=Path(home) if home else None,
            config_dir=Path(config_dir) if config_dir else None,
        )
    return obj["runtime"]


def handle_errors(func: Callable) -> Callable:
    """Print an ``RspassError`` in red and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RspassError as exc:
            logger.debug("Command failed", exc_info=True)
            console.print(f"[bold red]{exc.kind.value}:[/] {escape(exc.message)}", highlight=False)
            sys.exit(1)

    return wrapper


def parse_pairs(values: tuple[str, ...]) -> list[tuple[str, str]]:
    """Parse repeated ``key=value`` options."""
    pairs = []
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}")
        pairs.append((key, value))
    return pairs


passphrase_option = click.option(
    "--passphrase",
    envvar="RSPASS_PASSPHRASE",
    prompt="Key passphrase",
    hide_input=True,
    help="Passphrase of the private key (env: RSPASS_PASSPHRASE).",
)

username_option = click.option(
    "--username", "-u",
    envvar="RSPASS_GIT_USERNAME",
    prompt="Remote username",
    help="Remote account name (env: RSPASS_GIT_USERNAME).",
)

token_option = click.option(
    "--token", "-t",
    envvar="RSPASS_GIT_TOKEN",
    prompt="Remote token",
    hide_input=True,
    help="Remote password or token (env: RSPASS_GIT_TOKEN).",
)
