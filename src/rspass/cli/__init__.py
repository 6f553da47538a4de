"""
rspass CLI.

The main Click group is defined here and every command group is
registered from its own module.

Entry point: rspass.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="rspass")
@click.option(
    "--home", envvar="RSPASS_HOME", type=click.Path(),
    help="Home directory override (env: RSPASS_HOME).",
)
@click.option(
    "--config-dir", envvar="RSPASS_CONFIG_DIR", type=click.Path(),
    help="Config root holding rspass/ (env: RSPASS_CONFIG_DIR).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log what rspass is doing.")
@click.pass_context
def main(ctx: click.Context, home, config_dir, verbose):
    """rspass: encrypted credentials, versioned and synced with git."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.update({"home": home, "config_dir": config_dir, "runtime": None})


from .keys import register_key_commands
from .credentials import register_credential_commands
from .sync_cmd import register_sync_commands

register_key_commands(main)
register_credential_commands(main)
register_sync_commands(main)
