"""Sync commands: remote add/show, fetch, push, log."""

from __future__ import annotations

import sys

import click
from rich.markup import escape
from rich.table import Table

from ..ledger import FetchOutcome
from ._common import console, handle_errors, runtime_from, token_option, username_option

OUTCOME_MESSAGES = {
    FetchOutcome.UP_TO_DATE: "[green]Already up to date.[/]",
    FetchOutcome.FAST_FORWARD: "[green]Fast-forwarded[/] to the remote branch.",
    FetchOutcome.LOCAL_AHEAD: "[cyan]Local branch is ahead.[/] Push to publish your changes.",
    FetchOutcome.MERGED: "[green]Merged[/] remote changes.",
    FetchOutcome.MERGE_CONFLICT: (
        "[bold yellow]Merge conflict.[/] The merge was aborted; "
        "nothing was changed locally."
    ),
}


def register_sync_commands(main: click.Group) -> None:
    """Register remote, fetch, push and log."""

    @main.group()
    def remote():
        """Manage the origin remote."""

    @remote.command("add")
    @click.argument("uri")
    @click.pass_context
    @handle_errors
    def remote_add(ctx, uri):
        """Register URI as the origin remote."""
        runtime_from(ctx).add_remote(uri)
        console.print(f"[green]Remote added:[/] {escape(uri)}")

    @remote.command("show")
    @click.pass_context
    @handle_errors
    def remote_show(ctx):
        """Print the origin URL."""
        click.echo(runtime_from(ctx).ledger.remote_url())

    @main.command("fetch")
    @username_option
    @token_option
    @click.pass_context
    @handle_errors
    def fetch(ctx, username, token):
        """Fetch from origin and fast-forward or merge."""
        outcome = runtime_from(ctx).fetch(username, token)
        console.print(OUTCOME_MESSAGES[outcome])
        if outcome == FetchOutcome.MERGE_CONFLICT:
            sys.exit(2)

    @main.command("push")
    @username_option
    @token_option
    @click.pass_context
    @handle_errors
    def push(ctx, username, token):
        """Push the local branch to origin."""
        runtime_from(ctx).push(username, token)
        console.print("[green]Pushed[/] to origin.")

    @main.command("log")
    @click.option("--limit", "-n", type=int, default=20, help="Number of commits to show.")
    @click.pass_context
    @handle_errors
    def log(ctx, limit):
        """Show the commit history of the credential tree."""
        records = runtime_from(ctx).log(limit)
        if not records:
            console.print("[dim]No commits yet.[/]")
            return
        table = Table(title="History", show_header=True)
        table.add_column("Commit", style="dim")
        table.add_column("Message")
        for record in records:
            table.add_row(record.oid[:8], escape(record.message))
        console.print(table)
