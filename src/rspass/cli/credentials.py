"""Credential commands: insert, show, edit, rm, mv, ls, generate."""

from __future__ import annotations

from typing import Optional

import click
from rich.markup import escape
from rich.tree import Tree

from ..passwords import MIN_LENGTH, generate_password
from ._common import (
    console,
    handle_errors,
    parse_pairs,
    passphrase_option,
    runtime_from,
)


def _build_tree(names: list[str], label: str) -> Tree:
    tree = Tree(f"[bold]{escape(label)}[/]")
    nodes: dict[str, Tree] = {}
    for name in names:
        parent = tree
        parts = name.split("/")
        for depth, part in enumerate(parts):
            key = "/".join(parts[: depth + 1])
            if key not in nodes:
                style = "cyan" if depth == len(parts) - 1 else "bold blue"
                nodes[key] = parent.add(f"[{style}]{escape(part)}[/]")
            parent = nodes[key]
    return tree


def _choose_secret(secret: Optional[str], length: Optional[int]) -> Optional[str]:
    if secret is not None and length is not None:
        raise click.UsageError("use either --secret or --generate, not both")
    if length is not None:
        return generate_password(length)
    return secret


def register_credential_commands(main: click.Group) -> None:
    """Register credential CRUD commands."""

    @main.command("insert")
    @click.argument("name")
    @click.option("--secret", "-s", default=None, help="The secret. Prompted when omitted.")
    @click.option(
        "--generate", "-g", "length", type=click.IntRange(min=MIN_LENGTH), default=None,
        help="Generate a random secret of this length.",
    )
    @click.option("--meta", "-m", multiple=True, help="Metadata as key=value (repeatable).")
    @click.pass_context
    @handle_errors
    def insert(ctx, name, secret, length, meta):
        """Encrypt and store a new credential.

        Examples:

            rspass insert email/github -m user=alice

            rspass insert bank -g 32
        """
        metadata = parse_pairs(meta)
        value = _choose_secret(secret, length)
        if value is None:
            value = click.prompt("Secret", hide_input=True, confirmation_prompt=True)
        record = runtime_from(ctx).insert(name, value, metadata)
        console.print(f"[green]Added[/] {escape(name)} [dim]({record.oid[:8]})[/]")
        if length is not None:
            click.echo(value)

    @main.command("show")
    @click.argument("name")
    @click.option("--full", "-f", is_flag=True, help="Print metadata lines too.")
    @passphrase_option
    @click.pass_context
    @handle_errors
    def show(ctx, name, full, passphrase):
        """Decrypt and print a credential."""
        click.echo(runtime_from(ctx).get(name, passphrase, full))

    @main.command("edit")
    @click.argument("name")
    @click.option("--secret", "-s", default=None, help="New secret.")
    @click.option(
        "--generate", "-g", "length", type=click.IntRange(min=MIN_LENGTH), default=None,
        help="Replace the secret with a random one of this length.",
    )
    @click.option("--meta", "-m", multiple=True, help="Set metadata key=value (repeatable).")
    @click.option("--delete", "-d", multiple=True, help="Delete a metadata key (repeatable).")
    @passphrase_option
    @click.pass_context
    @handle_errors
    def edit(ctx, name, secret, length, meta, delete, passphrase):
        """Change the secret or metadata of a credential.

        Examples:

            rspass edit email/github -m user=bob -d recovery
        """
        changes: list[tuple[str, Optional[str]]] = list(parse_pairs(meta))
        changes.extend((key, None) for key in delete)
        value = _choose_secret(secret, length)
        record = runtime_from(ctx).edit(name, passphrase, value, changes)
        console.print(f"[green]Updated[/] {escape(name)} [dim]({record.oid[:8]})[/]")
        if length is not None:
            click.echo(value)

    @main.command("rm")
    @click.argument("name")
    @click.pass_context
    @handle_errors
    def rm(ctx, name):
        """Delete a credential."""
        record = runtime_from(ctx).remove(name)
        console.print(f"[green]Removed[/] {escape(name)} [dim]({record.oid[:8]})[/]")

    @main.command("mv")
    @click.argument("target")
    @click.argument("destination")
    @click.pass_context
    @handle_errors
    def mv(ctx, target, destination):
        """Rename a credential. Never overwrites an existing one."""
        record = runtime_from(ctx).move(target, destination)
        console.print(
            f"[green]Moved[/] {escape(target)} -> {escape(destination)} [dim]({record.oid[:8]})[/]"
        )

    @main.command("ls")
    @click.argument("prefix", required=False)
    @click.option("--plain", is_flag=True, help="One name per line, no tree.")
    @click.pass_context
    @handle_errors
    def ls(ctx, prefix, plain):
        """List stored credentials."""
        names = runtime_from(ctx).list_entries(prefix)
        if plain:
            for name in names:
                click.echo(name)
            return
        if not names:
            console.print("[dim]No credentials stored.[/]")
            return
        console.print(_build_tree(names, prefix or "rspass"))

    @main.command("generate")
    @click.argument("length", type=click.IntRange(min=MIN_LENGTH), default=20)
    def generate(length):
        """Print a random password."""
        click.echo(generate_password(length))
