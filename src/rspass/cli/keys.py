"""Setup commands: init, keygen, export-key."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.panel import Panel

from ._common import console, handle_errors, runtime_from


def register_key_commands(main: click.Group) -> None:
    """Register repository and key setup commands."""

    @main.command("init")
    @click.pass_context
    @handle_errors
    def init(ctx):
        """Create the credential repository."""
        path = runtime_from(ctx).init()
        console.print(f"[green]Initialized[/] credential repository at [cyan]{path}[/]")

    @main.command("keygen")
    @click.option("--name", prompt="Your name", help="Name for the key's user id.")
    @click.option("--email", prompt="Your email", help="Email for the key's user id.")
    @click.option(
        "--passphrase", envvar="RSPASS_PASSPHRASE",
        prompt="Key passphrase", hide_input=True, confirmation_prompt=True,
        help="Passphrase protecting the private key.",
    )
    @click.pass_context
    @handle_errors
    def keygen(ctx, name, email, passphrase):
        """Generate the RSA keypair (does nothing if it already exists).

        Examples:

            rspass keygen --name "Alice" --email alice@example.com
        """
        runtime = runtime_from(ctx)
        already = runtime.keys.is_initialized()
        key_dir = runtime.generate_keys(name, email, passphrase)
        if already:
            console.print(f"[yellow]Keys already exist[/] in [cyan]{key_dir}[/]")
            return
        console.print(Panel(
            f"[bold green]Keypair created[/]\n"
            f"Owner: {escape(name)} <{escape(email)}>\n"
            f"Size: {runtime.keys.key_size} bits\n"
            f"Path: [cyan]{key_dir}[/]",
            title="rspass keys",
            border_style="green",
        ))

    @main.command("export-key")
    @click.pass_context
    @handle_errors
    def export_key(ctx):
        """Print the armored PGP public key."""
        click.echo(runtime_from(ctx).keys.load_armored_public_key(), nl=False)
