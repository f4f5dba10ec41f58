"""CLI entry point for prwarden.

Commands:
  review   incremental review of a pull request
  reply    answer a review comment addressed to the bot
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prwarden_cli.commands.reply import reply_cmd
from prwarden_cli.commands.review import review_cmd

console = Console()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=debug, rich_tracebacks=debug)],
        force=True,
    )
    # The HTTP layer is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.INFO)


@click.group()
@click.version_option(
    version=importlib.metadata.version("prwarden"),
    prog_name="prwarden",
)
@click.option(
    "--config",
    "config_path",
    default=".prwarden.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRWARDEN_CONFIG",
)
@click.option("--debug", is_flag=True, help="Verbose logging, including model responses.")
@click.pass_context
def main(ctx: click.Context, config_path: str, debug: bool):
    """Incremental AI reviewer for GitHub pull requests."""
    from prwarden_cli.auth import resolve_github_token
    from prwarden_core.config import load_config

    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"debug": debug or None})
    _configure_logging(config["debug"])

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(review_cmd)
main.add_command(reply_cmd)
