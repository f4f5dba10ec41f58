"""Answer a review comment addressed to the bot."""

from __future__ import annotations

import click
from rich.console import Console

from prwarden_cli.commands._common import build_bots_or_fail, open_repo
from prwarden_core.providers.base import BotNotInitializedError
from prwarden_core.replies import handle_review_comment

console = Console()


@click.command("reply")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--comment-id", type=int, required=True, help="Id of the review comment to answer.")
@click.pass_context
def reply_cmd(ctx, repo: str, pr_number: int, comment_id: int):
    """Reply to a review comment that mentions the bot or continues a bot thread."""
    config = ctx.obj["config"]
    _, heavy_bot = build_bots_or_fail(config)
    this_repo = open_repo(repo, config)

    try:
        replied = handle_review_comment(this_repo, pr_number, comment_id, config, heavy_bot)
    except BotNotInitializedError as e:
        raise click.ClickException(str(e))
    if not replied:
        console.print("[yellow]No reply posted.[/yellow]")
