"""Incremental review of a pull request."""

from __future__ import annotations

import click
from rich.console import Console

from prwarden_cli.commands._common import build_bots_or_fail, open_repo
from prwarden_core.limits import known_models
from prwarden_core.providers.base import BotNotInitializedError
from prwarden_core.reviewer import run_review

console = Console()


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--provider",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="Model provider. Overrides config file.",
)
@click.option("--light-model", default=None, help="Model used for summaries. Overrides config file.")
@click.option("--heavy-model", default=None, help="Model used for reviews. Overrides config file.")
@click.option("--max-files", type=int, default=None, help="Review at most this many files (0 = no limit).")
@click.option("--disable-review", is_flag=True, help="Only summarize; post no review comments.")
@click.option("--disable-release-notes", is_flag=True, help="Do not write release notes into the PR description.")
@click.pass_context
def review_cmd(
    ctx,
    repo: str,
    pr_number: int | None,
    provider: str | None,
    light_model: str | None,
    heavy_model: str | None,
    max_files: int | None,
    disable_review: bool,
    disable_release_notes: bool,
):
    """Review the commits pushed to a pull request since the last run.

    Summarizes each changed file, writes release notes into the PR
    description, and posts line comments as a single review. The bot's
    summary comment records which commits were reviewed, so re-running on
    every push only looks at what is new.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      OPENAI_API_KEY       Required with provider openai
      ANTHROPIC_API_KEY    Required with provider anthropic
    """
    config = dict(ctx.obj["config"])
    overrides = {
        "provider": provider,
        "light_model": light_model,
        "heavy_model": heavy_model,
        "max_files": max_files,
        "disable_review": disable_review or None,
        "disable_release_notes": disable_release_notes or None,
    }
    config.update({k: v for k, v in overrides.items() if v is not None})

    for key in ("light_model", "heavy_model"):
        if config["provider"] == "openai" and config[key] not in known_models():
            console.print(f"[yellow]Unknown model {config[key]!r}; using the default token limits.[/yellow]")

    light_bot, heavy_bot = build_bots_or_fail(config)
    this_repo = open_repo(repo, config)

    if pr_number is None:
        prs = list(this_repo.get_pulls(state="open"))
        if not prs:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in prs:
            console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    try:
        run_review(this_repo, pr_number, config, light_bot=light_bot, heavy_bot=heavy_bot)
    except BotNotInitializedError as e:
        raise click.ClickException(str(e))
