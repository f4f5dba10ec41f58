"""Setup shared by the review and reply commands."""

from __future__ import annotations

import click

from prwarden_core.gh.retry import build_client


def require_token(config: dict) -> str:
    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return token


def require_model_key(config: dict) -> None:
    provider = config.get("provider")
    if provider == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")
    if provider == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")


def open_repo(repo: str, config: dict):
    return build_client(require_token(config), config).get_repo(repo)


def build_bots_or_fail(config: dict):
    from prwarden_core.reviewer import build_bots

    require_model_key(config)
    try:
        return build_bots(config)
    except (ImportError, ValueError, FileNotFoundError) as e:
        raise click.UsageError(str(e))
