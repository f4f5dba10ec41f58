"""Incremental PR review run.

One run reviews only the commits pushed since the last reviewed one:

    summary comment → reviewed commit ids → compare(highest reviewed, head)
    → per-file summaries (light model) → release notes + short summary
    → per-file reviews (heavy model) → one review → commit id recorded

The summary comment carries everything the next run needs: raw and short
summaries and the reviewed commit ids, all in marker blocks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from github import GithubException
from rich.console import Console

from prwarden_core.budget import pack_patches
from prwarden_core.commits import (
    add_reviewed_commit_id,
    get_all_commit_ids,
    get_highest_reviewed_commit_id,
    get_reviewed_commit_ids,
    get_reviewed_commit_ids_block,
)
from prwarden_core.concurrency import ConcurrencyLimit, run_bounded
from prwarden_core.config import PathFilter, load_system_message
from prwarden_core.gh.comments import CommentStore, RunCache
from prwarden_core.gh.pull_request import get_compare_files, get_pull
from prwarden_core.gh.reviews import ReviewCommenter
from prwarden_core.inputs import Inputs
from prwarden_core.markers import (
    COMMENT_REPLY_TAG,
    RAW_SUMMARY,
    SHORT_SUMMARY,
    SUMMARIZE_TAG,
    format_comment,
    get_description,
    get_raw_summary,
    get_short_summary,
    wrap_hidden_block,
)
from prwarden_core.patches import FilePatch, file_patches, parse_review
from prwarden_core.prompts import DEFAULT_SUMMARIZE, DEFAULT_SUMMARIZE_RELEASE_NOTES, Prompts
from prwarden_core.providers.anthropic import AnthropicBot
from prwarden_core.providers.base import BotNotInitializedError
from prwarden_core.providers.openai import OpenAIBot
from prwarden_core.status import add_in_progress_status, remove_in_progress_status
from prwarden_core.tokenizer import get_token_count

console = Console()
logger = logging.getLogger(__name__)

_TRIAGE_RE = re.compile(r"\[TRIAGE\]:\s*(NEEDS_REVIEW|APPROVED)")
_CHANGESET_BATCH_SIZE = 10


@dataclass
class FileChange:
    filename: str
    diff: str
    patches: list[FilePatch]


@dataclass
class FileSummary:
    filename: str
    summary: str
    needs_review: bool


@dataclass
class ReviewResult:
    """What one run did, for the CLI to report."""

    pr_number: int
    base_sha: str
    head_sha: str
    reviewed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    ignored_files: list[str] = field(default_factory=list)
    summaries_failed: list[str] = field(default_factory=list)
    review_count: int = 0
    lgtm_count: int = 0


def build_bots(config: dict) -> tuple:
    """Return ``(light_bot, heavy_bot)`` for the configured provider."""
    common = {
        "system_message": load_system_message(config),
        "language": config.get("language", "en-US"),
        "temperature": config.get("temperature", 0.0),
        "retries": config.get("retries", 3),
        "timeout": config.get("timeout", 120),
        "debug": config.get("debug", False),
    }
    provider = config["provider"]
    if provider == "openai":
        return tuple(
            OpenAIBot(
                api_key=config["openai_api_key"],
                api_base=config.get("api_base") or "https://api.openai.com/v1",
                organization=config.get("openai_api_org"),
                model=config[key],
                **common,
            )
            for key in ("light_model", "heavy_model")
        )
    if provider == "anthropic":
        return tuple(
            AnthropicBot(api_key=config["anthropic_api_key"], model=config[key], **common)
            for key in ("light_model", "heavy_model")
        )
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'openai' or 'anthropic'.")


def build_status_message(
    base_sha: str,
    head_sha: str,
    selected: list[str],
    ignored: list[str],
    skipped: list[str] | None = None,
    summaries_failed: list[str] | None = None,
) -> str:
    """Collapsible run details appended to the summary comment."""
    lines = [
        "<details>",
        "<summary>Commits</summary>",
        f"Files that changed from the base of the PR and between {base_sha} and {head_sha} commits.",
        "</details>",
    ]

    def _section(title: str, files: list[str] | None) -> None:
        if files:
            lines.extend(["<details>", f"<summary>{title} ({len(files)})</summary>", ""])
            lines.extend(f"* {name}" for name in files)
            lines.extend(["", "</details>"])

    _section("Files selected for processing", selected)
    _section("Files ignored due to filter", ignored)
    _section("Files not processed due to max files limit", skipped)
    _section("Files not summarized due to errors", summaries_failed)
    return "\n".join(lines)


def _summarize_file(bot, prompts: Prompts, inputs: Inputs, change: FileChange, review_simple_changes: bool):
    ins = inputs.clone()
    ins.filename = change.filename
    ins.file_diff = change.diff
    prompt = prompts.render_summarize_file_diff(ins, review_simple_changes)
    tokens = get_token_count(prompt)
    if tokens > bot.token_limits.request_tokens:
        logger.info("skip summarize for %s: diff tokens %d exceed limit", change.filename, tokens)
        return None

    response = bot.chat(prompt)
    if not response:
        logger.info("summarize: nothing obtained from model for %s", change.filename)
        return None

    needs_review = True
    if not review_simple_changes:
        match = _TRIAGE_RE.search(response)
        if match:
            needs_review = match.group(1) == "NEEDS_REVIEW"
            response = response.replace(match.group(0), "")
    return FileSummary(change.filename, response.strip(), needs_review)


def _review_file(
    bot,
    prompts: Prompts,
    inputs: Inputs,
    change: FileChange,
    commenter: ReviewCommenter,
    pr_number: int,
    review_comment_lgtm: bool,
) -> tuple[int, int] | None:
    """Review one file and buffer its comments. Returns ``(buffered, lgtm)`` or None when skipped."""
    ins = inputs.clone()
    ins.filename = change.filename
    ins.file_diff = change.diff

    base_tokens = get_token_count(prompts.render_review_file_diff(ins))
    packed = pack_patches(
        change.patches,
        base_tokens,
        bot.token_limits.request_tokens,
        lambda start, end: commenter.get_comment_chains_within_range(
            pr_number, change.filename, start, end, COMMENT_REPLY_TAG
        ),
    )
    if packed.packed == 0:
        logger.info("skip review for %s: no patch fits the token limit", change.filename)
        return None

    ins.patches = packed.text
    response = bot.chat(prompts.render_review_file_diff(ins))
    if not response:
        logger.info("review: nothing obtained from model for %s", change.filename)
        return None

    buffered = lgtm = 0
    for review in parse_review(response, change.patches[: packed.packed]):
        if not review_comment_lgtm and ("LGTM" in review.comment or "looks good to me" in review.comment):
            lgtm += 1
            continue
        commenter.buffer_review_comment(change.filename, review.start_line, review.end_line, review.comment)
        buffered += 1
    return buffered, lgtm


def _combine_summaries(bot, prompts: Prompts, inputs: Inputs, summaries: list[FileSummary]) -> None:
    """Fold per-file summaries into ``inputs.raw_summary`` in deduplicated batches."""
    for i in range(0, len(summaries), _CHANGESET_BATCH_SIZE):
        for s in summaries[i : i + _CHANGESET_BATCH_SIZE]:
            inputs.raw_summary += f"---\n{s.filename}: {s.summary}\n"
        response = bot.chat(prompts.render_summarize_changesets(inputs))
        if response:
            inputs.raw_summary = response
        else:
            logger.warning("summarize: nothing obtained from model for changesets batch %d", i // _CHANGESET_BATCH_SIZE)


def run_review(
    repo,
    pr_number: int,
    config: dict,
    light_bot=None,
    heavy_bot=None,
    cache: RunCache | None = None,
) -> ReviewResult | None:
    """Review the commits pushed to ``pr_number`` since the last run.

    Returns None when there is nothing to do (PR missing, draft, no new
    commits, no reviewable files). API failures along the way are logged and
    skipped; only a misconfigured model client aborts the run.
    """
    try:
        pr = get_pull(repo, pr_number)
    except GithubException as e:
        logger.warning("Skipped: PR #%s could not be loaded: %s", pr_number, e)
        console.print(f"[yellow]Skipped: PR #{pr_number} not found.[/yellow]")
        return None

    if pr.draft and not config.get("review_draft_prs", False):
        console.print(
            "[yellow]Skipping draft PR. Set review_draft_prs: true in .prwarden.yml to review drafts.[/yellow]"
        )
        return None

    if light_bot is None or heavy_bot is None:
        light_bot, heavy_bot = build_bots(config)

    page_size = config.get("page_size", 100)
    icon = config.get("bot_icon", "")
    cache = cache if cache is not None else RunCache()
    limit = ConcurrencyLimit(config.get("github_concurrency_limit"))
    store = CommentStore(repo, cache, page_size=page_size, icon=icon, limit=limit)
    commenter = ReviewCommenter(repo, cache, page_size=page_size, icon=icon, limit=limit)
    prompts = Prompts(
        summarize=config.get("summarize") or DEFAULT_SUMMARIZE,
        summarize_release_notes=config.get("summarize_release_notes") or DEFAULT_SUMMARIZE_RELEASE_NOTES,
    )

    inputs = Inputs(system_message=light_bot.system_message)
    if pr.title:
        inputs.title = pr.title
    description = get_description(pr.body or "")
    if description.strip():
        inputs.description = description

    existing = store.find_comment_with_tag(SUMMARIZE_TAG, pr_number)
    existing_body = existing.body if existing is not None else ""
    existing_commit_block = ""
    if existing_body:
        inputs.raw_summary = get_raw_summary(existing_body)
        inputs.short_summary = get_short_summary(existing_body)
        existing_commit_block = get_reviewed_commit_ids_block(existing_body)

    head_sha = pr.head.sha
    all_commit_ids = get_all_commit_ids(pr, page_size)
    highest = get_highest_reviewed_commit_id(all_commit_ids, get_reviewed_commit_ids(existing_commit_block))
    if highest == head_sha:
        console.print("[yellow]No new commits since the last review. Nothing to do.[/yellow]")
        return None
    base_sha = highest or pr.base.sha

    incremental = get_compare_files(repo, base_sha, head_sha)
    if not incremental:
        console.print("[yellow]Skipped: no changed files between the last review and head.[/yellow]")
        return None
    incremental_names = {f.filename for f in incremental}
    files = [f for f in get_compare_files(repo, pr.base.sha, head_sha) if f.filename in incremental_names]
    console.print(
        f"[cyan]Incremental review: {base_sha[:7]} → {head_sha[:7]} ({len(files)} file(s) changed)[/cyan]"
    )

    path_filter = PathFilter(config.get("path_filters"))
    selected = [f for f in files if path_filter.check(f.filename)]
    ignored = [f.filename for f in files if not path_filter.check(f.filename)]

    changes: list[FileChange] = []
    for f in selected:
        patches = file_patches(f.patch)
        if patches:
            changes.append(FileChange(f.filename, f.patch or "", patches))
    if not changes:
        console.print("[yellow]Skipped: no reviewable files after filtering.[/yellow]")
        return None

    max_files = config.get("max_files", 0)
    skipped: list[str] = []
    if max_files > 0 and len(changes) > max_files:
        skipped = [c.filename for c in changes[max_files:]]
        changes = changes[:max_files]

    result = ReviewResult(pr_number, base_sha, head_sha, ignored_files=ignored, skipped_files=skipped)
    status_message = build_status_message(base_sha, head_sha, [c.filename for c in changes], ignored, skipped)

    if existing is not None:
        in_progress_body = add_in_progress_status(existing_body, status_message)
    else:
        in_progress_body = format_comment(add_in_progress_status("", status_message), SUMMARIZE_TAG, icon)
    store.replace(in_progress_body, SUMMARIZE_TAG, pr_number)

    try:
        summary_body = _run_models(
            config, light_bot, heavy_bot, prompts, inputs, changes, store, commenter, result
        )
    except Exception:
        store.replace(remove_in_progress_status(in_progress_body), SUMMARIZE_TAG, pr_number)
        raise

    if not config.get("disable_review", False):
        summary_body += f"\n{add_reviewed_commit_id(existing_commit_block, head_sha)}"
    elif existing_commit_block:
        summary_body += f"\n{existing_commit_block}"
    store.comment(summary_body, SUMMARIZE_TAG, "replace", pr_number)

    console.print(
        f"[green]Review complete: {result.review_count} comment(s), {result.lgtm_count} LGTM, "
        f"{len(result.reviewed_files)} file(s) reviewed.[/green]"
    )
    return result


def _run_models(
    config: dict,
    light_bot,
    heavy_bot,
    prompts: Prompts,
    inputs: Inputs,
    changes: list[FileChange],
    store: CommentStore,
    commenter: ReviewCommenter,
    result: ReviewResult,
) -> str:
    """Summaries, release notes and reviews; returns the new summary comment text."""
    pr_number = result.pr_number
    workers = config.get("openai_concurrency_limit", 6)
    review_simple_changes = config.get("review_simple_changes", False)

    summaries = run_bounded(
        lambda change: _summarize_file(light_bot, prompts, inputs, change, review_simple_changes),
        changes,
        workers,
        label="summarize",
        reraise=(BotNotInitializedError,),
    )
    done = [s for s in summaries if s is not None]
    result.summaries_failed = [c.filename for c, s in zip(changes, summaries) if s is None]

    _combine_summaries(heavy_bot, prompts, inputs, done)

    final_summary = heavy_bot.chat(prompts.render_summarize(inputs))
    if not final_summary:
        logger.info("summarize: nothing obtained from model")

    if not config.get("disable_release_notes", False):
        release_notes = heavy_bot.chat(prompts.render_summarize_release_notes(inputs))
        if release_notes:
            store.update_description(pr_number, f"### Summary by prwarden\n\n{release_notes}")
        else:
            logger.info("release notes: nothing obtained from model")

    inputs.short_summary = heavy_bot.chat(prompts.render_summarize_short(inputs))

    status_message = build_status_message(
        result.base_sha,
        result.head_sha,
        [c.filename for c in changes],
        result.ignored_files,
        result.skipped_files,
        result.summaries_failed,
    )

    if not config.get("disable_review", False):
        needs_review = {s.filename for s in done if s.needs_review}
        to_review = [c for c in changes if c.filename in needs_review or c.filename in result.summaries_failed]
        # Filled once here; file tasks only read it.
        commenter.list_review_comments(pr_number)
        outcomes = run_bounded(
            lambda change: _review_file(
                heavy_bot,
                prompts,
                inputs,
                change,
                commenter,
                pr_number,
                config.get("review_comment_lgtm", False),
            ),
            to_review,
            workers,
            label="review",
            reraise=(BotNotInitializedError,),
        )
        for change, outcome in zip(to_review, outcomes):
            if outcome is None:
                continue
            result.reviewed_files.append(change.filename)
            result.review_count += outcome[0]
            result.lgtm_count += outcome[1]

        status_message += (
            f"\n<details>\n<summary>Review comments generated ({result.review_count + result.lgtm_count})</summary>"
            f"\n\n* Review: {result.review_count}\n* LGTM: {result.lgtm_count}\n\n</details>"
        )
        commenter.submit_review(pr_number, result.head_sha, status_message)

    return (
        f"{final_summary}\n"
        f"{wrap_hidden_block(RAW_SUMMARY, inputs.raw_summary)}\n"
        f"{wrap_hidden_block(SHORT_SUMMARY, inputs.short_summary)}\n\n"
        f"---\n\n{status_message}"
    )
