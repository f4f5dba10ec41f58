"""Answering review comments addressed to the bot."""

from __future__ import annotations

import logging

from github import GithubException
from rich.console import Console

from prwarden_core.budget import assemble, field_block
from prwarden_core.gh.comments import CommentStore, RunCache
from prwarden_core.gh.pull_request import get_compare_files, get_pull
from prwarden_core.gh.reviews import ReviewCommenter
from prwarden_core.inputs import Inputs
from prwarden_core.markers import (
    BOT_NAME,
    COMMENT_REPLY_TAG,
    COMMENT_TAG,
    SUMMARIZE_TAG,
    get_description,
    get_short_summary,
)
from prwarden_core.prompts import COMMENT

console = Console()
logger = logging.getLogger(__name__)

ASK_BOT = f"@{BOT_NAME}"

NO_DIFF_REPLY = "Cannot reply to this comment as diff could not be found."
TOO_LARGE_REPLY = "Cannot reply to this comment as diff being commented is too large and exceeds the token limit."


def _file_diff(repo, pr, path: str) -> str:
    for f in get_compare_files(repo, pr.base.sha, pr.head.sha):
        if f.filename == path and f.patch:
            return f.patch
    return ""


def handle_review_comment(
    repo, pr_number: int, comment_id: int, config: dict, heavy_bot, cache: RunCache | None = None
) -> bool:
    """Reply to review comment ``comment_id`` when it is meant for the bot.

    A comment is answered when it mentions the bot or sits in a thread the
    bot already took part in. The reply gets the full file diff and the PR's
    short summary as context when they fit the token budget. Returns True
    when a reply (possibly an explanatory one) was posted.
    """
    try:
        pr = get_pull(repo, pr_number)
        comment = pr.get_review_comment(comment_id)
    except GithubException as e:
        logger.warning("Skipped: review comment %s on PR #%s could not be loaded: %s", comment_id, pr_number, e)
        return False

    body = comment.body or ""
    if COMMENT_TAG in body or COMMENT_REPLY_TAG in body:
        logger.info("Skipped: review comment %s is from the bot itself", comment_id)
        return False

    cache = cache if cache is not None else RunCache()
    page_size = config.get("page_size", 100)
    icon = config.get("bot_icon", "")
    commenter = ReviewCommenter(repo, cache, page_size=page_size, icon=icon)
    store = CommentStore(repo, cache, page_size=page_size, icon=icon)

    inputs = Inputs(system_message=heavy_bot.system_message)
    if pr.title:
        inputs.title = pr.title
    if pr.body:
        inputs.description = get_description(pr.body)
    inputs.comment = f"{comment.user.login}: {body}"
    inputs.diff = comment.diff_hunk or ""
    inputs.filename = comment.path

    chain, top_level = commenter.get_comment_chain(pr_number, comment)
    if top_level is None:
        logger.warning("Failed to find the top-level comment to reply to")
        return False
    inputs.comment_chain = chain

    if COMMENT_TAG not in chain and COMMENT_REPLY_TAG not in chain and ASK_BOT not in body:
        logger.info("Skipped: review comment %s is not addressed to the bot", comment_id)
        return False

    file_diff = _file_diff(repo, pr, comment.path)
    if not inputs.diff:
        if not file_diff:
            commenter.review_comment_reply(pr_number, top_level, NO_DIFF_REPLY)
            return True
        inputs.diff = file_diff
        file_diff = ""

    blocks = []
    if file_diff:
        blocks.append(field_block("file_diff", "file_diff", file_diff))
    summary = store.find_comment_with_tag(SUMMARIZE_TAG, pr_number)
    if summary is not None:
        short_summary = get_short_summary(summary.body)
        if short_summary:
            blocks.append(field_block("short_summary", "short_summary", short_summary))

    assembly = assemble(COMMENT, inputs, blocks, heavy_bot.token_limits.request_tokens)
    if assembly is None:
        commenter.review_comment_reply(pr_number, top_level, TOO_LARGE_REPLY)
        return True

    reply = heavy_bot.chat(assembly.prompt)
    if not reply:
        logger.warning("Reply to review comment %s: nothing obtained from model", comment_id)
        return False
    commenter.review_comment_reply(pr_number, top_level, reply)
    console.print(f"[green]Replied to review comment {comment_id} on PR #{pr_number}.[/green]")
    return True
