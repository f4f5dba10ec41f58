"""Tagged comments on an issue or PR conversation.

An invisible marker string inside the body is the only key a comment has.
``replace`` looks a comment up by that marker and edits it in place, so the
bot keeps one summary comment per PR no matter how often it runs.

All calls are best-effort: a failure is logged and the run carries on.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field

from prwarden_core.gh.pull_request import DEFAULT_PAGE_SIZE, fetch_all_pages, get_pull
from prwarden_core.markers import (
    COMMENT_TAG,
    RELEASE_NOTES,
    format_comment,
    get_description,
    remove_content_within_tags,
    wrap_block,
)

logger = logging.getLogger(__name__)

MODE_CREATE = "create"
MODE_REPLACE = "replace"


@dataclass
class RunCache:
    """Comment lists fetched during one invocation, keyed by issue/PR number."""

    issue_comments: dict[int, list] = field(default_factory=dict)
    review_comments: dict[int, list] = field(default_factory=dict)

    def clear(self) -> None:
        self.issue_comments.clear()
        self.review_comments.clear()


class CommentStore:
    def __init__(
        self, repo, cache: RunCache | None = None, page_size: int = DEFAULT_PAGE_SIZE, icon: str = "", limit=None
    ):
        self.repo = repo
        self.cache = cache if cache is not None else RunCache()
        self.page_size = page_size
        self.icon = icon
        # Any context manager works here; prwarden_core.concurrency.ConcurrencyLimit in practice.
        self.limit = limit if limit is not None else nullcontext()

    def comment(self, message: str, tag: str = "", mode: str = MODE_REPLACE, target: int | None = None):
        """Post ``message`` with the bot greeting and ``tag`` appended.

        ``mode`` is "create" (always a new comment) or "replace" (edit the
        comment carrying ``tag`` if one exists). Returns the posted comment or
        None.
        """
        if not target:
            logger.info("Skipped: no pull request or issue to comment on")
            return None
        if not tag:
            tag = COMMENT_TAG

        body = format_comment(message, tag, self.icon)
        if mode == MODE_CREATE:
            return self.create(body, target)
        if mode != MODE_REPLACE:
            logger.warning('Unknown mode: %s, use "replace" instead', mode)
        return self.replace(body, tag, target)

    def create(self, body: str, target: int):
        try:
            with self.limit:
                created = self.repo.get_issue(target).create_comment(body)
        except Exception as e:
            logger.warning("Failed to create comment: %s", e)
            return None

        cached = self.cache.issue_comments.get(target)
        if cached is not None:
            cached.append(created)
        return created

    def replace(self, body: str, tag: str, target: int):
        comments = self.list_comments(target)
        if comments is None:
            logger.warning("Skipped: could not look up the comment tagged %s, not posting a new one", tag)
            return None
        existing = _with_tag(comments, tag)
        if existing is None:
            return self.create(body, target)
        try:
            with self.limit:
                existing.edit(body)
        except Exception as e:
            logger.warning("Failed to replace comment: %s", e)
            return None
        return existing

    def find_comment_with_tag(self, tag: str, target: int):
        return _with_tag(self.list_comments(target) or [], tag)

    def list_comments(self, target: int) -> list | None:
        """All comments of ``target``, fetched once per run.

        A failed fetch returns None and is not cached, so a later call tries again.
        """
        cached = self.cache.issue_comments.get(target)
        if cached is not None:
            return cached
        try:
            with self.limit:
                comments = fetch_all_pages(self.repo.get_issue(target).get_comments(), self.page_size)
        except Exception as e:
            logger.warning("Failed to list comments: %s", e)
            return None
        self.cache.issue_comments[target] = comments
        return comments

    def update_description(self, pr_number: int, message: str) -> None:
        """Write ``message`` into the release-notes block of the PR description.

        The human-written part of the description is kept; an older
        release-notes block is dropped first.
        """
        try:
            with self.limit:
                pr = get_pull(self.repo, pr_number)
                description = get_description(pr.body or "")
                cleaned = remove_content_within_tags(message, RELEASE_NOTES.start, RELEASE_NOTES.end)
                pr.edit(body=f"{description}\n{wrap_block(RELEASE_NOTES, cleaned)}")
        except Exception as e:
            logger.warning("Failed to get PR: %s, skipping adding release notes to description.", e)


def _with_tag(comments, tag: str):
    for c in comments:
        if c.body and tag in c.body:
            return c
    return None
