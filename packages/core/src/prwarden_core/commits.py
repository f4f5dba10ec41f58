"""Tracking which commits of a PR were already reviewed.

The reviewed ids live in a marker block inside the bot's summary comment:

    <!-- commit_ids_reviewed_start -->
    <!-- 3f2c... -->
    <!-- 9ab1... -->
    <!-- commit_ids_reviewed_end -->

Ids are kept in review order. The next run diffs from the most recent
reviewed commit that is still part of the PR.
"""

from __future__ import annotations

import re

from prwarden_core.gh.pull_request import DEFAULT_PAGE_SIZE, fetch_all_pages
from prwarden_core.markers import COMMIT_BLOCK, get_content_within_tags, wrap_block

_COMMIT_TOKEN_RE = re.compile(r"<!--\s*(.+?)\s*-->")


def _commit_token(commit_id: str) -> str:
    if "-->" in commit_id or "<!--" in commit_id or not commit_id.strip():
        raise ValueError(f"Invalid commit id: {commit_id!r}")
    return f"<!-- {commit_id} -->"


def get_reviewed_commit_ids(body: str) -> list[str]:
    section = get_content_within_tags(body, COMMIT_BLOCK.start, COMMIT_BLOCK.end)
    if not section:
        return []
    return [match.strip() for match in _COMMIT_TOKEN_RE.findall(section)]


def get_reviewed_commit_ids_block(body: str) -> str:
    start = body.find(COMMIT_BLOCK.start)
    end = body.find(COMMIT_BLOCK.end)
    if start == -1 or end == -1:
        return ""
    return body[start : end + len(COMMIT_BLOCK.end)]


def add_reviewed_commit_id(body: str, commit_id: str) -> str:
    """Record ``commit_id`` as reviewed, appending a new block when none exists."""
    token = _commit_token(commit_id)
    start = body.find(COMMIT_BLOCK.start)
    end = body.find(COMMIT_BLOCK.end)
    if start == -1 or end == -1:
        return f"{body}\n{wrap_block(COMMIT_BLOCK, token)}"
    return f"{body[:end]}{token}\n{body[end:]}"


def get_highest_reviewed_commit_id(commit_ids: list[str], reviewed_commit_ids: list[str]) -> str:
    """Return the most recent commit of the PR that was already reviewed, or "".

    ``commit_ids`` is in API order (oldest first).
    """
    reviewed = set(reviewed_commit_ids)
    for commit_id in reversed(commit_ids):
        if commit_id in reviewed:
            return commit_id
    return ""


def get_all_commit_ids(pr, page_size: int = DEFAULT_PAGE_SIZE) -> list[str]:
    if pr is None:
        return []
    return [commit.sha for commit in fetch_all_pages(pr.get_commits(), page_size)]
