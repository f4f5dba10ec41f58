from __future__ import annotations

import logging

from github import GithubException

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def fetch_all_pages(paginated, page_size: int = DEFAULT_PAGE_SIZE) -> list:
    """Walk a PyGithub PaginatedList one page at a time until a short page.

    The client must be built with the same ``per_page`` as ``page_size``
    (see gh.retry.build_client), otherwise a full page looks short.
    """
    items: list = []
    page = 0
    while True:
        batch = list(paginated.get_page(page))
        items.extend(batch)
        if len(batch) < page_size:
            return items
        page += 1


def get_compare_files(repo, base_sha: str, head_sha: str) -> list:
    """Return the files changed between two commits, or [] when the compare fails."""
    try:
        return list(repo.compare(base_sha, head_sha).files)
    except GithubException as e:
        logger.warning("Failed to compare %s...%s: %s", base_sha[:7], head_sha[:7], e)
        return []
