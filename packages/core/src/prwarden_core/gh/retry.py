"""Retry policy for GitHub rate limits.

PyGithub retries through a urllib3 ``Retry`` object. ``ReviewSafeRetry``
checks rate-limited responses before handing over to PyGithub's own
``GithubRetry``:

- primary limit (``x-ratelimit-remaining: 0``): at most ``MAX_RATE_LIMIT_RETRIES`` retries;
- secondary limit (``retry-after`` header): retried, except a POST that
  submits a pull-request review. A resubmitted review may already have been
  created, and a duplicate review cannot be detected afterwards.
"""

from __future__ import annotations

import logging
import re
import time

from github import Auth, Github, GithubRetry, RateLimitExceededException

from prwarden_core.gh.pull_request import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

MAX_RATE_LIMIT_RETRIES = 3
DEFAULT_TIMEOUT = 30

_REVIEW_SUBMIT_RE = re.compile(r"/repos/[^/]+/[^/]+/pulls/\d+/reviews(?:/|$|\?)")


def is_review_submission(method: str | None, url: str | None) -> bool:
    return (method or "").upper() == "POST" and bool(_REVIEW_SUBMIT_RE.search(url or ""))


def on_rate_limit(retry_after: float, method: str | None, url: str | None, retry_count: int) -> bool:
    logger.warning(
        "Request quota exhausted for request %s %s\nRetry after: %s seconds\nRetry count: %s\n",
        method,
        url,
        retry_after,
        retry_count,
    )
    if retry_count <= MAX_RATE_LIMIT_RETRIES:
        logger.warning("Retrying after %s seconds!", retry_after)
        return True
    return False


def on_secondary_rate_limit(retry_after: float, method: str | None, url: str | None) -> bool:
    logger.warning(
        "SecondaryRateLimit detected for request %s %s ; retry after %s seconds", method, url, retry_after
    )
    return not is_review_submission(method, url)


def _header(response, name: str) -> str | None:
    headers = getattr(response, "headers", None) or {}
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _primary_retry_after(response) -> float:
    reset = _header(response, "x-ratelimit-reset")
    if reset is None:
        return 0
    return max(0, int(reset) - int(time.time()))


class ReviewSafeRetry(GithubRetry):
    """``GithubRetry`` that refuses to retry what must not be retried."""

    def increment(self, method=None, url=None, *args, **kwargs):
        response = kwargs.get("response")
        status = getattr(response, "status", None)
        if response is not None and status in (403, 429):
            retry_after = _header(response, "retry-after")
            if _header(response, "x-ratelimit-remaining") == "0":
                retry_count = len(self.history) + 1
                if not on_rate_limit(_primary_retry_after(response), method, url, retry_count):
                    raise RateLimitExceededException(status, None, dict(response.headers))
            elif retry_after is not None:
                if not on_secondary_rate_limit(float(retry_after), method, url):
                    raise RateLimitExceededException(status, None, dict(response.headers))
        return super().increment(method, url, *args, **kwargs)


def build_client(token: str | None, config: dict | None = None) -> Github:
    """GitHub client with the rate-limit policy, a request timeout and a fixed page size."""
    config = config or {}
    return Github(
        auth=Auth.Token(token) if token else None,
        retry=ReviewSafeRetry(),
        timeout=config.get("github_timeout", DEFAULT_TIMEOUT),
        per_page=config.get("page_size", DEFAULT_PAGE_SIZE),
    )
