"""Tests for the rate-limit-aware retry policy."""

import time
from types import SimpleNamespace

import pytest
from github import GithubRetry, RateLimitExceededException

from prwarden_core.gh.retry import (
    MAX_RATE_LIMIT_RETRIES,
    ReviewSafeRetry,
    build_client,
    is_review_submission,
    on_rate_limit,
    on_secondary_rate_limit,
)

REVIEWS_URL = "/repos/octo/repo/pulls/12/reviews"


def _response(status, headers):
    return SimpleNamespace(status=status, headers=headers)


@pytest.fixture
def parent_increment(mocker):
    return mocker.patch.object(GithubRetry, "increment", return_value="retried")


class TestClassification:
    @pytest.mark.parametrize(
        "method,url,expected",
        [
            ("POST", REVIEWS_URL, True),
            ("post", "https://api.github.com" + REVIEWS_URL, True),
            ("POST", REVIEWS_URL + "?per_page=100", True),
            ("GET", REVIEWS_URL, False),
            ("POST", "/repos/octo/repo/pulls/12/comments", False),
            ("POST", "/repos/octo/repo/issues/12/comments", False),
            (None, None, False),
        ],
    )
    def test_is_review_submission(self, method, url, expected):
        assert is_review_submission(method, url) is expected


class TestHandlers:
    def test_primary_retries_up_to_limit(self):
        assert on_rate_limit(10, "GET", "/x", 1)
        assert on_rate_limit(10, "GET", "/x", MAX_RATE_LIMIT_RETRIES)
        assert not on_rate_limit(10, "GET", "/x", MAX_RATE_LIMIT_RETRIES + 1)

    def test_primary_logs_quota(self, caplog):
        on_rate_limit(10, "GET", "/x", 1)
        assert "Request quota exhausted for request GET /x" in caplog.text

    def test_secondary_never_retries_review_submission(self):
        assert not on_secondary_rate_limit(60, "POST", REVIEWS_URL)
        assert on_secondary_rate_limit(60, "POST", "/repos/octo/repo/issues/1/comments")
        assert on_secondary_rate_limit(60, "GET", REVIEWS_URL)


class TestReviewSafeRetry:
    def test_unrelated_status_passes_through(self, parent_increment):
        result = ReviewSafeRetry().increment("GET", "/x", response=_response(500, {}))
        assert result == "retried"
        parent_increment.assert_called_once()

    def test_primary_within_budget_passes_through(self, parent_increment):
        headers = {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(time.time()) + 5)}
        assert ReviewSafeRetry().increment("GET", "/x", response=_response(403, headers)) == "retried"

    def test_primary_over_budget_raises(self, parent_increment):
        headers = {"x-ratelimit-remaining": "0"}
        policy = ReviewSafeRetry(history=(object(),) * MAX_RATE_LIMIT_RETRIES)
        with pytest.raises(RateLimitExceededException):
            policy.increment("GET", "/x", response=_response(403, headers))
        parent_increment.assert_not_called()

    def test_secondary_review_submission_raises(self, parent_increment):
        with pytest.raises(RateLimitExceededException):
            ReviewSafeRetry().increment("POST", REVIEWS_URL, response=_response(403, {"Retry-After": "60"}))
        parent_increment.assert_not_called()

    def test_secondary_other_request_retries(self, parent_increment):
        result = ReviewSafeRetry().increment("GET", REVIEWS_URL, response=_response(429, {"retry-after": "60"}))
        assert result == "retried"

    def test_no_response(self, parent_increment):
        assert ReviewSafeRetry().increment("GET", "/x", error=OSError("boom")) == "retried"


class TestBuildClient:
    def test_configures_policy(self, mocker):
        github = mocker.patch("prwarden_core.gh.retry.Github")
        build_client("tok", {"github_timeout": 12, "page_size": 50})
        kwargs = github.call_args.kwargs
        assert isinstance(kwargs["retry"], ReviewSafeRetry)
        assert kwargs["timeout"] == 12
        assert kwargs["per_page"] == 50
        assert kwargs["auth"] is not None

    def test_anonymous(self, mocker):
        github = mocker.patch("prwarden_core.gh.retry.Github")
        build_client(None)
        assert github.call_args.kwargs["auth"] is None
