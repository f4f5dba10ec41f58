"""Tests for reviewed-commit tracking."""

from unittest.mock import MagicMock

import pytest

from prwarden_core.commits import (
    add_reviewed_commit_id,
    get_all_commit_ids,
    get_highest_reviewed_commit_id,
    get_reviewed_commit_ids,
    get_reviewed_commit_ids_block,
)
from prwarden_core.markers import COMMIT_BLOCK


def _paged(pages):
    paginated = MagicMock()
    paginated.get_page.side_effect = lambda i: pages[i] if i < len(pages) else []
    return paginated


class TestGetReviewedCommitIds:
    def test_no_block(self):
        assert get_reviewed_commit_ids("just a comment") == []

    def test_empty_block(self):
        assert get_reviewed_commit_ids(f"{COMMIT_BLOCK.start}{COMMIT_BLOCK.end}") == []

    def test_ids_in_order(self):
        body = f"{COMMIT_BLOCK.start}\n<!-- abc -->\n<!-- def -->\n{COMMIT_BLOCK.end}"
        assert get_reviewed_commit_ids(body) == ["abc", "def"]

    def test_block_extraction(self):
        block = f"{COMMIT_BLOCK.start}\n<!-- abc -->\n{COMMIT_BLOCK.end}"
        assert get_reviewed_commit_ids_block(f"before {block} after") == block
        assert get_reviewed_commit_ids_block("no block") == ""


class TestAddReviewedCommitId:
    def test_inserts_into_existing_block(self):
        body = "content <!-- commit_ids_reviewed_start --><!-- abc123 --><!-- commit_ids_reviewed_end --> more"
        result = add_reviewed_commit_id(body, "def456")
        block = get_reviewed_commit_ids_block(result)
        assert "<!-- abc123 -->" in block
        assert "<!-- def456 -->" in block
        assert result.endswith(f"{COMMIT_BLOCK.end} more")
        assert get_reviewed_commit_ids(result) == ["abc123", "def456"]

    def test_appends_block_when_missing(self):
        result = add_reviewed_commit_id("summary", "abc")
        assert result == f"summary\n{COMMIT_BLOCK.start}\n<!-- abc -->\n{COMMIT_BLOCK.end}"

    def test_preserves_order_and_appends_last(self):
        body = ""
        for sha in ("a1", "b2", "c3"):
            body = add_reviewed_commit_id(body, sha)
        assert get_reviewed_commit_ids(body) == ["a1", "b2", "c3"]

    @pytest.mark.parametrize("bad", ["abc-->", "<!--abc", "  "])
    def test_rejects_ids_that_break_the_block(self, bad):
        with pytest.raises(ValueError):
            add_reviewed_commit_id("", bad)


class TestHighestReviewedCommitId:
    def test_picks_latest_reviewed(self):
        assert get_highest_reviewed_commit_id(["a", "b", "c", "d"], ["a", "c"]) == "c"

    def test_none_reviewed(self):
        assert get_highest_reviewed_commit_id(["a", "b"], []) == ""

    def test_reviewed_commits_gone_from_pr(self):
        assert get_highest_reviewed_commit_id(["a", "b"], ["x"]) == ""


class TestGetAllCommitIds:
    def test_no_pr(self):
        assert get_all_commit_ids(None) == []

    def test_paginates_until_short_page(self):
        commits = [MagicMock(sha=f"sha{i}") for i in range(5)]
        pr = MagicMock()
        pr.get_commits.return_value = _paged([commits[:2], commits[2:4], commits[4:]])
        assert get_all_commit_ids(pr, page_size=2) == [f"sha{i}" for i in range(5)]
        assert pr.get_commits.return_value.get_page.call_count == 3
