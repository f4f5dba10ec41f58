"""Tests for marker constants and block slicing."""

from prwarden_core.markers import (
    COMMENT,
    COMMIT_BLOCK,
    IN_PROGRESS,
    RAW_SUMMARY,
    RELEASE_NOTES,
    REPLY,
    SHORT_SUMMARY,
    SUMMARY,
    comment_greeting,
    format_comment,
    get_content_within_tags,
    get_description,
    get_raw_summary,
    get_short_summary,
    remove_content_within_tags,
    wrap_block,
    wrap_hidden_block,
)


class TestMarkerConstants:
    def test_literals_are_stable(self):
        assert COMMENT.start == "<!-- auto-generated comment -->"
        assert REPLY.start == "<!-- auto-generated reply -->"
        assert SUMMARY.start == "<!-- summarize -->"
        assert IN_PROGRESS.start == "<!-- summarize:in-progress:start -->"
        assert IN_PROGRESS.end == "<!-- summarize:in-progress:end -->"
        assert RELEASE_NOTES.start == "<!-- release-notes:start -->"
        assert RELEASE_NOTES.end == "<!-- release-notes:end -->"
        assert COMMIT_BLOCK.start == "<!-- commit_ids_reviewed_start -->"
        assert COMMIT_BLOCK.end == "<!-- commit_ids_reviewed_end -->"


class TestContentWithinTags:
    def test_returns_text_between_tags(self):
        assert get_content_within_tags("a [s]inner[e] b", "[s]", "[e]") == "inner"

    def test_missing_tag_returns_empty(self):
        assert get_content_within_tags("a [s]inner b", "[s]", "[e]") == ""
        assert get_content_within_tags("", "[s]", "[e]") == ""

    def test_remove_cuts_block_inclusive(self):
        assert remove_content_within_tags("a [s]inner[e] b", "[s]", "[e]") == "a  b"

    def test_remove_without_block_is_noop(self):
        assert remove_content_within_tags("nothing here", "[s]", "[e]") == "nothing here"

    def test_remove_with_end_before_start_keeps_text_twice(self):
        body = "x[e]mid[s]y"
        assert remove_content_within_tags(body, "[s]", "[e]") == "x[e]mid" + "mid[s]y"


class TestCommentFormatting:
    def test_format_comment_layout(self):
        assert format_comment("hello", COMMENT.start) == f"{comment_greeting()}\n\nhello\n\n{COMMENT.start}"

    def test_greeting_uses_icon(self):
        assert comment_greeting(":robot:").startswith(":robot:")

    def test_wrap_block(self):
        assert wrap_block(RELEASE_NOTES, "notes") == f"{RELEASE_NOTES.start}\nnotes\n{RELEASE_NOTES.end}"


class TestSummaries:
    def test_hidden_block_round_trip(self):
        raw = wrap_hidden_block(RAW_SUMMARY, "raw text")
        body = f"summary\n{raw}\n{wrap_hidden_block(SHORT_SUMMARY, 'short')}"
        assert get_raw_summary(body) == "raw text"
        assert get_short_summary(body) == "short"

    def test_hidden_block_breaks_up_comment_end(self):
        block = wrap_hidden_block(RAW_SUMMARY, "a --> b")
        inner = get_content_within_tags(block, RAW_SUMMARY.start, RAW_SUMMARY.end)
        assert inner.count("-->") == 1

    def test_missing_summaries_are_empty(self):
        assert get_raw_summary("plain") == ""
        assert get_short_summary("plain") == ""


class TestDescription:
    def test_description_drops_release_notes(self):
        body = f"Human text\n{RELEASE_NOTES.start}\nnotes\n{RELEASE_NOTES.end}"
        assert get_description(body) == "Human text\n"
