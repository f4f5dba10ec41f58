"""Invisible HTML-comment markers embedded in comment and PR-description bodies.

Every marker the bot writes is re-parsed on the next run by plain substring
search, so the literals below are part of the wire format and must never
change. Writers and readers both import them from here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MarkerKind(Enum):
    COMMENT = "comment"
    REPLY = "reply"
    SUMMARY = "summary"
    IN_PROGRESS = "in_progress"
    RELEASE_NOTES = "release_notes"
    RAW_SUMMARY = "raw_summary"
    SHORT_SUMMARY = "short_summary"
    COMMIT_BLOCK = "commit_block"


@dataclass(frozen=True)
class Marker:
    """A tag (``end`` is None) or a delimited block (``start``/``end`` pair)."""

    kind: MarkerKind
    start: str
    end: str | None = None


COMMENT = Marker(MarkerKind.COMMENT, "<!-- auto-generated comment -->")
REPLY = Marker(MarkerKind.REPLY, "<!-- auto-generated reply -->")
SUMMARY = Marker(MarkerKind.SUMMARY, "<!-- summarize -->")
IN_PROGRESS = Marker(
    MarkerKind.IN_PROGRESS,
    "<!-- summarize:in-progress:start -->",
    "<!-- summarize:in-progress:end -->",
)
RELEASE_NOTES = Marker(
    MarkerKind.RELEASE_NOTES,
    "<!-- release-notes:start -->",
    "<!-- release-notes:end -->",
)
RAW_SUMMARY = Marker(MarkerKind.RAW_SUMMARY, "<!-- rawsummary:start -->", "<!-- rawsummary:end -->")
SHORT_SUMMARY = Marker(MarkerKind.SHORT_SUMMARY, "<!-- shortsummary:start -->", "<!-- shortsummary:end -->")
COMMIT_BLOCK = Marker(
    MarkerKind.COMMIT_BLOCK,
    "<!-- commit_ids_reviewed_start -->",
    "<!-- commit_ids_reviewed_end -->",
)

# Plain-string aliases for the tags searched most often.
COMMENT_TAG = COMMENT.start
COMMENT_REPLY_TAG = REPLY.start
SUMMARIZE_TAG = SUMMARY.start

BOT_NAME = "prwarden"


def comment_greeting(icon: str = "") -> str:
    return f"{icon}   {BOT_NAME}"


def format_comment(message: str, tag: str, icon: str = "") -> str:
    """Wrap a message the way every bot comment is posted: greeting, message, tag."""
    return f"{comment_greeting(icon)}\n\n{message}\n\n{tag}"


def wrap_block(marker: Marker, content: str) -> str:
    return f"{marker.start}\n{content}\n{marker.end}"


def get_content_within_tags(content: str, start_tag: str, end_tag: str) -> str:
    """Return the text between the first ``start_tag`` and the first ``end_tag``, or ""."""
    start = content.find(start_tag)
    end = content.find(end_tag)
    if start >= 0 and end >= 0:
        return content[start + len(start_tag) : end]
    return ""


def remove_content_within_tags(content: str, start_tag: str, end_tag: str) -> str:
    """Cut everything from the first ``start_tag`` through the first ``end_tag``.

    Both indices are taken independently, so an end tag that precedes the
    start tag keeps the text between them twice. Existing comment bodies
    were written with this rule and are parsed with it too.
    """
    start = content.find(start_tag)
    end = content.find(end_tag)
    if start >= 0 and end >= 0:
        return content[:start] + content[end + len(end_tag) :]
    return content


def wrap_hidden_block(marker: Marker, content: str) -> str:
    """A block whose content is itself an HTML comment, so it never renders.

    HTML comments do not nest; a "-->" inside ``content`` is broken up.
    """
    return f"{marker.start}\n<!--\n{content.replace('-->', '-- >')}\n-->\n{marker.end}"


def _unwrap_hidden(content: str) -> str:
    content = content.strip()
    if content.startswith("<!--") and content.endswith("-->"):
        content = content[len("<!--") : -len("-->")]
    return content.strip()


def get_raw_summary(body: str) -> str:
    return _unwrap_hidden(get_content_within_tags(body, RAW_SUMMARY.start, RAW_SUMMARY.end))


def get_short_summary(body: str) -> str:
    return _unwrap_hidden(get_content_within_tags(body, SHORT_SUMMARY.start, SHORT_SUMMARY.end))


def get_description(body: str) -> str:
    """The human-written part of a PR description (release notes block removed)."""
    return remove_content_within_tags(body, RELEASE_NOTES.start, RELEASE_NOTES.end)
