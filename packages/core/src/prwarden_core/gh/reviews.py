"""Inline review comments: buffered during a run, posted as one review.

File tasks call ``buffer_review_comment`` from worker threads while the run is
in progress. Once every file is done the orchestrator calls ``submit_review``
exactly once, which posts everything in a single ``create_review`` call:

    EMPTY --buffer--> BUFFERING --submit--> SUBMITTED
      \\_________________submit_______________/

SUBMITTED is terminal; buffering or submitting again raises RuntimeError.
"""

from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum

from prwarden_core.gh.comments import RunCache
from prwarden_core.gh.pull_request import DEFAULT_PAGE_SIZE, fetch_all_pages, get_pull
from prwarden_core.markers import COMMENT_REPLY_TAG, COMMENT_TAG, comment_greeting, format_comment

logger = logging.getLogger(__name__)

CHAIN_SEPARATOR = "\n---\n"


class ReviewState(Enum):
    EMPTY = "empty"
    BUFFERING = "buffering"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class BufferedComment:
    path: str
    start_line: int
    end_line: int
    message: str

    def to_review_comment(self) -> dict:
        """Shape expected by ``PullRequest.create_review(comments=...)``."""
        data = {"path": self.path, "body": self.message, "line": self.end_line}
        if self.start_line != self.end_line:
            data["start_line"] = self.start_line
            data["start_side"] = "RIGHT"
        return data


class ReviewCommenter:
    def __init__(
        self, repo, cache: RunCache | None = None, page_size: int = DEFAULT_PAGE_SIZE, icon: str = "", limit=None
    ):
        self.repo = repo
        self.cache = cache if cache is not None else RunCache()
        self.page_size = page_size
        self.icon = icon
        self.limit = limit if limit is not None else nullcontext()
        self.state = ReviewState.EMPTY
        self._buffer: list[BufferedComment] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Buffering and submission                                            #
    # ------------------------------------------------------------------ #

    @property
    def buffered(self) -> list[BufferedComment]:
        with self._lock:
            return list(self._buffer)

    def buffer_review_comment(self, path: str, start_line: int, end_line: int, message: str) -> None:
        body = format_comment(message, COMMENT_TAG, self.icon)
        with self._lock:
            if self.state is ReviewState.SUBMITTED:
                raise RuntimeError("Review already submitted; cannot buffer more comments")
            self._buffer.append(BufferedComment(path, start_line, end_line, body))
            self.state = ReviewState.BUFFERING

    def submit_review(self, pr_number: int, commit_id: str, status_message: str) -> None:
        """Post every buffered comment as one review on ``commit_id``.

        With nothing buffered a status-only review is posted instead. Bot
        comments already sitting on the exact same range are deleted first so
        an unchanged hunk does not collect duplicates across runs. If the
        combined review is rejected, each comment is posted on its own.

        Failures are logged; this never raises for API errors.
        """
        with self._lock:
            if self.state is ReviewState.SUBMITTED:
                raise RuntimeError("Review already submitted")
            entries = self._buffer
            self._buffer = []
            self.state = ReviewState.SUBMITTED

        body = f"{comment_greeting(self.icon)}\n\n{status_message}"

        if not entries:
            logger.info("Submitting empty review for PR #%s", pr_number)
            try:
                with self.limit:
                    pr = get_pull(self.repo, pr_number)
                    pr.create_review(commit=self.repo.get_commit(commit_id), body=body, event="COMMENT")
            except Exception as e:
                logger.warning("Failed to submit empty review: %s", e)
            return

        for entry in entries:
            self._delete_stale_comments(pr_number, entry)

        self.delete_pending_review(pr_number)

        try:
            with self.limit:
                pr = get_pull(self.repo, pr_number)
                commit = self.repo.get_commit(commit_id)
        except Exception as e:
            logger.warning("Failed to load PR #%s at commit %s: %s", pr_number, commit_id, e)
            return

        try:
            with self.limit:
                pr.create_review(
                    commit=commit,
                    body=body,
                    event="COMMENT",
                    comments=[entry.to_review_comment() for entry in entries],
                )
            logger.info("Submitted review for PR #%s with %d comment(s)", pr_number, len(entries))
            return
        except Exception as e:
            logger.warning(
                "Failed to submit review for commit %s: %s. Falling back to individual comments.", commit_id, e
            )

        posted = 0
        for entry in entries:
            kwargs = {"line": entry.end_line, "side": "RIGHT"}
            if entry.start_line != entry.end_line:
                kwargs.update(start_line=entry.start_line, start_side="RIGHT")
            try:
                with self.limit:
                    pr.create_review_comment(entry.message, commit, entry.path, **kwargs)
                posted += 1
            except Exception as e:
                logger.warning("Failed to create review comment on %s:%s: %s", entry.path, entry.end_line, e)
        logger.info("Posted %d/%d comment(s) individually for PR #%s", posted, len(entries), pr_number)

    def _delete_stale_comments(self, pr_number: int, entry: BufferedComment) -> None:
        for c in self.get_comments_at_range(pr_number, entry.path, entry.start_line, entry.end_line):
            if COMMENT_TAG not in c.body:
                continue
            logger.info("Deleting review comment for %s:%s-%s", entry.path, entry.start_line, entry.end_line)
            try:
                with self.limit:
                    c.delete()
            except Exception as e:
                logger.warning("Failed to delete review comment: %s", e)
                continue
            cached = self.cache.review_comments.get(pr_number)
            if cached is not None and c in cached:
                cached.remove(c)

    def delete_pending_review(self, pr_number: int) -> None:
        """Drop a PENDING review left behind by an interrupted run.

        GitHub allows one pending review per user, and a stale one blocks
        creating the next.
        """
        try:
            with self.limit:
                reviews = list(get_pull(self.repo, pr_number).get_reviews())
        except Exception as e:
            logger.warning("Failed to list reviews: %s", e)
            return

        pending = next((r for r in reviews if r.state == "PENDING"), None)
        if pending is None:
            return
        logger.info("Deleting pending review for PR #%s review id: %s", pr_number, pending.id)
        try:
            with self.limit:
                pending.delete()
        except Exception as e:
            logger.warning("Failed to delete pending review: %s", e)

    # ------------------------------------------------------------------ #
    # Reading existing review comments                                    #
    # ------------------------------------------------------------------ #

    def list_review_comments(self, pr_number: int) -> list:
        cached = self.cache.review_comments.get(pr_number)
        if cached is not None:
            return cached
        try:
            with self.limit:
                comments = fetch_all_pages(get_pull(self.repo, pr_number).get_review_comments(), self.page_size)
        except Exception as e:
            logger.warning("Failed to list review comments: %s", e)
            return []
        self.cache.review_comments[pr_number] = comments
        return comments

    def get_comments_within_range(self, pr_number: int, path: str, start_line: int, end_line: int) -> list:
        """Comments on ``path`` whose line span lies inside [start_line, end_line]."""
        result = []
        for c in self.list_review_comments(pr_number):
            if c.path != path or not c.body or c.line is None:
                continue
            first = c.start_line if c.start_line is not None else c.line
            if first >= start_line and c.line <= end_line:
                result.append(c)
        return result

    def get_comments_at_range(self, pr_number: int, path: str, start_line: int, end_line: int) -> list:
        """Comments on ``path`` spanning exactly [start_line, end_line]."""
        result = []
        for c in self.list_review_comments(pr_number):
            if c.path != path or not c.body or c.line is None:
                continue
            first = c.start_line if c.start_line is not None else c.line
            if first == start_line and c.line == end_line:
                result.append(c)
        return result

    def get_comment_chains_within_range(
        self, pr_number: int, path: str, start_line: int, end_line: int, tag: str = ""
    ) -> str:
        """Render every thread in range that contains ``tag`` as numbered conversation chains."""
        existing = self.get_comments_within_range(pr_number, path, start_line, end_line)
        chains = []
        for top_level in (c for c in existing if not c.in_reply_to_id):
            chain = compose_comment_chain(existing, top_level)
            if chain and tag in chain:
                chains.append(f"Conversation Chain {len(chains) + 1}:\n{chain}{CHAIN_SEPARATOR}")
        return "".join(chains)

    def get_top_level_comment(self, review_comments: list, comment):
        by_id = {c.id: c for c in review_comments}
        top_level = comment
        while top_level.in_reply_to_id:
            parent = by_id.get(top_level.in_reply_to_id)
            if parent is None:
                break
            top_level = parent
        return top_level

    def get_comment_chain(self, pr_number: int, comment) -> tuple[str, object | None]:
        """Return ``(chain_text, top_level_comment)`` for the thread ``comment`` belongs to."""
        review_comments = self.list_review_comments(pr_number)
        if not review_comments:
            return "", None
        top_level = self.get_top_level_comment(review_comments, comment)
        return compose_comment_chain(review_comments, top_level), top_level

    # ------------------------------------------------------------------ #
    # Replies                                                             #
    # ------------------------------------------------------------------ #

    def review_comment_reply(self, pr_number: int, top_level_comment, message: str) -> None:
        """Reply in the thread of ``top_level_comment`` and mark the thread as answered."""
        reply = format_comment(message, COMMENT_REPLY_TAG, self.icon)
        try:
            with self.limit:
                pr = get_pull(self.repo, pr_number)
                pr.create_review_comment_reply(top_level_comment.id, reply)
        except Exception as e:
            logger.warning("Failed to reply to the top-level comment %s", e)
            try:
                with self.limit:
                    pr = get_pull(self.repo, pr_number)
                    pr.create_review_comment_reply(
                        top_level_comment.id,
                        f"Could not post the reply to the top-level comment due to the following error: {e}",
                    )
            except Exception as e2:
                logger.warning("Failed to reply to the top-level comment %s", e2)

        try:
            if COMMENT_TAG in (top_level_comment.body or ""):
                with self.limit:
                    top_level_comment.edit(top_level_comment.body.replace(COMMENT_TAG, COMMENT_REPLY_TAG))
        except Exception as e:
            logger.warning("Failed to update the top-level comment %s", e)


def compose_comment_chain(review_comments: list, top_level_comment) -> str:
    """Linear transcript of a thread: the top-level comment, then its replies in list order."""
    lines = [f"{top_level_comment.user.login}: {top_level_comment.body}"]
    lines.extend(f"{c.user.login}: {c.body}" for c in review_comments if c.in_reply_to_id == top_level_comment.id)
    return CHAIN_SEPARATOR.join(lines)
