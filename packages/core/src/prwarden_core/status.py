"""Transient "review in progress" banner inside the summary comment.

The banner is one marker block prepended to the body. Everything it adds
sits between the two delimiters, so removing the block gives back the body
exactly as it was.
"""

from __future__ import annotations

from prwarden_core.markers import IN_PROGRESS

IN_PROGRESS_BANNER = "Currently reviewing new changes in this PR..."


def add_in_progress_status(body: str, status_text: str) -> str:
    if IN_PROGRESS.start in body:
        return body
    return f"{IN_PROGRESS.start}\n{IN_PROGRESS_BANNER}\n\n{status_text}\n\n---\n{IN_PROGRESS.end}{body}"


def remove_in_progress_status(body: str) -> str:
    start = body.find(IN_PROGRESS.start)
    if start == -1:
        return body
    end = body.find(IN_PROGRESS.end, start)
    if end == -1:
        return body
    return body[:start] + body[end + len(IN_PROGRESS.end) :]
