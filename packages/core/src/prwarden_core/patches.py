"""Unified-diff hunks and the line-range review format.

A file patch from the compare API is split into hunks. Each hunk is shown to
the model twice: the new side annotated with line numbers, the old side as
it was. The model answers with ``<start>-<end>:`` headers followed by a
comment and a ``---`` separator; ``parse_review`` turns that back into
line-ranged comments anchored inside a hunk.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@.*$", re.MULTILINE)
_LINE_RANGE_RE = re.compile(r"(?:^|\s)(\d+)-(\d+):\s*$")
_CODE_LINE_NUMBER_RE = re.compile(r"^ *(\d+): ", re.MULTILINE)
_COMMENT_SEPARATOR = "---"

# Context lines this close to a hunk edge are shown without a line number.
_CONTEXT_SKIP_START = 3
_CONTEXT_SKIP_END = 3


@dataclass(frozen=True)
class LineRange:
    start_line: int
    end_line: int


@dataclass(frozen=True)
class HunkRanges:
    old: LineRange
    new: LineRange


@dataclass(frozen=True)
class Hunk:
    old: str
    new: str


@dataclass(frozen=True)
class FilePatch:
    """One hunk of a file, ready to be packed into a review prompt."""

    start_line: int
    end_line: int
    text: str


@dataclass
class Review:
    start_line: int
    end_line: int
    comment: str


def split_patch(patch: str | None) -> list[str]:
    """Split a file patch into hunks, each starting at its ``@@`` header."""
    if not patch:
        return []
    starts = [m.start() for m in _HUNK_HEADER_RE.finditer(patch)]
    return [patch[start:end] for start, end in zip(starts, starts[1:] + [len(patch)])]


def patch_start_end_line(patch: str) -> HunkRanges | None:
    match = _HUNK_HEADER_RE.search(patch)
    if match is None:
        return None
    old_begin, old_count, new_begin, new_count = match.groups()
    old_begin, new_begin = int(old_begin), int(new_begin)
    old_count = int(old_count) if old_count is not None else 1
    new_count = int(new_count) if new_count is not None else 1
    return HunkRanges(
        old=LineRange(old_begin, old_begin + old_count - 1),
        new=LineRange(new_begin, new_begin + new_count - 1),
    )


def parse_patch(patch: str) -> Hunk | None:
    """Render one hunk as (old side, new side annotated with line numbers)."""
    ranges = patch_start_end_line(patch)
    if ranges is None:
        return None

    lines = patch.split("\n")[1:]
    if lines and lines[-1] == "":
        lines.pop()

    removal_only = not any(line.startswith("+") for line in lines)
    old_lines: list[str] = []
    new_lines: list[str] = []
    new_line = ranges.new.start_line
    for index, line in enumerate(lines, 1):
        if line.startswith("-"):
            old_lines.append(line[1:])
        elif line.startswith("+"):
            new_lines.append(f"{new_line}: {line[1:]}")
            new_line += 1
        else:
            old_lines.append(line)
            if removal_only or _CONTEXT_SKIP_START < index <= len(lines) - _CONTEXT_SKIP_END:
                new_lines.append(f"{new_line}: {line}")
            else:
                new_lines.append(line)
            new_line += 1
    return Hunk(old="\n".join(old_lines), new="\n".join(new_lines))


def render_hunk(hunk: Hunk) -> str:
    return f"\n---new_hunk---\n```\n{hunk.new}\n```\n\n---old_hunk---\n```\n{hunk.old}\n```\n"


def file_patches(patch: str | None) -> list[FilePatch]:
    """All hunks of a file patch as ``FilePatch`` entries; unparsable hunks are skipped."""
    result = []
    for hunk_text in split_patch(patch):
        ranges = patch_start_end_line(hunk_text)
        hunk = parse_patch(hunk_text)
        if ranges is None or hunk is None:
            continue
        result.append(FilePatch(ranges.new.start_line, ranges.new.end_line, render_hunk(hunk)))
    return result


def _sanitize_code_block(comment: str, label: str) -> str:
    """Strip ``NN: `` line-number prefixes the model copied into fenced blocks."""
    fence_start = f"```{label}"
    fence_end = "```"
    start = comment.find(fence_start)
    while start != -1:
        body_start = start + len(fence_start)
        end = comment.find(fence_end, body_start)
        if end == -1:
            break
        block = _CODE_LINE_NUMBER_RE.sub("", comment[body_start:end])
        comment = comment[:body_start] + block + comment[end:]
        start = comment.find(fence_start, body_start + len(block) + len(fence_end))
    return comment


def sanitize_response(response: str) -> str:
    return _sanitize_code_block(_sanitize_code_block(response, "suggestion"), "diff")


def _anchor(review: Review, patches: list[FilePatch]) -> Review:
    """Move a review that is not inside a single hunk onto the hunk it overlaps most."""
    best: FilePatch | None = None
    max_overlap = 0
    for patch in patches:
        overlap = max(0, min(review.end_line, patch.end_line) - max(review.start_line, patch.start_line) + 1)
        if overlap > max_overlap:
            max_overlap = overlap
            best = patch
            if overlap == review.end_line - review.start_line + 1:
                return review

    original = f"Original lines [{review.start_line}-{review.end_line}]"
    if best is not None:
        note = (
            "> Note: This review was outside of the patch, so it was mapped to the patch with the greatest "
            f"overlap. {original}"
        )
    elif patches:
        best = patches[0]
        note = (
            "> Note: This review was outside of the patch, but no patch was found that overlapped with it. "
            f"{original}"
        )
    else:
        return review
    return Review(best.start_line, best.end_line, f"{note}\n\n{review.comment}")


def parse_review(response: str, patches: list[FilePatch]) -> list[Review]:
    """Parse the model's ``<start>-<end>:`` / ``---`` formatted review into anchored reviews."""
    reviews: list[Review] = []
    current: Review | None = None

    def _store() -> None:
        if current is not None:
            reviews.append(_anchor(current, patches))

    for line in sanitize_response(response.strip()).split("\n"):
        match = _LINE_RANGE_RE.search(line)
        if match:
            _store()
            current = Review(int(match.group(1)), int(match.group(2)), "")
            continue
        if line.strip() == _COMMENT_SEPARATOR:
            _store()
            current = None
            continue
        if current is not None:
            current.comment += f"{line}\n"
    _store()
    return reviews
