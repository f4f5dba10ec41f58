"""Values substituted into prompt templates.

Templates reference values as ``$name`` (``$title``, ``$file_diff``, ...).
A placeholder whose value is empty is left in the output verbatim, so a
section of the template is never silently blanked.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass

_PLACEHOLDER_RE = re.compile(r"\$([a-z_]+)")


@dataclass
class Inputs:
    system_message: str = ""
    title: str = "no title provided"
    description: str = "no description provided"
    raw_summary: str = ""
    short_summary: str = ""
    filename: str = ""
    file_content: str = "file contents cannot be provided"
    file_diff: str = "file diff cannot be provided"
    patches: str = ""
    diff: str = "no diff"
    comment_chain: str = "no other comments on this patch"
    comment: str = "no comment provided"

    def clone(self) -> Inputs:
        return copy.copy(self)

    def values(self) -> dict[str, str]:
        return dict(vars(self))

    def render(self, template: str | None) -> str:
        if not template:
            return ""
        values = self.values()

        def _substitute(match: re.Match) -> str:
            value = values.get(match.group(1))
            return value if value else match.group(0)

        return _PLACEHOLDER_RE.sub(_substitute, template)
