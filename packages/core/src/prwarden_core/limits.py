"""Token limits per model.

``request_tokens`` is always derived from the other two values, leaving a
fixed margin for message framing.
"""

from __future__ import annotations

from dataclasses import dataclass, field

TOKEN_MARGIN = 100
DEFAULT_KNOWLEDGE_CUT_OFF = "2021-09-01"

# model -> (max_tokens, response_tokens, knowledge_cut_off)
_MODEL_LIMITS: dict[str, tuple[int, int, str]] = {
    "gpt-3.5-turbo": (4000, 1000, DEFAULT_KNOWLEDGE_CUT_OFF),
    "gpt-3.5-turbo-16k": (16300, 3000, DEFAULT_KNOWLEDGE_CUT_OFF),
    "gpt-4": (8000, 2000, DEFAULT_KNOWLEDGE_CUT_OFF),
    "gpt-4-32k": (32600, 4000, DEFAULT_KNOWLEDGE_CUT_OFF),
    "gpt-4o": (128000, 4096, DEFAULT_KNOWLEDGE_CUT_OFF),
    "gpt-5": (200000, 8192, "2024-04-01"),
}
_DEFAULT_LIMITS = _MODEL_LIMITS["gpt-3.5-turbo"]


@dataclass
class TokenLimits:
    """Budget for one model. Unknown names (case-sensitive) get the smallest profile."""

    model: str = "gpt-3.5-turbo"
    max_tokens: int = field(init=False)
    response_tokens: int = field(init=False)
    knowledge_cut_off: str = field(init=False)

    def __post_init__(self):
        self.max_tokens, self.response_tokens, self.knowledge_cut_off = _MODEL_LIMITS.get(self.model, _DEFAULT_LIMITS)

    @property
    def request_tokens(self) -> int:
        return self.max_tokens - self.response_tokens - TOKEN_MARGIN

    def __str__(self) -> str:
        return (
            f"max_tokens={self.max_tokens}, request_tokens={self.request_tokens}, "
            f"response_tokens={self.response_tokens}"
        )


def known_models() -> list[str]:
    return list(_MODEL_LIMITS)
