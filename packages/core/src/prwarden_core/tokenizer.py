from __future__ import annotations

from functools import lru_cache

import tiktoken

ENCODING_NAME = "cl100k_base"
_END_OF_TEXT = "<|endoftext|>"


@lru_cache(maxsize=1)
def _encoding():
    return tiktoken.get_encoding(ENCODING_NAME)


def encode(text: str) -> list[int]:
    return _encoding().encode(text)


def get_token_count(text: str) -> int:
    """Number of tokens in ``text``; ``<|endoftext|>`` markers are not counted."""
    if not text:
        return 0
    return len(encode(text.replace(_END_OF_TEXT, "")))
