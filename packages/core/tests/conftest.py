import pytest


class _WordEncoding:
    """One token per whitespace-separated word, so tests never download an encoding."""

    def encode(self, text):
        return text.split()


@pytest.fixture(autouse=True)
def word_tokens(mocker):
    mocker.patch("prwarden_core.tokenizer._encoding", return_value=_WordEncoding())
