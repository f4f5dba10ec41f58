from prwarden_core.tokenizer import get_token_count


class TestTokenCount:
    def test_empty(self):
        assert get_token_count("") == 0

    def test_counts_tokens(self):
        assert get_token_count("one two three") == 3

    def test_end_of_text_not_counted(self):
        assert get_token_count("one<|endoftext|> two") == 2
