from prwarden_core.limits import TOKEN_MARGIN, TokenLimits, known_models


class TestTokenLimits:
    def test_gpt4(self):
        limits = TokenLimits("gpt-4")
        assert (limits.max_tokens, limits.response_tokens, limits.request_tokens) == (8000, 2000, 5900)

    def test_unknown_model_gets_default(self):
        limits = TokenLimits("gpt-6")
        assert (limits.max_tokens, limits.response_tokens, limits.request_tokens) == (4000, 1000, 2900)

    def test_lookup_is_case_sensitive(self):
        assert TokenLimits("GPT-4").max_tokens == 4000

    def test_request_tokens_derived(self):
        for model in known_models():
            limits = TokenLimits(model)
            assert limits.request_tokens == limits.max_tokens - limits.response_tokens - TOKEN_MARGIN

    def test_str(self):
        assert str(TokenLimits("gpt-4")) == "max_tokens=8000, request_tokens=5900, response_tokens=2000"

    def test_knowledge_cut_off(self):
        assert TokenLimits("gpt-3.5-turbo").knowledge_cut_off == "2021-09-01"
