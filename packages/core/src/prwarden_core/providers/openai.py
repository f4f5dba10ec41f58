from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from prwarden_core.providers.base import BaseBot

DEFAULT_API_BASE = "https://api.openai.com/v1"


class OpenAIBot(BaseBot):
    PROVIDER = "openai"

    def __init__(
        self, api_key: str | None, api_base: str = DEFAULT_API_BASE, organization: str | None = None, **kwargs
    ):
        super().__init__(**kwargs)
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install 'prwarden[openai]'"
            )
        if not api_key:
            raise ValueError(
                "Unable to initialize the OpenAI API, 'OPENAI_API_KEY' environment variable is not available"
            )
        # Retries are handled by _call_with_retry, not by the SDK.
        self.client = _OpenAI(
            api_key=api_key, base_url=api_base, organization=organization, timeout=self.timeout, max_retries=0
        )

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.token_limits.response_tokens,
        )
        return response.choices[0].message.content
