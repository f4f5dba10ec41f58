"""Base chat client implementing the Template Method pattern.

All providers share the same request flow:
    chat() → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

The system message, retry/backoff and response clean-up live here so every
provider behaves the same way.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import date

from prwarden_core.limits import TokenLimits

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_DEFAULT_TIMEOUT = 120.0


class BotNotInitializedError(RuntimeError):
    """The provider SDK client was never created; no request can be made."""


class BaseBot(ABC):
    PROVIDER: str = "model"

    client = None

    def __init__(
        self,
        model: str,
        system_message: str = "",
        language: str = "en-US",
        temperature: float = 0.0,
        retries: int = _MAX_RETRIES,
        timeout: float = _DEFAULT_TIMEOUT,
        token_limits: TokenLimits | None = None,
        debug: bool = False,
    ):
        self.model = model
        self.token_limits = token_limits or TokenLimits(model)
        self.system_message = system_message
        self.language = language
        self.temperature = temperature
        self.retries = max(1, retries)
        self.timeout = timeout
        self.debug = debug

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def chat(self, message: str) -> str:
        """Send one message and return the response text, or "" on failure.

        Raises BotNotInitializedError when no SDK client is configured; that
        is not a transient failure and the run cannot continue without one.
        """
        if not message:
            return ""
        if self.client is None:
            raise BotNotInitializedError(f"The {self.PROVIDER} API is not initialized")

        start = time.monotonic()
        raw = self._call_with_retry(self.build_system_prompt(), message)
        logger.info("%s response time: %d ms", self.PROVIDER, (time.monotonic() - start) * 1000)

        if raw is None:
            logger.warning("%s response is null", self.PROVIDER)
            return ""
        if self.debug:
            logger.info("%s responses: %s", self.PROVIDER, raw)
        if raw.startswith("with "):
            raw = raw[len("with ") :]
        return raw

    def build_system_prompt(self) -> str:
        return (
            f"{self.system_message}\n"
            f"Knowledge cutoff: {self.token_limits.knowledge_cut_off}\n"
            f"Current date: {date.today().isoformat()}\n\n"
            f"IMPORTANT: Entire response must be in the language with ISO code: {self.language}\n"
        )

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        It should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        """Retry _call_api up to ``retries`` times with exponential backoff."""
        for attempt in range(self.retries):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.retries - 1:
                    logger.error(
                        "failed to send message to %s after %d attempts: %s",
                        self.PROVIDER,
                        self.retries,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.PROVIDER,
                    attempt + 1,
                    self.retries,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None
