"""Generative-search LLM client.

:class:`SearchLLM` is the seam the citation prober depends on;
:class:`AnthropicSearchClient` implements it with Claude, attaching the
server-side web search tool when grounding is requested.
"""

import logging
from typing import Optional, Protocol

import anthropic
from anthropic import AsyncAnthropic

from aio_diagnosis.config import Settings

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL_TYPE = "web_search_20250305"


class LLMError(Exception):
    """An LLM call failed."""


class LLMRateLimitError(LLMError):
    """The provider rejected the call because of rate limits or quota."""


class LLMUnavailableError(LLMError):
    """The provider cannot be used at all (missing or rejected credentials, no connectivity)."""


class SearchLLM(Protocol):
    async def generate(self, prompt: str, grounding: bool = False) -> str:
        ...


class AnthropicSearchClient:
    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        max_tokens: int = 1024,
        web_search_max_uses: int = 3,
    ):
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self.web_search_max_uses = web_search_max_uses

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnthropicSearchClient":
        """Build a client from *settings*.

        Raises:
            LLMUnavailableError: if no API key is configured.
        """
        if not settings.ANTHROPIC_API_KEY:
            raise LLMUnavailableError("ANTHROPIC_API_KEY is not set.")
        return cls(
            AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY),
            model=settings.LLM_MODEL,
            max_tokens=settings.LLM_MAX_TOKENS,
            web_search_max_uses=settings.LLM_WEB_SEARCH_MAX_USES,
        )

    async def generate(self, prompt: str, grounding: bool = False) -> str:
        """Send *prompt* and return the concatenated text of the reply.

        Raises:
            LLMRateLimitError: on HTTP 429 / quota errors.
            LLMUnavailableError: when the provider cannot be reached or rejects
                the credentials.
            LLMError: on any other API failure.
        """
        kwargs = {}
        if grounding:
            kwargs["tools"] = [
                {
                    "type": WEB_SEARCH_TOOL_TYPE,
                    "name": "web_search",
                    "max_uses": self.web_search_max_uses,
                }
            ]
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except anthropic.RateLimitError as exc:
            raise LLMRateLimitError(str(exc)) from exc
        except (
            anthropic.APIConnectionError,
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
        ) as exc:
            raise LLMUnavailableError(str(exc)) from exc
        except anthropic.APIError as exc:
            raise LLMError(str(exc)) from exc

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


def build_llm_client(settings: Settings) -> Optional[AnthropicSearchClient]:
    """Return a configured client, or ``None`` when the LLM cannot be used."""
    try:
        return AnthropicSearchClient.from_settings(settings)
    except LLMUnavailableError as exc:
        logger.warning("AI citation check disabled: %s", exc)
        return None
