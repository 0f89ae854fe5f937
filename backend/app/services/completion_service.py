"""Completion service: thin wrapper over the Anthropic Messages API."""

import logging

from anthropic import APIError, AsyncAnthropic

from app.config import get_settings
from app.exceptions import ServiceError

logger = logging.getLogger(__name__)
settings = get_settings()


class CompletionService:
    """Sends a system preamble plus a role/content transcript to the LLM."""

    def __init__(self):
        """Initialize Anthropic client."""
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def complete(self, system_preamble: str, messages: list[dict]) -> str:
        """
        Get a single non-streaming completion.

        Args:
            system_preamble: System prompt (persona, tone, memory)
            messages: Transcript as [{"role": "user"|"assistant", "content": str}]

        Returns:
            The concatenated text of the reply, possibly empty

        Raises:
            ServiceError: On any API failure (network, quota, bad request) or a
                response the client cannot interpret. No retries.
        """
        try:
            message = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                system=system_preamble,
                messages=messages,
            )
        except APIError as e:
            logger.warning("Completion request failed: %s", e)
            raise ServiceError("Completion service request failed") from e

        try:
            return "".join(
                block.text for block in message.content if getattr(block, "type", None) == "text"
            )
        except (AttributeError, TypeError) as e:
            raise ServiceError("Malformed completion response") from e


# Singleton instance
completion_service = CompletionService()
