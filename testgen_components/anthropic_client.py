import asyncio
import logging
import os
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicClient:
    """
    Wrapper for the async Anthropic API client with retries.
    """

    def __init__(self, api_key: Optional[str] = None, max_retries: int = 3, retry_delay: float = 1.0,
                 model: Optional[str] = None):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key. If None, will read from ANTHROPIC_API_KEY env var.
            max_retries: Maximum number of retries for failed requests.
            retry_delay: Delay between retries in seconds.
            model: Model name. If None, will read from ANTHROPIC_MODEL env var.
        """
        self.api_key = api_key or os.getenv('ANTHROPIC_API_KEY')
        if not self.api_key:
            raise ValueError(
                "Anthropic API key not found. Please set ANTHROPIC_API_KEY in your .env file "
                "or pass it directly to the constructor."
            )

        # Retries are handled here so callers can turn them off per request.
        self.client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.model = model or os.getenv('ANTHROPIC_MODEL') or DEFAULT_MODEL

    async def generate_text(
        self,
        prompt: str,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
        retries: Optional[int] = None
    ) -> str:
        """
        Generate text using Claude API with retry logic.

        Args:
            prompt: The user prompt/message
            max_tokens: Maximum tokens to generate
            temperature: Temperature for generation (0.0 to 1.0)
            system_prompt: Optional system prompt
            retries: Overrides max_retries for this call

        Returns:
            Generated text response

        Raises:
            RuntimeError: If all attempts fail
        """
        max_retries = self.max_retries if retries is None else retries
        request_params = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}]
        }
        if system_prompt:
            request_params["system"] = system_prompt

        for attempt in range(max_retries + 1):
            try:
                response = await self.client.messages.create(**request_params)

                if response.content and len(response.content) > 0:
                    return response.content[0].text
                raise ValueError("Empty response from API")

            except (anthropic.APIError, ValueError) as e:
                if attempt == max_retries:
                    raise RuntimeError(f"Failed after {max_retries + 1} attempts: {str(e)}") from e

                logger.warning("Claude request failed (attempt %d/%d): %s", attempt + 1, max_retries + 1, e)
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise RuntimeError("Unexpected error in generate_text")
