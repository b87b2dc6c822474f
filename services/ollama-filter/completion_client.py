"""HTTP client for the Ollama OpenAI-compatible completion endpoint.

One POST per query, no retries: a failed call means no results for that
query, not an error for the caller.
"""

import logging

import httpx

from config import settings

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS = 100


class CompletionTransportError(Exception):
    """The completion endpoint could not be reached or its body not read."""


class CompletionClient:
    """Async HTTP client for text completions."""

    def __init__(self, timeout: float | None = None):
        read_timeout = timeout if timeout is not None else settings.COMPLETION_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(read_timeout))

    async def aclose(self):
        await self._client.aclose()

    async def complete(self, url: str, model: str, prompt: str) -> str:
        """Request a completion and return the raw response body.

        Raises CompletionTransportError on any network-level failure.
        """
        payload = {
            "model": model,
            "prompt": prompt,
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        logger.info("Completion request: model=%s prompt=%d chars", model, len(prompt))

        try:
            resp = await self._client.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            body = resp.text
        except httpx.HTTPError as e:
            logger.error("Error fetching completion from %s: %s", url, e)
            raise CompletionTransportError(f"Completion request to {url} failed: {e}") from e

        logger.info("Completion response: status=%d body=%d chars", resp.status_code, len(body))
        return body
