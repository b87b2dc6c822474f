"""Port allocation and registration with the filter directory.

Registration uses httpx with tenacity retry and exponential backoff, so a
directory that starts after the filter is still reached.
"""

import logging
import socket

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    """Filter directory is temporarily unavailable (retryable)."""


class RegistrationRejected(Exception):
    """Filter directory refused the registration (non-retryable)."""


def find_port(host: str | None = None, port: int | None = None) -> int | None:
    """Return the configured port, or a free one from the OS, or None."""
    configured = port if port is not None else settings.PORT
    if configured:
        return configured

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host or settings.HOST, 0))
            return sock.getsockname()[1]
    except OSError as e:
        logger.error("Could not allocate a port: %s", e)
        return None


class RegistryClient:
    """Announces this filter's query URL to the directory."""

    def __init__(
        self,
        registry_url: str | None = None,
        timeout: float | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
    ):
        self._registry_url = registry_url if registry_url is not None else settings.REGISTRY_URL
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.REGISTRY_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.REGISTRY_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.REGISTRY_RETRY_BACKOFF

        request_timeout = timeout if timeout is not None else settings.REGISTRY_TIMEOUT_SECONDS
        self._client = httpx.Client(timeout=request_timeout)

    def close(self):
        self._client.close()

    def register_filter(self, filter_url: str) -> bool:
        """Register filter_url with the directory.

        Returns True when registered, False when disabled or all retries
        failed. Never raises for directory outages.
        """
        if not self._registry_url:
            logger.info("Filter directory not configured (REGISTRY_URL is empty), skipping registration")
            return False

        try:
            self._register_with_retry({"url": filter_url})
        except RegistrationError as e:
            logger.error("Filter registration failed after %d attempts: %s", self._retry_attempts, e)
            return False
        except RegistrationRejected as e:
            logger.error("Filter registration rejected: %s", e)
            return False

        logger.info("Filter registered: %s", filter_url)
        return True

    def _register_with_retry(self, payload: dict) -> None:
        @retry(
            retry=retry_if_exception_type(RegistrationError),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=60,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Filter directory unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_register() -> None:
            self._send_register(payload)

        _do_register()

    def _send_register(self, payload: dict) -> None:
        try:
            resp = self._client.post(self._registry_url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Filter directory connection failed: %s", e)
            raise RegistrationError(f"Cannot reach filter directory: {e}") from e

        if resp.status_code >= 500:
            logger.warning("Filter directory returned %d", resp.status_code)
            raise RegistrationError(f"Filter directory returned HTTP {resp.status_code}")

        if resp.status_code >= 400:
            raise RegistrationRejected(f"Filter directory returned HTTP {resp.status_code}: {resp.text[:200]}")


def register_filter(filter_url: str) -> bool:
    """Register with the directory configured in settings."""
    client = RegistryClient()
    try:
        return client.register_filter(filter_url)
    finally:
        client.close()
