"""Signed-URL acquisition with rate-limit backoff."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from cog2ndvi.config import DEFAULT_SIGN_URL, RetryPolicy
from cog2ndvi.errors import FetchError, RateLimitError

LOGGER = logging.getLogger("cog2ndvi.signing")

RATE_LIMIT_STATUS = 429
MAX_ERROR_SNIPPET_CHARS = 400


def _response_snippet(response: httpx.Response) -> str:
    text = " ".join(response.text.strip().splitlines())
    if len(text) > MAX_ERROR_SNIPPET_CHARS:
        text = f"{text[:MAX_ERROR_SNIPPET_CHARS]}..."
    return text


class UrlSigner:
    """Exchange asset hrefs for time-limited access URLs.

    Rate-limited responses and transport errors are retried with exponential
    backoff; any other HTTP error fails immediately. An unsigned href is
    never returned in place of a signed one.
    """

    def __init__(
        self,
        *,
        sign_url: str = DEFAULT_SIGN_URL,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.sign_url = sign_url
        self.retry = retry or RetryPolicy()
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self._sleep = sleep

    def __enter__(self) -> "UrlSigner":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _attempt(self, href: str) -> httpx.Response:
        return self._client.get(self.sign_url, params={"href": href})

    def sign(self, href: str) -> str:
        """Return a signed URL for an asset href."""
        delays = self.retry.delays()
        attempts = self.retry.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                response = self._attempt(href)
            except httpx.RequestError as exc:
                if attempt == attempts:
                    raise FetchError(
                        f"URL signing failed after {attempts} attempts: {exc}", stage="sign"
                    ) from exc
                delay = delays[attempt - 1]
                LOGGER.warning(
                    "Sign error (attempt %s/%s): %s; retrying in %.1fs",
                    attempt,
                    attempts,
                    exc,
                    delay,
                    extra={"stage": "sign"},
                )
                self._sleep(delay)
                continue

            if response.status_code == RATE_LIMIT_STATUS:
                if attempt == attempts:
                    break
                delay = delays[attempt - 1]
                LOGGER.warning(
                    "Sign rate limited (429), retrying in %.1fs (attempt %s/%s)",
                    delay,
                    attempt,
                    attempts,
                    extra={"stage": "sign"},
                )
                self._sleep(delay)
                continue

            if response.is_error:
                raise FetchError(
                    f"URL signing failed: HTTP {response.status_code} {_response_snippet(response)}",
                    stage="sign",
                    status_code=response.status_code,
                )

            try:
                signed = response.json()["href"]
            except (ValueError, KeyError, TypeError) as exc:
                raise FetchError(
                    "URL signing response did not contain an href.", stage="sign"
                ) from exc
            LOGGER.debug("Signed %s", href, extra={"stage": "sign"})
            return str(signed)

        raise RateLimitError(
            f"URL signing failed after {attempts} attempts (rate limited). "
            "Wait a moment and try again.",
            stage="sign",
            status_code=RATE_LIMIT_STATUS,
        )
