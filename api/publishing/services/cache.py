"""Cache invalidation sinks for the rendering layer.

The lifecycle manager only produces path lists; a sink decides how to deliver
them. Delivery is fire-and-forget: sinks log failures instead of raising.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

HOME_PATH = "/"


def post_path(slug: str) -> str:
    """Public path of a single post."""
    return f"/posts/{slug}"


def category_path(slug: str) -> str:
    """Public listing path of a category."""
    return f"/categories/{slug}"


def unique_paths(paths: Iterable[str | None]) -> list[str]:
    """Drop empty entries and duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for path in paths:
        if path:
            seen.setdefault(path, None)
    return list(seen)


class CacheInvalidationSink(Protocol):
    """Accepts logical page paths that must be marked stale."""

    async def invalidate(self, paths: Sequence[str]) -> None:
        """Mark the given paths stale. Must tolerate repeated/overlapping calls."""
        ...


class LoggingInvalidationSink:
    """Sink used when no rendering endpoint is configured."""

    async def invalidate(self, paths: Sequence[str]) -> None:
        logger.info("Cache invalidation requested for %s", ", ".join(paths))


class RecordingInvalidationSink:
    """
    In-memory sink for tests and local tooling.

    Records every call without delivering anything.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def invalidate(self, paths: Sequence[str]) -> None:
        self.calls.append(list(paths))

    @property
    def paths(self) -> list[str]:
        """All paths received, flattened in call order."""
        return [path for call in self.calls for path in call]

    def reset(self) -> None:
        """Forget recorded calls."""
        self.calls = []


class HttpInvalidationSink:
    """
    Deliver invalidations to the rendering layer's revalidate endpoint.

    Sends ``POST {"paths": [...]}`` with the shared secret in the
    ``X-Revalidate-Secret`` header. Errors are logged and swallowed.
    """

    def __init__(
        self,
        url: str,
        secret: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self._client = client

    async def invalidate(self, paths: Sequence[str]) -> None:
        if not paths:
            return

        payload = {"paths": list(paths)}
        headers = {"X-Revalidate-Secret": self.secret}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Cache invalidation request to %s failed: %s", self.url, exc)
            return

        if response.is_error:
            logger.warning(
                "Cache invalidation rejected by %s with status %s",
                self.url,
                response.status_code,
            )
            return

        logger.info("Invalidated %d path(s) via %s", len(paths), self.url)


def build_invalidation_sink(
    url: str | None, secret: str, timeout: float = 5.0
) -> CacheInvalidationSink:
    """Pick the HTTP sink when an endpoint is configured, otherwise log only."""
    if url:
        return HttpInvalidationSink(url, secret, timeout=timeout)
    return LoggingInvalidationSink()
