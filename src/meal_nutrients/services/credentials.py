"""Credential rotation for rate-limited upstream APIs."""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from meal_nutrients.domain.errors import (
    ConfigurationMissing,
    CredentialExhausted,
    UpstreamFatal,
)

RECOVERABLE_STATUSES = frozenset({401, 403, 429})

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialPool:
    """Ordered pool of opaque upstream tokens."""

    tokens: tuple[str, ...]
    bucket_seconds: float = 60.0

    def __post_init__(self) -> None:
        if not self.tokens:
            raise ConfigurationMissing("Credential pool is empty")

    @classmethod
    def from_csv(
        cls, raw: str | None, bucket_seconds: float = 60.0
    ) -> "CredentialPool":
        """Build a pool from a comma-separated token list."""
        tokens = tuple(chunk.strip() for chunk in (raw or "").split(","))
        return cls(tokens=tuple(t for t in tokens if t), bucket_seconds=bucket_seconds)

    def __len__(self) -> int:
        return len(self.tokens)

    def start_index(self, now: float) -> int:
        """Index of the first token to try during the time bucket of `now`."""
        return math.floor(now / self.bucket_seconds) % len(self.tokens)

    def cycle(self, now: float) -> list[str]:
        """Every token exactly once, starting at the time-bucketed offset."""
        start = self.start_index(now)
        return [self.tokens[(start + i) % len(self.tokens)] for i in range(len(self))]


def bearer_headers(token: str) -> dict[str, str]:
    """Authorization header for bearer-token APIs."""
    return {"Authorization": f"Bearer {token}"}


@dataclass
class CredentialRotator:
    """Issues HTTP requests, rotating tokens on auth and rate-limit failures."""

    http_client: httpx.AsyncClient
    pool: CredentialPool
    authorize: Callable[[str], dict[str, str]] = bearer_headers
    timeout: float = 15.0
    clock: Callable[[], float] = time.time
    name: str = "upstream"

    async def call(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        **request: Any,
    ) -> httpx.Response:
        """Send the request with each token in turn until one is accepted."""
        base_headers = dict(headers or {})
        last_error: str | None = None
        attempts = 0
        for token in self.pool.cycle(self.clock()):
            attempts += 1
            attempt_headers = {**base_headers, **self.authorize(token)}
            try:
                response = await self.http_client.request(
                    method,
                    url,
                    headers=attempt_headers,
                    timeout=self.timeout,
                    **request,
                )
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                _logger.warning(
                    "%s attempt %s/%s failed: %s",
                    self.name,
                    attempts,
                    len(self.pool),
                    last_error,
                )
                continue
            if response.is_success:
                return response
            body = response.text[:200]
            if response.status_code in RECOVERABLE_STATUSES:
                last_error = f"{response.status_code}: {body}"
                _logger.warning(
                    "%s attempt %s/%s rejected with %s",
                    self.name,
                    attempts,
                    len(self.pool),
                    response.status_code,
                )
                continue
            raise UpstreamFatal(response.status_code, body)
        raise CredentialExhausted(attempts, last_error)
