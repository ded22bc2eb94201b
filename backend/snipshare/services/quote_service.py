"""
SnipShare Backend: Programming Quote Service
==============================================

What:  Fetches a random programming quote for the home page.
How:   httpx.AsyncClient GET against QUOTE_API_URL, with tenacity retries
       and a circuit breaker in front of it.
Who:   Created once in create_app(); used by GET / and GET /health.
When:  Once per home page render.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transport
       errors and 5xx responses
    2. Circuit breaker so a dead quote API costs one fast failure, not a
       slow home page on every request
    3. The caller treats any failure as "no quote today"; the page still
       renders

Response format (programming-quotesapi):
    {"id": "...", "author": "Edsger W. Dijkstra", "quote": "..."}
    Older mirrors use "en" instead of "quote"; both are accepted.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from snipshare.config import Settings
from snipshare.exceptions import CircuitBreakerOpenError, QuoteServiceError

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker around an unreliable dependency.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters. Safe under a single asyncio event loop, which is how
        uvicorn runs this app.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if a call may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.monotonic() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.monotonic()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Quote Service
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Quote:
    text: str
    author: str


class _RetryableQuoteError(Exception):
    """Internal: a response worth retrying (5xx)."""


class QuoteService:
    """
    Quote API client.

    Error Handling Chain:
        Transport error / 5xx → tenacity retries (RETRY_MAX_ATTEMPTS)
        → all attempts fail → breaker records a failure → QuoteServiceError
        4xx or unparseable body → no retry, breaker failure, QuoteServiceError
        Breaker OPEN → CircuitBreakerOpenError without touching the network
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # transport is injectable so tests can use httpx.MockTransport.
        self.url = settings.quote_api_url
        self.max_attempts = settings.retry_max_attempts
        self.min_wait = settings.retry_min_wait
        self.max_wait = settings.retry_max_wait
        self.client = httpx.AsyncClient(
            timeout=settings.quote_timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "QuoteService initialized with url=%s, circuit_breaker(threshold=%d, recovery=%ds)",
            self.url,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def fetch_random_quote(self) -> Quote:
        """
        Fetch one quote.

        Raises:
            CircuitBreakerOpenError: Too many recent failures
            QuoteServiceError: The API failed after retries or sent garbage
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        try:
            payload = await self._get_with_retry(request_id)
            quote = self._parse(payload)
        except RetryError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] All quote API retries exhausted: %s",
                request_id,
                str(e.last_attempt.exception()) if e.last_attempt else "Unknown error",
            )
            raise QuoteServiceError(
                context={"request_id": request_id, "attempts": self.max_attempts},
            )
        except (httpx.HTTPError, _RetryableQuoteError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.warning("[%s] Quote API call failed: %s", request_id, str(e))
            raise QuoteServiceError(
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        return quote

    async def _get_with_retry(self, request_id: str) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, _RetryableQuoteError)),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.min_wait, max=self.max_wait)
            + wait_random(0, self.min_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        async for attempt in retrying:
            with attempt:
                return await self._get_once(request_id)

    async def _get_once(self, request_id: str) -> Dict[str, Any]:
        start_time = time.monotonic()
        response = await self.client.get(self.url)
        duration_ms = (time.monotonic() - start_time) * 1000

        if response.status_code >= 500:
            logger.warning(
                "[%s] Quote API returned %d after %.0fms",
                request_id,
                response.status_code,
                duration_ms,
            )
            raise _RetryableQuoteError(f"HTTP {response.status_code}")
        response.raise_for_status()

        logger.debug("[%s] Quote API answered in %.0fms", request_id, duration_ms)
        return response.json()

    @staticmethod
    def _parse(payload: Any) -> Quote:
        if not isinstance(payload, dict):
            raise ValueError("Quote payload is not an object")
        text = payload.get("quote") or payload.get("en")
        if not text:
            raise ValueError("Quote payload has no quote text")
        return Quote(text=str(text), author=str(payload.get("author") or "Unknown"))

    def health_check(self) -> str:
        """Breaker state for /health: "closed", "open" or "half_open"."""
        return self.circuit_breaker.state

    async def aclose(self) -> None:
        await self.client.aclose()
