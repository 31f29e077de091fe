"""Outbound webhook calls to the automation engine.

Each job (ingest, cluster, generate, format, publish) is one JSON POST to the
URL registered for it. ``dispatch`` never raises for engine-side problems:
missing configuration, timeouts, non-2xx replies and transport failures all
come back as a failed ``DispatchResult`` carrying the matching
``DispatchError`` so each caller can decide how to surface it.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from signaldesk.config import Settings
from signaldesk.errors import (
    DispatchError,
    DispatchHttpError,
    DispatchNetworkError,
    DispatchTimeoutError,
    NotConfiguredError,
)
from signaldesk.lifecycle.states import WebhookJob
from signaldesk.webhooks.normalizer import normalize
from signaldesk.webhooks.registry import WebhookRegistry

_BODY_LOG_LIMIT = 500


@dataclass
class DispatchResult:
    """Outcome of one webhook call."""

    success: bool
    data: dict[str, Any] | None = None
    failure: DispatchError | None = None

    @property
    def error(self) -> str | None:
        return self.failure.message if self.failure else None

    @property
    def has_data(self) -> bool:
        return bool(self.data)

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure


class WebhookDispatcher:
    """Fire-and-collect POSTs to registered webhook URLs."""

    def __init__(
        self,
        registry: WebhookRegistry,
        client: httpx.Client | None = None,
        *,
        timeout: float = 90.0,
        connect_attempts: int = 3,
        retry_wait: float = 1.0,
    ) -> None:
        self._registry = registry
        self._client = client or httpx.Client(headers={"Accept": "application/json"})
        self._owns_client = client is None
        self._timeout = timeout
        self._connect_attempts = connect_attempts
        self._retry_wait = retry_wait

    @classmethod
    def from_settings(
        cls,
        registry: WebhookRegistry,
        settings: Settings,
        client: httpx.Client | None = None,
    ) -> WebhookDispatcher:
        return cls(
            registry,
            client,
            timeout=settings.dispatch_timeout_seconds,
            connect_attempts=settings.dispatch_connect_attempts,
            retry_wait=settings.dispatch_retry_wait_seconds,
        )

    def dispatch(self, job: WebhookJob, payload: dict[str, Any]) -> DispatchResult:
        """POST ``payload`` to the webhook registered for ``job``."""
        url = self._registry.resolve(job)
        if not url:
            logger.warning(f"Dispatch skipped: {job.value} webhook not configured")
            return DispatchResult(success=False, failure=NotConfiguredError(job.value))

        logger.info(f"Dispatching {job.value} job to {url}")
        try:
            status_code, body = self._post(url, payload)
        except httpx.TimeoutException:
            logger.error(f"{job.value} webhook timed out after {self._timeout:g}s")
            return DispatchResult(
                success=False, failure=DispatchTimeoutError(job.value, self._timeout)
            )
        except httpx.HTTPError as exc:
            logger.error(f"{job.value} webhook error: {exc!r}")
            return DispatchResult(
                success=False, failure=DispatchNetworkError(job.value, str(exc) or type(exc).__name__)
            )

        logger.info(f"{job.value} webhook responded {status_code}")
        if not httpx.codes.is_success(status_code):
            logger.error(f"{job.value} webhook error response: {body[:_BODY_LOG_LIMIT]}")
            return DispatchResult(
                success=False, failure=DispatchHttpError(job.value, status_code, body)
            )

        return DispatchResult(success=True, data=self._parse_body(job, body))

    def _post(self, url: str, payload: dict[str, Any]) -> tuple[int, str]:
        """POST within one overall deadline shared by every attempt and the body read."""
        deadline = time.monotonic() + self._timeout
        # Only connection failures are retried: the engine never saw the request
        retrying = Retrying(
            retry=retry_if_exception_type(httpx.ConnectError),
            stop=stop_after_attempt(self._connect_attempts) | stop_after_delay(self._timeout),
            wait=wait_exponential(multiplier=self._retry_wait, max=self._retry_wait * 8),
            reraise=True,
        )
        return retrying(self._send, url, payload, deadline)

    def _send(self, url: str, payload: dict[str, Any], deadline: float) -> tuple[int, str]:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise httpx.TimeoutException("dispatch deadline passed before sending")
        with self._client.stream("POST", url, json=payload, timeout=remaining) as response:
            chunks = []
            for chunk in response.iter_bytes():
                # A slow trickle of bytes must not outlive the deadline
                if time.monotonic() > deadline:
                    raise httpx.ReadTimeout("dispatch deadline passed", request=response.request)
                chunks.append(chunk)
            body = b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
            return response.status_code, body

    @staticmethod
    def _parse_body(job: WebhookJob, text: str) -> dict[str, Any] | None:
        if not text or not text.strip():
            # The engine will call back later
            logger.info(f"Empty {job.value} response; workflow is asynchronous")
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(
                f"Unparseable {job.value} response treated as asynchronous: "
                f"{text[:_BODY_LOG_LIMIT]!r}"
            )
            return None
        return normalize(parsed) or None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
