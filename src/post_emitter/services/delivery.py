"""HTTP delivery of replication operations to receiver endpoints.

Every public coroutine returns a :class:`DeliveryResult`; transport and
protocol failures are converted into ``fail`` results instead of raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

from post_emitter.core.settings import Settings
from post_emitter.schemas.delivery import DELIVERY_FAIL, DELIVERY_OK, DeliveryResult
from post_emitter.schemas.operations import (
    DeleteOperation,
    Operation,
    SendOperation,
    UpdateStatusOperation,
)
from post_emitter.services.receivers import ReceiverCredentials

logger = logging.getLogger(__name__)

PATH_RECEIVE = "receive"
PATH_UPDATE_STATUS = "update-status"
PATH_DELETE = "delete"
PATH_CHECK_TOKEN = "check-token"

INVALID_TOKEN_MESSAGE = "invalid token or connection failure"
INVALID_RESPONSE_MESSAGE = "invalid response"

SleepFunc = Callable[[float], Awaitable[Any]]


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


@dataclass
class ReceiverOutcomes:
    """Final delivery results for one receiver URL."""

    ok: int = 0
    fail: int = 0
    last_error: str | None = None


@dataclass
class DeliveryMetrics:
    """Counters since start-up.

    ``attempts`` counts HTTP requests per operation, retries included, while
    ``receivers`` counts one outcome per delivered operation.
    """

    attempts: Counter[str] = field(default_factory=Counter)
    errors_by_type: Counter[str] = field(default_factory=Counter)
    receivers: dict[str, ReceiverOutcomes] = field(default_factory=dict)
    slowest_response_seconds: float = 0.0

    def record_attempt(
        self, operation: str, elapsed: float, error_type: str | None = None
    ) -> None:
        self.attempts[operation] += 1
        self.slowest_response_seconds = max(self.slowest_response_seconds, elapsed)
        if error_type:
            self.errors_by_type[error_type] += 1

    def record_outcome(self, result: DeliveryResult) -> None:
        outcomes = self.receivers.setdefault(result.receiver_url, ReceiverOutcomes())
        if result.ok:
            outcomes.ok += 1
        else:
            outcomes.fail += 1
            outcomes.last_error = result.message

    def as_dict(self) -> dict[str, Any]:
        return {
            "attempts_by_operation": dict(self.attempts),
            "errors_by_type": dict(self.errors_by_type),
            "slowest_response_seconds": round(self.slowest_response_seconds, 3),
            "receivers": {url: asdict(outcomes) for url, outcomes in self.receivers.items()},
        }


@dataclass(frozen=True)
class DeliveryConfig:
    """Immutable configuration for receiver requests."""

    user_agent: str
    api_prefix: str
    timeout_seconds: float
    test_timeout_seconds: float
    max_attempts: int
    backoff_base_seconds: float


def load_delivery_config(settings: Settings) -> DeliveryConfig:
    """Build the delivery configuration from application settings."""
    return DeliveryConfig(
        user_agent=settings.user_agent,
        api_prefix=settings.receiver_api_prefix.strip("/"),
        timeout_seconds=float(settings.delivery_timeout_seconds),
        test_timeout_seconds=float(settings.delivery_test_timeout_seconds),
        max_attempts=settings.delivery_max_attempts,
        backoff_base_seconds=float(settings.delivery_backoff_base_seconds),
    )


class DeliveryClient:
    """Async client that pushes operations to receivers."""

    def __init__(
        self,
        config: DeliveryConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._metrics = DeliveryMetrics()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                    headers={"User-Agent": self.config.user_agent},
                )
        return self._client

    def endpoint_url(self, receiver_url: str, path: str) -> str:
        return f"{receiver_url.rstrip('/')}/{self.config.api_prefix}/{path}"

    def _build_headers(self, token: str, *, write: bool) -> dict[str, str]:
        headers = {"User-Agent": self.config.user_agent}
        if write:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @dataclass
    class RequestParams:
        """Parameters for one receiver request."""

        operation: str
        method: str
        path: str
        receiver: ReceiverCredentials
        timeout: float
        json_data: Mapping[str, Any] | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        """Issue one request and record its metrics. Transport errors propagate."""
        client = await self._ensure_client()
        url = self.endpoint_url(params.receiver.url, params.path)
        headers = self._build_headers(
            params.receiver.auth_token, write=params.json_data is not None
        )

        start_time = time.perf_counter()
        error_type: str | None = None

        try:
            response = await client.request(
                params.method,
                url,
                json=params.json_data,
                headers=headers,
                timeout=httpx.Timeout(params.timeout),
            )
            if not is_success(response.status_code):
                error_type = f"http_{response.status_code}"
            return response
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            error_type = type(exc).__name__
            raise
        finally:
            self._metrics.record_attempt(
                params.operation, time.perf_counter() - start_time, error_type
            )

    async def _attempt(
        self,
        operation: str,
        path: str,
        payload: Mapping[str, Any],
        receiver: ReceiverCredentials,
        success_message: str,
    ) -> DeliveryResult:
        try:
            response = await self._request(
                self.RequestParams(
                    operation=operation,
                    method="POST",
                    path=path,
                    receiver=receiver,
                    timeout=self.config.timeout_seconds,
                    json_data=payload,
                )
            )
        except (httpx.HTTPError, httpx.InvalidURL, TypeError, ValueError) as exc:
            return DeliveryResult(
                receiver_url=receiver.url, status=DELIVERY_FAIL, message=str(exc) or type(exc).__name__
            )

        if is_success(response.status_code):
            return DeliveryResult(
                receiver_url=receiver.url,
                status=DELIVERY_OK,
                message=success_message,
                response_code=response.status_code,
            )
        return DeliveryResult(
            receiver_url=receiver.url,
            status=DELIVERY_FAIL,
            message=f"response code: {response.status_code}",
            response_code=response.status_code,
        )

    def _log_result(self, operation: str, result: DeliveryResult, attempt: str = "") -> None:
        context = {
            "operation": operation,
            "receiver_url": result.receiver_url,
            "response_code": result.response_code,
        }
        suffix = f" ({attempt})" if attempt else ""
        if result.ok:
            logger.info(
                "%s delivered to %s%s: %s",
                operation,
                result.receiver_url,
                suffix,
                result.response_code,
                extra={"context": context},
            )
        else:
            context["error"] = result.message
            logger.error(
                "%s to %s failed%s: %s",
                operation,
                result.receiver_url,
                suffix,
                result.message,
                extra={"context": context},
            )

    async def send(
        self, post_payload: Mapping[str, Any], receiver: ReceiverCredentials
    ) -> DeliveryResult:
        """Send a full post, retrying with exponential backoff."""
        max_attempts = max(1, self.config.max_attempts)
        result: DeliveryResult | None = None

        for attempt in range(1, max_attempts + 1):
            result = await self._attempt(
                "send", PATH_RECEIVE, post_payload, receiver, "post sent"
            )
            self._log_result("send", result, f"attempt {attempt}/{max_attempts}")
            if result.ok:
                break
            if attempt < max_attempts:
                await self._sleep(self.config.backoff_base_seconds * 2 ** (attempt - 1))

        assert result is not None
        self._metrics.record_outcome(result)
        return result

    async def update_status(
        self, payload: Mapping[str, Any], receiver: ReceiverCredentials
    ) -> DeliveryResult:
        result = await self._attempt(
            "update_status", PATH_UPDATE_STATUS, payload, receiver, "status updated"
        )
        self._log_result("update_status", result)
        self._metrics.record_outcome(result)
        return result

    async def delete(
        self, payload: Mapping[str, Any], receiver: ReceiverCredentials
    ) -> DeliveryResult:
        result = await self._attempt("delete", PATH_DELETE, payload, receiver, "post deleted")
        self._log_result("delete", result)
        self._metrics.record_outcome(result)
        return result

    async def test_connection(self, receiver: ReceiverCredentials) -> DeliveryResult:
        """Check that the receiver is reachable and accepts the stored token."""
        result = await self._check_token(receiver)
        context = {
            "operation": "test_connection",
            "receiver_url": receiver.url,
            "response_code": result.response_code,
        }
        if result.ok:
            logger.info(
                "Connection test to %s succeeded", receiver.url, extra={"context": context}
            )
        else:
            logger.warning(
                "Connection test to %s failed: %s",
                receiver.url,
                result.message,
                extra={"context": context},
            )
        return result

    async def _check_token(self, receiver: ReceiverCredentials) -> DeliveryResult:
        try:
            response = await self._request(
                self.RequestParams(
                    operation="test_connection",
                    method="GET",
                    path=PATH_CHECK_TOKEN,
                    receiver=receiver,
                    timeout=self.config.test_timeout_seconds,
                )
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return DeliveryResult(
                receiver_url=receiver.url, status=DELIVERY_FAIL, message=str(exc) or type(exc).__name__
            )

        if not is_success(response.status_code):
            return DeliveryResult(
                receiver_url=receiver.url,
                status=DELIVERY_FAIL,
                message=f"response code: {response.status_code}",
                response_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            return DeliveryResult(
                receiver_url=receiver.url,
                status=DELIVERY_FAIL,
                message=INVALID_RESPONSE_MESSAGE,
                response_code=response.status_code,
            )

        if isinstance(body, dict) and body.get("success") is True:
            return DeliveryResult(
                receiver_url=receiver.url,
                status=DELIVERY_OK,
                message="connection ok",
                response_code=response.status_code,
            )
        return DeliveryResult(
            receiver_url=receiver.url,
            status=DELIVERY_FAIL,
            message=INVALID_TOKEN_MESSAGE,
            response_code=response.status_code,
        )

    async def dispatch(self, operation: Operation, receiver: ReceiverCredentials) -> DeliveryResult:
        """Route a queued operation to the matching receiver call."""
        body = operation.request_body()
        if isinstance(operation, SendOperation):
            return await self.send(body, receiver)
        if isinstance(operation, UpdateStatusOperation):
            return await self.update_status(body, receiver)
        if isinstance(operation, DeleteOperation):
            return await self.delete(body, receiver)
        raise TypeError(f"Unsupported operation {type(operation).__name__}")

    def get_metrics(self) -> dict[str, Any]:
        """Return attempt counts per operation and outcomes per receiver URL."""
        return self._metrics.as_dict()

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
