"""
HTTP transport for the Asset Manager REST API.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING

import httpx

from shared.errors import NetworkError
from shared.logging import get_logger, request_context, request_id_var
from ..caching.keys import CacheKeys

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


SENSITIVE_FIELDS = ("password", "oldPassword", "newPassword", "confirmPassword")


@dataclass
class RequestConfig:
    """Outbound request as seen by hooks, middleware and adapters."""

    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    data: Any = None
    files: Optional[Mapping[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    response_type: str = "json"
    cache: bool = True
    adapter: Optional["Adapter"] = None


@dataclass
class TransportResponse:
    """Normalized response handed back to callers."""

    data: Any
    status: int
    status_text: str
    headers: Dict[str, str]
    config: RequestConfig


Adapter = Callable[[RequestConfig], Awaitable[TransportResponse]]
CallNext = Callable[[RequestConfig], Awaitable[TransportResponse]]
Middleware = Callable[[RequestConfig, CallNext], Awaitable[TransportResponse]]
RequestHook = Callable[[RequestConfig], RequestConfig]


def redact_sensitive(data: Any) -> Any:
    """Copy of a request body with password-like fields masked for logging."""
    if not isinstance(data, Mapping):
        return data
    return {key: ("***" if key in SENSITIVE_FIELDS and value else value) for key, value in data.items()}


def _chain(middleware: Middleware, call_next: CallNext) -> CallNext:
    async def handler(config: RequestConfig) -> TransportResponse:
        return await middleware(config, call_next)
    return handler


class Transport:
    """Async HTTP transport with request hooks and a middleware chain.

    Request hooks rewrite the config before dispatch (auth header, logging).
    Middleware wraps the send operation and may short-circuit it with a
    synthesized response; the last middleware added runs outermost. A
    per-request ``adapter`` replaces the httpx send entirely.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        *,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional["MetricsCollector"] = None,
        user_id: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.logger = get_logger("asset_client.transport")
        self.metrics = metrics
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.user_id = user_id

        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
        )
        self._request_hooks: List[RequestHook] = [self._apply_auth, self._log_request]
        self._middleware: List[Middleware] = []

    def add_request_hook(self, hook: RequestHook) -> None:
        self._request_hooks.append(hook)

    def add_middleware(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
        *,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        response_type: str = "json",
        cache: bool = True,
        adapter: Optional[Adapter] = None,
    ) -> TransportResponse:
        """Run hooks and middleware, then dispatch.

        The whole call runs inside a ``request_context`` carrying the
        session's user, so every log line it produces is correlated.
        """
        config = RequestConfig(
            method=method.lower(),
            url=url,
            params=dict(params) if params else None,
            data=data,
            files=files,
            headers=dict(headers or {}),
            response_type=response_type,
            cache=cache,
            adapter=adapter,
        )
        with request_context(user_id=self.user_id):
            for hook in self._request_hooks:
                config = hook(config)

            handler: CallNext = self._dispatch
            for middleware in self._middleware:
                handler = _chain(middleware, handler)
            return await handler(config)

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> TransportResponse:
        return await self.request("get", url, params, **kwargs)

    async def post(self, url: str, data: Any = None, **kwargs) -> TransportResponse:
        return await self.request("post", url, data=data, **kwargs)

    async def put(self, url: str, data: Any = None, **kwargs) -> TransportResponse:
        return await self.request("put", url, data=data, **kwargs)

    async def delete(self, url: str, data: Any = None, **kwargs) -> TransportResponse:
        return await self.request("delete", url, data=data, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _apply_auth(self, config: RequestConfig) -> RequestConfig:
        headers = dict(config.headers)
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        request_id = request_id_var.get()
        if request_id:
            headers.setdefault("X-Request-ID", request_id)
        return replace(config, headers=headers)

    def _log_request(self, config: RequestConfig) -> RequestConfig:
        self.logger.debug(
            "API request",
            method=config.method.upper(),
            url=config.url,
            params=config.params,
            body=redact_sensitive(config.data),
        )
        return config

    async def _dispatch(self, config: RequestConfig) -> TransportResponse:
        adapter = config.adapter or self._send
        return await adapter(config)

    async def _send(self, config: RequestConfig) -> TransportResponse:
        """Send through httpx and map failures to NetworkError."""
        endpoint = CacheKeys.resource_scope(config.url)
        start = time.perf_counter()

        try:
            if config.files:
                response = await self._client.request(
                    config.method.upper(),
                    config.url,
                    params=config.params,
                    data=config.data,
                    files=config.files,
                    headers=config.headers,
                )
            else:
                response = await self._client.request(
                    config.method.upper(),
                    config.url,
                    params=config.params,
                    json=config.data,
                    headers=config.headers,
                )
        except httpx.TimeoutException as exc:
            self.logger.warning("API request timed out", method=config.method.upper(), url=config.url)
            self._record_error("timeout")
            raise NetworkError(
                "Request timed out, please retry later",
                details={"url": config.url},
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.error("API request failed", method=config.method.upper(), url=config.url, error=str(exc))
            self._record_error("connection")
            raise NetworkError(details={"url": config.url, "error": str(exc)}) from exc

        if self.metrics:
            self.metrics.record_http_request(
                config.method.upper(), endpoint, response.status_code, time.perf_counter() - start
            )

        if response.status_code >= 400:
            if response.status_code == 401 and self.on_unauthorized:
                self.logger.info("Received 401, session is no longer valid", url=config.url)
                self.on_unauthorized()
            self._record_error(f"http_{response.status_code}")
            raise NetworkError(
                self._error_message(response),
                status_code=response.status_code,
                details={"url": config.url},
            )

        return TransportResponse(
            data=self._decode(response, config.response_type),
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            config=config,
        )

    @staticmethod
    def _decode(response: httpx.Response, response_type: str) -> Any:
        if response_type == "bytes":
            return response.content
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Request failed"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return "Request failed"

    def _record_error(self, error_type: str) -> None:
        if self.metrics:
            self.metrics.record_error(error_type)
