from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
import logging

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from pulse.core.exceptions import ProviderAPIError

logger = logging.getLogger(__name__)


class HttpMethod(str, Enum):
    """Enum defining supported HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class RequestConfig:
    """Configuration for provider requests including retry and timeout settings."""

    def __init__(
        self,
        max_retries: int = 3,
        timeout: float = 10.0,
        backoff_factor: float = 0.3,
        retry_status_codes: Optional[List[int]] = None,
        retry_on_timeout: bool = True,
    ):
        """
        Initialize RequestConfig with retry and timeout settings.

        Args:
            max_retries: Maximum number of retry attempts after the first call
            timeout: Request timeout in seconds
            backoff_factor: Backoff factor for exponential retry delay
            retry_status_codes: List of HTTP status codes to retry on
            retry_on_timeout: Whether to retry on timeout
        """
        self.max_retries = max(0, max_retries)
        self.timeout = timeout
        self.backoff_factor = backoff_factor
        self.retry_status_codes = retry_status_codes or [429, 500, 502, 503, 504]
        self.retry_on_timeout = retry_on_timeout


class APIConnector:
    """
    Thin HTTP client shared by provider adapters.

    Wraps an ``httpx.AsyncClient`` with retry on transient failures
    (transport errors and the configured status codes) and turns every
    non-2xx response into a ProviderAPIError for the adapter to re-wrap.
    """

    def __init__(
        self,
        base_url: str,
        config: Optional[RequestConfig] = None,
        headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        cert: Optional[Tuple[str, str]] = None,
    ):
        """
        Initialize the connector.

        Args:
            base_url: Root URL of the provider API
            config: Retry and timeout settings
            headers: Headers sent with every request
            http_client: Optional pre-built client (the connector does not close it)
            cert: Optional client certificate and key paths for mutual TLS
        """
        self.base_url = base_url.rstrip("/")
        self.config = config or RequestConfig()
        self.headers = headers or {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.config.timeout, cert=cert)

    def build_url(self, path: str) -> str:
        """Builds a complete URL from the base URL and a resource path."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def _is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, httpx.TimeoutException):
            return self.config.retry_on_timeout
        if isinstance(exc, httpx.TransportError):
            return True
        if isinstance(exc, ProviderAPIError):
            return exc.status_code in self.config.retry_status_codes
        return False

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> Any:
        """
        Makes an HTTP request with retry logic.

        Args:
            method: HTTP method to use
            path: Resource path relative to the base URL
            params: Optional query parameters
            json: Optional JSON body
            headers: Optional per-request headers
            auth: Optional HTTP Basic credentials

        Returns:
            The decoded JSON body, or None for empty responses

        Raises:
            ProviderAPIError: If the provider answers with an error status
            httpx.HTTPError: If the request cannot be completed after retries
        """
        url = self.build_url(path)
        merged_headers = {**self.headers, **(headers or {})}
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(multiplier=self.config.backoff_factor, max=10),
            retry=retry_if_exception(self._is_retryable),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(f"Retrying {method.value} {url} (attempt {attempt.retry_state.attempt_number})")
                response = await self._client.request(
                    method.value,
                    url,
                    params=params,
                    json=json,
                    headers=merged_headers,
                    auth=auth,
                    timeout=self.config.timeout,
                )
                return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """Processes the response, raising ProviderAPIError on error statuses."""
        if response.is_error:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise ProviderAPIError(
                f"{response.request.method} {response.request.url.path} returned "
                f"{response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
                body=body,
            )
        if not response.content:
            return None
        return response.json()

    async def aclose(self) -> None:
        """Close the underlying client if the connector created it."""
        if self._owns_client:
            await self._client.aclose()
