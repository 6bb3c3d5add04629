"""Request executor for the GitHub REST API.

This module provides the single primitive every client operation is built
on: issue one HTTP request described by a GitHubRequest and normalize the
outcome into a Result. The executor never raises; transport failures,
timeouts and error responses all become failed Results.

Success is decided by the response status code alone. Diagnostic text that
accompanies a successful response (``Warning`` or ``Deprecation`` headers)
is logged and never turns the call into a failure.

No retries are performed. A transient failure is reported immediately and
retry policy is left to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.delivery.github.models import Credentials
from src.delivery.github.result import ErrorKind, OperationError, Result


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitHubRequest:
    """Fully formed description of one API call.

    Attributes:
        method: HTTP method (GET, POST, PUT, PATCH, DELETE).
        path: API path relative to the base URL (e.g., /repos/o/r/pulls),
            or an absolute URL.
        params: Optional query string parameters.
        json_body: Optional JSON body, serialized by the HTTP client.
    """

    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json_body: Optional[Dict[str, Any]] = None

    @classmethod
    def get(cls, path: str, **params: Any) -> "GitHubRequest":
        return cls(method="GET", path=path, params=params or None)

    @classmethod
    def post(cls, path: str, json_body: Dict[str, Any]) -> "GitHubRequest":
        return cls(method="POST", path=path, json_body=json_body)

    @classmethod
    def put(cls, path: str, json_body: Dict[str, Any]) -> "GitHubRequest":
        return cls(method="PUT", path=path, json_body=json_body)

    def describe(self) -> str:
        return f"{self.method} {self.path}"


def classify_status(status_code: int, rate_limited: bool = False) -> ErrorKind:
    """Map an error status code to an ErrorKind.

    Args:
        status_code: HTTP status code of a non-2xx response.
        rate_limited: True when the response reports an exhausted rate limit.

    Returns:
        The ErrorKind for the response.
    """
    if rate_limited or status_code == 429:
        return ErrorKind.REMOTE
    if status_code in (401, 403):
        return ErrorKind.AUTH
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 409:
        return ErrorKind.CONFLICT
    if 400 <= status_code < 500:
        return ErrorKind.VALIDATION
    return ErrorKind.REMOTE


class RequestExecutor:
    """Async GitHub API request executor.

    Holds the credentials and a lazily created httpx client. Every call
    checks the credentials first: incomplete credentials fail with AUTH
    without any network I/O.

    Attributes:
        credentials: Immutable GitHub credentials shared by all clients.
        base_url: Base URL for GitHub API (default: https://api.github.com).
        timeout: Request timeout in seconds.

    Example:
        >>> executor = RequestExecutor(Credentials(token="ghp_xxx", owner="o", repository="r"))
        >>> async with executor:
        ...     result = await executor.execute(GitHubRequest.get("/user"))
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the executor.

        Args:
            credentials: GitHub credentials used for authorization.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used to substitute the
                       network in tests.
        """
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "delivery-client/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def execute(self, request: GitHubRequest) -> Result[Any]:
        """Issue one request and normalize the outcome.

        Args:
            request: Description of the call to make.

        Returns:
            Result whose value is the decoded JSON payload (an empty dict
            for 204 responses, the raw text for non-JSON bodies), or a
            failure classified from the status code or transport error.
        """
        if not self.credentials.is_complete():
            logger.error(
                "Refusing GitHub request without complete credentials",
                extra={"request": request.describe()},
            )
            return Result.fail(
                ErrorKind.AUTH,
                "GitHub credentials are missing: token, owner and repository are required",
            )

        logger.debug("GitHub API: %s", request.describe())

        try:
            response = await self.client.request(
                method=request.method,
                url=request.path,
                params=request.params,
                json=request.json_body,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "GitHub API request timed out",
                extra={"request": request.describe(), "error": str(e)},
            )
            return Result.fail(
                ErrorKind.REMOTE,
                f"Request timed out: {request.describe()}",
            )
        except httpx.RequestError as e:
            logger.warning(
                "GitHub API request failed",
                extra={"request": request.describe(), "error": str(e)},
            )
            return Result.fail(
                ErrorKind.REMOTE,
                f"Request failed: {request.describe()}: {e}",
            )

        if response.is_success:
            self._log_diagnostics(request, response)
            return Result.ok(self._decode_body(response))

        error = self._build_error(response)
        logger.error(
            "GitHub API error",
            extra={
                "status_code": response.status_code,
                "request": request.describe(),
                "error_kind": error.kind.value,
                "response_body": response.text[:500],
            },
        )
        return Result.from_error(error)

    def _decode_body(self, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _log_diagnostics(
        self,
        request: GitHubRequest,
        response: httpx.Response,
    ) -> None:
        for header in ("warning", "deprecation"):
            value = response.headers.get(header)
            if value:
                logger.warning(
                    "GitHub API returned a %s header",
                    header,
                    extra={"request": request.describe(), "diagnostic": value},
                )

    def _build_error(self, response: httpx.Response) -> OperationError:
        kind = classify_status(response.status_code, self._is_rate_limited(response))
        message = self._error_message(response)
        if kind == ErrorKind.REMOTE and self._is_rate_limited(response):
            reset = self._parse_int_header(response.headers, "x-ratelimit-reset")
            if reset is not None:
                message = f"{message} (rate limit resets at {reset})"
        return OperationError(
            kind=kind,
            message=f"GitHub API error {response.status_code}: {message}",
            status_code=response.status_code,
        )

    def _is_rate_limited(self, response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code == 403:
            remaining = self._parse_int_header(response.headers, "x-ratelimit-remaining")
            return remaining == 0
        return False

    def _error_message(self, response: httpx.Response) -> str:
        """Extract GitHub's error message and field errors from a response."""
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase

        if not isinstance(data, dict):
            return response.text

        message = data.get("message") or response.reason_phrase
        details = []
        for item in data.get("errors") or []:
            if isinstance(item, dict):
                detail = item.get("message") or " ".join(
                    str(item[key]) for key in ("field", "code") if item.get(key)
                )
                if detail:
                    details.append(detail)
            elif item:
                details.append(str(item))
        if details:
            return f"{message}: {'; '.join(details)}"
        return message

    def _parse_int_header(
        self,
        headers: httpx.Headers,
        name: str,
    ) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None
