"""HTTP request tool for exercising API endpoints."""

import json
import time
from dataclasses import dataclass, field

import httpx

from zap.core.errors import ToolError
from zap.core.logging import get_logger
from zap.tools.base import Tool, parse_args
from zap.tools.builtin.variables import VariableStore

logger = get_logger("tools.http")

DEFAULT_HTTP_TIMEOUT = 30.0
MAX_TEXT_BODY = 5000

STATUS_MEANINGS = {
    200: "OK - Request succeeded",
    201: "Created - Resource created successfully",
    204: "No Content - Request succeeded, no response body",
    400: "Bad Request - Invalid request syntax or missing required fields",
    401: "Unauthorized - Missing or invalid authentication token",
    403: "Forbidden - Valid auth but insufficient permissions",
    404: "Not Found - Endpoint or resource doesn't exist",
    405: "Method Not Allowed - HTTP method not supported for this endpoint",
    409: "Conflict - Resource conflict (e.g., duplicate entry)",
    422: "Unprocessable Entity - Validation failed (check required fields)",
    429: "Too Many Requests - Rate limit exceeded",
    500: "Internal Server Error - Server-side exception (check logs/stack trace)",
    502: "Bad Gateway - Upstream server error",
    503: "Service Unavailable - Server overloaded or down",
}

ERROR_HINTS = {
    400: "Hint: Check request body format and required fields",
    401: "Hint: Add Authorization header with valid token",
    403: "Hint: User authenticated but lacks permission for this action",
    404: "Hint: Verify the URL path and that the resource exists",
    405: "Hint: Check if you're using the correct HTTP method (GET/POST/PUT/DELETE)",
    422: "Hint: Validation error - check required fields and data types",
    500: "Hint: Server error - search codebase for the endpoint handler",
}

# Shown in the observation when present
IMPORTANT_HEADERS = ("content-type", "authorization", "x-request-id", "x-error-code")


def status_meaning(code: int) -> str:
    if code in STATUS_MEANINGS:
        return STATUS_MEANINGS[code]
    if 200 <= code < 300:
        return "Success"
    if 300 <= code < 400:
        return "Redirect"
    if 400 <= code < 500:
        return "Client Error - Check your request"
    if code >= 500:
        return "Server Error - Check server logs"
    return "Unknown status code"


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in "KMGTPE":
        value /= 1024
        if value < 1024:
            break
    return f"{value:.1f} {unit}B"


@dataclass
class HTTPResult:
    """Response captured for the model."""

    status_code: int
    reason: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    duration_ms: int = 0

    def error_hints(self) -> list[str]:
        hints = []
        if self.status_code in ERROR_HINTS:
            hints.append(ERROR_HINTS[self.status_code])
        if self.status_code == 422 and "detail" in self.body:
            hints.append("Hint: Look at 'detail' field for specific validation errors")
        if self.status_code == 500 and ("Traceback" in self.body or "stack" in self.body):
            hints.append("Hint: Stack trace detected - look for file:line references")
        return hints

    def format(self) -> str:
        lines = [
            f"Status: {self.status_code} {self.reason}".rstrip(),
            f"Time:   {self.duration_ms}ms",
            f"Size:   {format_size(len(self.body.encode('utf-8')))}",
            f"Meaning: {status_meaning(self.status_code)}",
            "",
            "Headers:",
        ]
        for key in IMPORTANT_HEADERS:
            if key in self.headers:
                lines.append(f"  {key}: {self.headers[key]}")
        lines.append("")
        lines.append("Body:")

        try:
            pretty = json.dumps(json.loads(self.body), indent=2, ensure_ascii=False)
            lines.append(f"```json\n{pretty}\n```")
        except ValueError:
            if len(self.body) > MAX_TEXT_BODY:
                lines.append(self.body[:MAX_TEXT_BODY] + "\n... (truncated)")
            else:
                lines.append(self.body)

        text = "\n".join(lines)
        if self.status_code >= 400:
            hints = self.error_hints()
            if hints:
                text += "\n\n" + "\n".join(hints)
        return text


class HTTPTool(Tool):
    """Perform HTTP requests with {{VAR}} placeholders resolved from the variable store."""

    def __init__(
        self,
        variables: VariableStore | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.variables = variables
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "http_request"

    @property
    def description(self) -> str:
        return "Make HTTP requests to test API endpoints"

    @property
    def parameters(self) -> str:
        return (
            '{"method": "GET|POST|PUT|PATCH|DELETE", "url": "string", '
            '"headers": {"key": "value"}, "body": {}, "timeout": 30}'
        )

    def execute(self, args: str) -> str:
        if self.variables is not None:
            args = self.variables.substitute(args)
        params = parse_args(args)

        method = str(params.get("method") or "GET").upper()
        url = params.get("url")
        if not url:
            raise ToolError("url is required")
        headers = params.get("headers") or {}
        if not isinstance(headers, dict):
            raise ToolError("headers must be an object")

        timeout = params.get("timeout") or self.timeout
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as e:
            raise ToolError(f"invalid timeout: {timeout}") from e

        headers = {str(k): str(v) for k, v in headers.items()}
        return self.send(method, str(url), headers, params.get("body"), timeout).format()

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: object = None,
        timeout: float | None = None,
    ) -> HTTPResult:
        """
        Raises:
            ToolError: Request could not be sent
        """
        content = None
        if body is not None:
            content = body if isinstance(body, str) else json.dumps(body)
            if not any(k.lower() == "content-type" for k in headers):
                headers = {"Content-Type": "application/json", **headers}

        logger.info(f"{method} {url}")
        start = time.monotonic()
        try:
            response = self._client.request(
                method,
                url,
                headers=headers,
                content=content,
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ToolError(f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ToolError(f"failed to execute request: {e}") from e
        duration_ms = int((time.monotonic() - start) * 1000)

        logger.debug(f"{method} {url} -> {response.status_code} in {duration_ms}ms")
        return HTTPResult(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.text,
            duration_ms=duration_ms,
        )

    def close(self) -> None:
        self._client.close()
