"""Ollama chat client - local server or hosted Ollama with an API key."""

import json

import httpx

from zap.core.errors import LLMError
from zap.core.logging import get_logger
from zap.core.typing import MessageDict, StreamCallback

logger = get_logger("llm.ollama")


class OllamaClient:
    """Client for the Ollama /api/chat endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize client.

        Two connection pools are kept: one with a timeout for regular
        requests and one without for streams, which can run for minutes.

        Args:
            base_url: Server URL, e.g. http://localhost:11434
            model: Model name
            api_key: Bearer token (hosted Ollama only)
            timeout: Timeout for non-streaming requests in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.Client(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )
        self._stream_client = httpx.Client(
            base_url=self.base_url, headers=headers, timeout=None, transport=transport
        )

    def _payload(self, messages: list[MessageDict], stream: bool) -> dict:
        return {"model": self.model, "messages": messages, "stream": stream}

    def chat(self, messages: list[MessageDict]) -> str:
        """Send a non-streaming chat request and return the reply text."""
        logger.debug(f"Ollama request: model={self.model}, messages={len(messages)}")
        try:
            response = self._client.post("/api/chat", json=self._payload(messages, stream=False))
        except httpx.HTTPError as e:
            raise LLMError(f"failed to send request: {e}") from e

        if response.status_code != 200:
            raise LLMError(
                f"ollama (url: {self.base_url}, model: {self.model}) returned status "
                f"{response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"failed to decode response: {e}") from e

        content = data.get("message", {}).get("content", "")
        logger.debug(f"Ollama response: {content[:200]}")
        return content

    def chat_stream(self, messages: list[MessageDict], on_chunk: StreamCallback | None = None) -> str:
        """
        Stream a chat reply, calling on_chunk for every fragment.

        A 503 from the streaming endpoint (common with hosted Ollama) falls
        back to a regular request delivered as a single chunk.
        """
        logger.debug(f"Ollama stream request: model={self.model}, messages={len(messages)}")
        parts: list[str] = []
        malformed = 0

        try:
            with self._stream_client.stream(
                "POST", "/api/chat", json=self._payload(messages, stream=True)
            ) as response:
                if response.status_code == 503:
                    logger.info("Streaming unavailable (503), falling back to non-streaming")
                    return self._chat_with_fallback(messages, on_chunk)

                if response.status_code != 200:
                    response.read()
                    raise LLMError(
                        f"ollama returned status {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )

                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        # Some servers interleave non-JSON status lines
                        malformed += 1
                        continue

                    chunk = data.get("message", {}).get("content", "")
                    if chunk:
                        parts.append(chunk)
                        if on_chunk is not None:
                            on_chunk(chunk)

                    if data.get("done"):
                        break
        except httpx.HTTPError as e:
            detail = f" (skipped {malformed} malformed lines)" if malformed else ""
            raise LLMError(f"error reading stream{detail}: {e}") from e

        if malformed:
            logger.debug(f"Skipped {malformed} malformed stream lines")
        return "".join(parts)

    def _chat_with_fallback(self, messages: list[MessageDict], on_chunk: StreamCallback | None) -> str:
        content = self.chat(messages)
        if on_chunk is not None and content:
            on_chunk(content)
        return content

    def check_connection(self) -> None:
        """
        Verify the server is reachable.

        Raises:
            LLMError: Server unreachable or unhealthy
        """
        try:
            response = self._client.get("/api/tags")
        except httpx.HTTPError as e:
            raise LLMError(f"failed to connect to Ollama: {e}") from e
        if response.status_code != 200:
            raise LLMError(f"ollama returned status {response.status_code}", status_code=response.status_code)

    def close(self) -> None:
        """Close HTTP clients."""
        self._client.close()
        self._stream_client.close()

    def __enter__(self) -> "OllamaClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
