"""Tests for the Ollama client using httpx.MockTransport."""

import json

import httpx
import pytest

from zap.core.errors import LLMError
from zap.llm.base import ChatClient
from zap.llm.ollama import OllamaClient

MESSAGES = [{"role": "user", "content": "hi"}]


def make_client(handler, **kwargs) -> OllamaClient:
    return OllamaClient(
        "http://ollama.test/", "test-model", transport=httpx.MockTransport(handler), **kwargs
    )


def ndjson(*objects) -> bytes:
    return b"".join(json.dumps(o).encode() + b"\n" for o in objects)


class TestChat:
    """Non-streaming requests."""

    def test_chat_returns_content(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "hello"}})

        with make_client(handler) as client:
            assert client.chat(MESSAGES) == "hello"

        assert seen["path"] == "/api/chat"
        assert seen["body"] == {"model": "test-model", "messages": MESSAGES, "stream": False}
        assert seen["auth"] is None

    def test_api_key_sent_as_bearer(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"message": {"content": "ok"}})

        with make_client(handler, api_key="secret") as client:
            client.chat(MESSAGES)
        assert seen["auth"] == "Bearer secret"

    def test_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="model crashed")

        with make_client(handler) as client:
            with pytest.raises(LLMError, match="model crashed") as exc_info:
                client.chat(MESSAGES)
        assert exc_info.value.status_code == 500

    def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        with make_client(handler) as client:
            with pytest.raises(LLMError, match="decode"):
                client.chat(MESSAGES)

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(LLMError, match="connection refused"):
                client.chat(MESSAGES)

    def test_satisfies_chat_client(self):
        client = make_client(lambda r: httpx.Response(200, json={}))
        assert isinstance(client, ChatClient)
        client.close()


class TestChatStream:
    """Streaming requests."""

    def test_stream_chunks(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["stream"] is True
            body = ndjson(
                {"message": {"content": "Final "}, "done": False},
                {"message": {"content": "Answer: hi"}, "done": False},
                {"message": {"content": ""}, "done": True},
            )
            return httpx.Response(200, content=body)

        chunks = []
        with make_client(handler) as client:
            assert client.chat_stream(MESSAGES, chunks.append) == "Final Answer: hi"
        assert chunks == ["Final ", "Answer: hi"]

    def test_malformed_lines_skipped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = b"garbage\n\n" + ndjson({"message": {"content": "ok"}, "done": True})
            return httpx.Response(200, content=body)

        with make_client(handler) as client:
            assert client.chat_stream(MESSAGES) == "ok"

    def test_stops_at_done(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = ndjson(
                {"message": {"content": "a"}, "done": True},
                {"message": {"content": "b"}, "done": False},
            )
            return httpx.Response(200, content=body)

        with make_client(handler) as client:
            assert client.chat_stream(MESSAGES) == "a"

    def test_503_falls_back_to_single_chunk(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if json.loads(request.content)["stream"]:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, json={"message": {"content": "whole reply"}})

        chunks = []
        with make_client(handler) as client:
            assert client.chat_stream(MESSAGES, chunks.append) == "whole reply"
        assert chunks == ["whole reply"]

    def test_stream_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="unauthorized")

        with make_client(handler) as client:
            with pytest.raises(LLMError, match="401") as exc_info:
                client.chat_stream(MESSAGES)
        assert exc_info.value.status_code == 401


class TestCheckConnection:
    """Health check."""

    def test_ok(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": []})

        with make_client(handler) as client:
            client.check_connection()

    def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(LLMError, match="failed to connect"):
                client.check_connection()
