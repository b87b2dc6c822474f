"""Tests for the completion client request shape and error handling."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent.parent))

from completion_client import CompletionClient, CompletionTransportError

URL = "http://fake-ollama:11434/v1/completions"


@pytest_asyncio.fixture
async def completion_client():
    client = CompletionClient(timeout=5)
    yield client
    await client.aclose()


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_raw_body(self, completion_client: CompletionClient, world_body: str):
        mock_response = httpx.Response(200, text=world_body)

        with patch.object(completion_client._client, "post", return_value=mock_response):
            body = await completion_client.complete(URL, "phi3", "hello")
            assert body == world_body

    @pytest.mark.asyncio
    async def test_request_payload(self, completion_client: CompletionClient):
        mock_response = httpx.Response(200, text="{}")

        with patch.object(completion_client._client, "post", return_value=mock_response) as mock_post:
            await completion_client.complete(URL, "llama3", "what is rust")

        args, kwargs = mock_post.call_args
        assert args == (URL,)
        assert kwargs["json"] == {
            "model": "llama3",
            "prompt": "what is rust",
            "temperature": 0.7,
            "max_tokens": 100,
        }
        assert kwargs["headers"] == {"Content-Type": "application/json"}

    @pytest.mark.asyncio
    async def test_body_not_validated(self, completion_client: CompletionClient):
        mock_response = httpx.Response(500, text="internal error")

        with patch.object(completion_client._client, "post", return_value=mock_response):
            body = await completion_client.complete(URL, "phi3", "hello")
            assert body == "internal error"

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_error(self, completion_client: CompletionClient):
        with patch.object(
            completion_client._client, "post", side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(CompletionTransportError, match="Connection refused"):
                await completion_client.complete(URL, "phi3", "hello")

    @pytest.mark.asyncio
    async def test_read_timeout_raises_transport_error(self, completion_client: CompletionClient):
        with patch.object(completion_client._client, "post", side_effect=httpx.ReadTimeout("Read timed out")):
            with pytest.raises(CompletionTransportError):
                await completion_client.complete(URL, "phi3", "hello")

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self, completion_client: CompletionClient):
        with patch.object(
            completion_client._client, "post", side_effect=httpx.ConnectError("refused"),
        ) as mock_post:
            with pytest.raises(CompletionTransportError):
                await completion_client.complete(URL, "phi3", "hello")
        assert mock_post.call_count == 1


class TestTransport:
    """Round trip through httpx with a mock transport."""

    @pytest.mark.asyncio
    async def test_sends_json_post(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["content_type"] = request.headers["content-type"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"text": "world"}]})

        client = CompletionClient()
        await client.aclose()
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        try:
            body = await client.complete(URL, "phi3", "hello")
        finally:
            await client.aclose()

        assert json.loads(body) == {"choices": [{"text": "world"}]}
        assert seen["method"] == "POST"
        assert seen["content_type"] == "application/json"
        assert seen["payload"]["prompt"] == "hello"

    def test_no_timeout_by_default(self):
        client = CompletionClient()
        assert client._client.timeout.read is None
        assert client._client.timeout.connect is None
