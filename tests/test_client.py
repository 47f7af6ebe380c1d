from __future__ import annotations

import asyncio
import json

import pytest

from promptloop import (
    ClientClosedError,
    ExecuteParam,
    InvalidParameterError,
    Message,
    PromptLoopClient,
    PromptLoopSettings,
    PromptRef,
    Role,
    StreamEventError,
    create_client,
)
from promptloop.settings import CacheSettings


def run_async(coro):
    return asyncio.run(coro)


PROMPT = {
    "workspace_id": "7",
    "prompt_key": "greeting",
    "version": "1",
    "prompt_template": {
        "template_type": "normal",
        "messages": [
            {"role": "system", "content": "You help ${name}."},
            {"role": "user", "content": "{{question}}"},
        ],
        "variable_defs": [
            {"key": "name", "type": "string"},
            {"key": "question", "type": "string"},
        ],
    },
}


class _FakeStream:
    def __init__(self, text: str) -> None:
        self._lines = [line.encode("utf-8") for line in text.splitlines(keepends=True)]
        self.close_calls = 0

    def __iter__(self):
        return iter(self._lines)

    def close(self) -> None:
        self.close_calls += 1


class _FakeTransport:
    def __init__(self) -> None:
        self.posts: list[tuple[str, dict]] = []
        self.streams: list[_FakeStream] = []
        self.stream_text = ""
        self.closed = False

    def post(self, url: str, body: dict) -> str:
        self.posts.append((url, body))
        if url.endswith("/mget"):
            return json.dumps(
                {"data": {"items": [{"query": {"prompt_key": "greeting"}, "prompt": PROMPT}]}}
            )
        return json.dumps(
            {
                "data": {
                    "message": {"role": "assistant", "content": "Hi Ann"},
                    "finish_reason": "stop",
                    "usage": {"input_tokens": 5, "output_tokens": 2},
                }
            }
        )

    def post_stream(self, url: str, body: dict) -> _FakeStream:
        self.posts.append((url, body))
        stream = _FakeStream(self.stream_text)
        self.streams.append(stream)
        return stream

    def close(self) -> None:
        self.closed = True


def _client(transport: _FakeTransport) -> PromptLoopClient:
    settings = PromptLoopSettings(
        workspace_id="7",
        base_url="https://hub.example.com/",
        cache=CacheSettings(max_workers=2),
    )
    return PromptLoopClient(settings=settings, transport=transport)


def test_get_and_format_prompt():
    transport = _FakeTransport()
    with _client(transport) as client:
        messages = client.get_and_format_prompt(
            PromptRef("greeting"),
            {"name": "Ann", "question": "What is new?"},
        )
        client.get_prompt(PromptRef("greeting"))

    assert [m.content for m in messages] == ["You help Ann.", "What is new?"]
    assert messages[0].role is Role.SYSTEM
    assert len(transport.posts) == 1
    assert transport.posts[0][0] == "https://hub.example.com/v1/loop/prompts/mget"


def test_format_prompt_leaves_cached_prompt_untouched():
    transport = _FakeTransport()
    with _client(transport) as client:
        prompt = client.get_prompt(PromptRef("greeting"))
        client.format_prompt(prompt, {"name": "Ann", "question": "q"})

        again = client.get_prompt(PromptRef("greeting"))
        assert again.prompt_template.messages[0].content == "You help ${name}."


def test_invalidate_cache_refetches():
    transport = _FakeTransport()
    with _client(transport) as client:
        client.get_prompt(PromptRef("greeting"))
        client.invalidate_cache(PromptRef("greeting"))
        client.get_prompt(PromptRef("greeting"))
        client.invalidate_all_cache()
        client.get_prompt(PromptRef("greeting"))

        assert len(transport.posts) == 3
        assert client.cache_stats().miss_count == 3


def test_async_variants():
    transport = _FakeTransport()
    with _client(transport) as client:
        messages = run_async(
            client.get_and_format_prompt_async(
                PromptRef("greeting"), {"name": "Ann", "question": "q"}
            )
        )
        result = run_async(client.execute_async(ExecuteParam(prompt_key="greeting")))

    assert messages[0].content == "You help Ann."
    assert result.message.content == "Hi Ann"


def test_execute_posts_encoded_body():
    transport = _FakeTransport()
    with _client(transport) as client:
        result = client.execute(
            ExecuteParam(
                prompt_key="greeting",
                version="1",
                variable_vals={"name": "Ann"},
                messages=[Message(role=Role.USER, content="extra")],
            )
        )

    url, body = transport.posts[0]
    assert url == "https://hub.example.com/v1/loop/prompts/execute"
    assert body["prompt_identifier"] == {"prompt_key": "greeting", "version": "1"}
    assert body["variable_vals"] == [{"key": "name", "value": "Ann"}]
    assert result.finish_reason == "stop"
    assert result.usage.output_tokens == 2


def test_execute_streaming_reads_chunks_and_closes_response():
    transport = _FakeTransport()
    transport.stream_text = (
        'event: message\ndata: {"message": {"role": "assistant", "content": "Hi"}}\n\n'
        'event: message\ndata: {"message": {"content": " Ann"}, "finish_reason": "stop",'
        ' "usage": {"input_tokens": 5, "output_tokens": 2}}\n\n'
    )
    with _client(transport) as client:
        with client.execute_streaming(ExecuteParam(prompt_key="greeting")) as reader:
            chunks = list(reader)

    assert transport.posts[0][0] == "https://hub.example.com/v1/loop/prompts/execute_streaming"
    assert "".join(chunk.message.content for chunk in chunks) == "Hi Ann"
    assert chunks[-1].usage.input_tokens == 5
    assert transport.streams[0].close_calls == 1


def test_execute_streaming_error_event():
    transport = _FakeTransport()
    transport.stream_text = "event: error\ndata: quota exceeded\n\n"
    with _client(transport) as client:
        reader = client.execute_streaming(ExecuteParam(prompt_key="greeting"))
        with pytest.raises(StreamEventError):
            reader.recv()

    assert transport.streams[0].close_calls == 1


def test_invalid_parameters_are_rejected():
    transport = _FakeTransport()
    with _client(transport) as client:
        with pytest.raises(InvalidParameterError):
            client.get_prompt(PromptRef(""))
        with pytest.raises(InvalidParameterError):
            client.execute(ExecuteParam(prompt_key=" "))
        with pytest.raises(InvalidParameterError):
            client.execute_streaming(None)
        with pytest.raises(InvalidParameterError):
            client.execute(ExecuteParam(prompt_key="greeting", variable_vals={"x": None}))

    assert transport.posts == []


def test_closed_client_rejects_calls():
    transport = _FakeTransport()
    client = _client(transport)
    client.close()
    client.close()

    assert client.closed
    with pytest.raises(ClientClosedError):
        client.get_prompt(PromptRef("greeting"))
    with pytest.raises(ClientClosedError):
        client.execute(ExecuteParam(prompt_key="greeting"))
    # Injected transports belong to the caller.
    assert transport.closed is False


def test_create_client_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PROMPTLOOP_WORKSPACE_ID", "42")
    monkeypatch.setenv("PROMPTLOOP_BASE_URL", "https://hub.example.com")

    client = create_client(transport=_FakeTransport(), timeout_s=5.0)
    try:
        assert client.workspace_id == "42"
        assert client.settings.timeout_s == 5.0
        assert client.settings.prompt_endpoint == "https://hub.example.com/v1/loop/prompts/mget"
    finally:
        client.close()


def test_client_requires_workspace(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("PROMPTLOOP_WORKSPACE_ID", raising=False)

    with pytest.raises(InvalidParameterError):
        create_client(transport=_FakeTransport())
