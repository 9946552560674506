# ===============================================
# tests/test_generator.py
# Conversation turn runner: message layout, chunk
# flattening, streaming and error surfacing.
# ===============================================

import json
from types import SimpleNamespace

import httpx

import pytest

from sidekick.errors import ConfigurationMissing, ModelInvocationFailed
from sidekick.generate import ChatGenerator, EchoDevClient, Message, ModelParams, flatten_chunk
from sidekick.generate.clients import AnthropicClient, OllamaClient, OpenAIClient
from tests.fakes import ScriptedClient

PARAMS = ModelParams(temperature=0.3, max_tokens=300)
HISTORY = [Message("user", "Hi"), Message("assistant", "Hello! How can I help?")]


async def _collect(stream):
    return [fragment async for fragment in stream]


class BlockClient:
    """Streams content-block lists the way the Anthropic client does."""

    model = "blocks"

    async def generate(self, messages, params):
        return "ab", {}

    async def stream(self, messages, params):
        yield [SimpleNamespace(type="text_delta", text="a"), {"type": "text", "text": "b"}]
        yield [SimpleNamespace(type="input_json_delta", partial_json="{}")]
        yield ["c", "d"]
        yield None
        yield ""


class BrokenClient:
    model = "broken"

    def __init__(self, after=0):
        self.after = after

    async def generate(self, messages, params):
        raise TimeoutError("upstream timed out")

    async def stream(self, messages, params):
        for i in range(self.after):
            yield f"part{i} "
        raise ConnectionError("socket closed")


def test_flatten_chunk_shapes():
    assert flatten_chunk("plain") == "plain"
    assert flatten_chunk(None) == ""
    assert flatten_chunk([]) == ""
    assert flatten_chunk(["a", {"text": "b"}, SimpleNamespace(text="c"), {"image": "..."}, 7]) == "abc"
    assert flatten_chunk([{"text": None}, SimpleNamespace(partial_json="{")]) == ""


@pytest.mark.asyncio
async def test_run_prepends_prompt_then_history_then_user():
    client = ScriptedClient()
    gen = ChatGenerator(client)

    out = await gen.run(HISTORY, "What now?", "You are a test persona.", PARAMS)

    assert out.text == "Hello, world"
    kind, messages, params = client.calls[0]
    assert kind == "generate"
    assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[0].content == "You are a test persona."
    assert messages[-1].content == "What now?"
    assert params is PARAMS
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_stream_yields_fragments_in_order():
    gen = ChatGenerator(ScriptedClient(["Hel", "lo, ", "world"]))
    fragments = await _collect(gen.stream([], "hi", "prompt", PARAMS))
    assert fragments == ["Hel", "lo, ", "world"]
    assert "".join(fragments) == "Hello, world"


@pytest.mark.asyncio
async def test_stream_and_run_agree():
    gen = ChatGenerator(ScriptedClient(["The ", "answer ", "is ", "42."]))
    streamed = "".join(await _collect(gen.stream(HISTORY, "q", "p", PARAMS)))
    ran = (await gen.run(HISTORY, "q", "p", PARAMS)).text
    assert streamed == ran


@pytest.mark.asyncio
async def test_echo_client_stream_matches_generate():
    gen = ChatGenerator(EchoDevClient())
    streamed = "".join(await _collect(gen.stream(HISTORY, "What is   our PTO policy?", "p", PARAMS)))
    ran = (await gen.run(HISTORY, "What is   our PTO policy?", "p", PARAMS)).text
    assert streamed == ran == "[ECHO RESPONSE]\nWhat is   our PTO policy?"


@pytest.mark.asyncio
async def test_stream_flattens_block_lists_and_drops_empty_chunks():
    fragments = await _collect(ChatGenerator(BlockClient()).stream([], "hi", "p", PARAMS))
    assert fragments == ["ab", "cd"]


@pytest.mark.asyncio
async def test_empty_stream_is_valid_and_not_retried():
    client = ScriptedClient([])
    fragments = await _collect(ChatGenerator(client).stream([], "hi", "p", PARAMS))
    assert fragments == []
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_closing_consumer_closes_upstream():
    client = ScriptedClient(["a", "b", "c", "d"])
    stream = ChatGenerator(client).stream([], "hi", "p", PARAMS)
    assert await stream.__anext__() == "a"
    await stream.aclose()
    assert client.closed


@pytest.mark.asyncio
async def test_run_failure_is_model_invocation_failed():
    with pytest.raises(ModelInvocationFailed) as exc_info:
        await ChatGenerator(BrokenClient()).run([], "hi", "p", PARAMS)
    assert isinstance(exc_info.value.__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_stream_failure_after_fragments_surfaces():
    received = []
    with pytest.raises(ModelInvocationFailed):
        async for fragment in ChatGenerator(BrokenClient(after=2)).stream([], "hi", "p", PARAMS):
            received.append(fragment)
    assert received == ["part0 ", "part1 "]


@pytest.mark.asyncio
@pytest.mark.parametrize("client, setting", [
    (AnthropicClient(api_key=None), "ANTHROPIC_API_KEY"),
    (OpenAIClient(api_key=""), "OPENAI_API_KEY"),
])
async def test_missing_credential_fails_fast(client, setting):
    gen = ChatGenerator(client)
    with pytest.raises(ConfigurationMissing) as exc_info:
        await gen.run([], "hi", "p", PARAMS)
    assert exc_info.value.setting == setting

    with pytest.raises(ConfigurationMissing):
        await _collect(gen.stream([], "hi", "p", PARAMS))


def test_ensure_ready_checks_credentials_without_calling_the_model():
    with pytest.raises(ConfigurationMissing):
        ChatGenerator(AnthropicClient(api_key=None)).ensure_ready()
    with pytest.raises(ConfigurationMissing):
        ChatGenerator(OpenAIClient(api_key=None)).ensure_ready()

    client = ScriptedClient()
    ChatGenerator(client).ensure_ready()
    assert client.calls == []


# replies with surrounding whitespace must survive both paths unchanged
PADDED_PIECES = ["\n  Fifteen", " days", " of PTO.\n\n"]
PADDED_REPLY = "".join(PADDED_PIECES)


class _FakeOpenAIStream:
    def __init__(self, pieces):
        self.pieces = pieces
        self.closed = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for p in self.pieces:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))])

    async def close(self):
        self.closed = True


class _FakeCompletions:
    def __init__(self, pieces):
        self.pieces = pieces

    async def create(self, stream=False, **request):
        if stream:
            return _FakeOpenAIStream(self.pieces)
        message = SimpleNamespace(content="".join(self.pieces))
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.mark.asyncio
async def test_openai_run_and_stream_return_same_text():
    client = OpenAIClient(api_key="sk-test")
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(PADDED_PIECES)))
    gen = ChatGenerator(client)

    ran = (await gen.run(HISTORY, "PTO?", "p", PARAMS)).text
    streamed = "".join(await _collect(gen.stream(HISTORY, "PTO?", "p", PARAMS)))

    assert ran == streamed == PADDED_REPLY


def _ollama_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    if not body["stream"]:
        return httpx.Response(200, json={"response": PADDED_REPLY, "done": True})
    lines = [json.dumps({"response": p, "done": False}) for p in PADDED_PIECES]
    lines.append(json.dumps({"response": "", "done": True}))
    return httpx.Response(200, content="\n".join(lines).encode())


@pytest.mark.asyncio
async def test_ollama_run_and_stream_return_same_text():
    client = OllamaClient(host="http://ollama.test", transport=httpx.MockTransport(_ollama_handler))
    gen = ChatGenerator(client)

    ran = (await gen.run(HISTORY, "PTO?", "p", PARAMS)).text
    streamed = "".join(await _collect(gen.stream(HISTORY, "PTO?", "p", PARAMS)))

    assert ran == streamed == PADDED_REPLY
