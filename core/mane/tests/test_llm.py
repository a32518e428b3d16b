import json

import httpx
import pytest

from mane.engine.llm import LlamaCppChatModel, LLMUnavailableError, OllamaChatModel

MESSAGES = [{"role": "user", "content": "hi"}]


def ollama(handler):
    return OllamaChatModel(base_url="http://ollama.test", model="tiny", transport=httpx.MockTransport(handler))


def ndjson(*items):
    return "\n".join(item if isinstance(item, str) else json.dumps(item) for item in items).encode()


@pytest.mark.asyncio
async def test_invoke_returns_message_content():
    model = ollama(lambda request: httpx.Response(200, json={"message": {"content": "Final Answer: hi"}}))

    assert await model.invoke(MESSAGES) == "Final Answer: hi"
    await model.close()


@pytest.mark.asyncio
async def test_stream_yields_chunks_until_done():
    body = ndjson(
        {"message": {"content": "Final "}},
        {"message": {"content": "Answer"}},
        {"message": {"content": ""}, "done": True},
    )
    model = ollama(lambda request: httpx.Response(200, content=body))

    chunks = [c async for c in model.stream(MESSAGES)]

    assert chunks == ["Final ", "Answer"]
    await model.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [[1, 2], "plain text", {"message": "not an object"}])
async def test_invoke_rejects_unexpected_reply(reply):
    model = ollama(lambda request: httpx.Response(200, json=reply))

    with pytest.raises(LLMUnavailableError):
        await model.invoke(MESSAGES)
    await model.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("line", ["[1, 2]", "42", "{not json"])
async def test_stream_rejects_bad_lines(line):
    body = ndjson({"message": {"content": "ok"}}, line)
    model = ollama(lambda request: httpx.Response(200, content=body))

    with pytest.raises(LLMUnavailableError):
        async for _ in model.stream(MESSAGES):
            pass
    await model.close()


@pytest.mark.asyncio
async def test_http_errors_become_unavailable():
    model = ollama(lambda request: httpx.Response(503, text="loading"))

    with pytest.raises(LLMUnavailableError):
        await model.invoke(MESSAGES)
    assert await model.check_health() is False
    await model.close()


class BrokenLlama:
    def create_chat_completion(self, **kwargs):
        return {"choices": []}


@pytest.mark.asyncio
async def test_malformed_local_completion_becomes_unavailable(tmp_path):
    model = LlamaCppChatModel(tmp_path / "model.gguf")
    model._llm = BrokenLlama()

    with pytest.raises(LLMUnavailableError):
        await model.invoke(MESSAGES)
