import json

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from trackhabit.domain.models.chat_state import UserTurn
from trackhabit.infrastructure.llm.model_client import ModelClient

SYSTEM = SystemMessage(content="You are Track Habit AI.")


def completion(content, tool_calls=None):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {"choices": [{"index": 0, "message": message}]}


def client_for(settings, handler) -> ModelClient:
    return ModelClient(settings, transport=httpx.MockTransport(handler))


async def test_successful_reply(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion("Bonjour !"))

    client = client_for(settings, handler)
    history = [HumanMessage(content="hi"), AIMessage(content="hello")]
    reply = await client.complete(SYSTEM, history, UserTurn(text="ça va ?"))
    await client.aclose()

    assert reply.text == "Bonjour !"
    assert not reply.is_empty
    assert seen["url"].endswith("/chat/completions")
    assert seen["auth"] == "Bearer test-key"
    body = seen["body"]
    assert body["model"] == settings.model_name
    assert body["max_tokens"] == 500
    assert body["temperature"] == 0.7
    assert "tools" not in body
    assert [message["role"] for message in body["messages"]] == ["system", "user", "assistant", "user"]
    assert body["messages"][-1]["content"] == "ça va ?"


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="upstream exploded"),
    httpx.Response(429, json={"error": "rate limited"}),
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json={"choices": []}),
])
async def test_bad_responses_degrade_to_empty_reply(settings, response):
    client = client_for(settings, lambda request: response)

    reply = await client.complete(SYSTEM, [], UserTurn(text="hi"))
    await client.aclose()

    assert reply.is_empty
    assert reply.text == ""


async def test_transport_error_degrades_to_empty_reply(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = client_for(settings, handler)
    reply = await client.complete(SYSTEM, [], UserTurn(text="hi"))
    await client.aclose()

    assert reply.is_empty


async def test_audio_is_sent_as_input_audio_part(settings):
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json=completion("Noted."))

    turn = UserTurn.from_request("", "data:audio/webm;codecs=opus;base64,UklGRg==")
    client = client_for(settings, handler)
    await client.complete(SYSTEM, [], turn)
    await client.aclose()

    content = captured["messages"][-1]["content"]
    assert content == [{"type": "input_audio", "input_audio": {"data": "UklGRg==", "format": "webm"}}]


async def test_tool_calls_are_returned(settings):
    tool_calls = [{"id": "call_1", "type": "function",
                   "function": {"name": "create_team", "arguments": '{"name": "Marketing"}'}}]
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json=completion(None, tool_calls))

    client = client_for(settings, handler)
    tools = [{"type": "function", "function": {"name": "create_team", "parameters": {}}}]
    reply = await client.complete(SYSTEM, [], UserTurn(text="create a team"), tools=tools)
    await client.aclose()

    assert captured["tools"] == tools
    assert reply.text == ""
    assert reply.tool_calls == tool_calls
    assert not reply.is_empty
