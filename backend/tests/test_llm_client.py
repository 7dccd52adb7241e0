import pytest

from fareflex.services.llm_client import LLMClient


def replying(reply):
    async def ask(sdk, system, user, max_tokens, temperature):
        ask.calls.append((system, user, max_tokens, temperature))
        if isinstance(reply, Exception):
            raise reply
        return reply

    ask.calls = []
    return ask


def make_client(monkeypatch, openai_reply=None, anthropic_reply=None):
    openai_ask, anthropic_ask = replying(openai_reply), replying(anthropic_reply)
    monkeypatch.setattr(LLMClient, "_openai_json", staticmethod(openai_ask))
    monkeypatch.setattr(LLMClient, "_anthropic_json", staticmethod(anthropic_ask))
    client = LLMClient(
        openai_api_key="sk-test" if openai_reply is not None else "",
        anthropic_api_key="sk-ant-test" if anthropic_reply is not None else "",
    )
    return client, openai_ask, anthropic_ask


async def test_openai_answers_first(monkeypatch):
    client, openai_ask, anthropic_ask = make_client(monkeypatch, ' {"a": 1}\n', '{"b": 2}')

    assert await client.complete_json("sys", "hi", max_tokens=50, temperature=0.1) == '{"a": 1}'
    assert openai_ask.calls == [("sys", "hi", 50, 0.1)]
    assert anthropic_ask.calls == []


async def test_falls_back_to_anthropic(monkeypatch):
    client, _, anthropic_ask = make_client(monkeypatch, RuntimeError("rate limited"), '{"b": 2}')

    assert await client.complete_json("sys", "hi", max_tokens=50, temperature=0) == '{"b": 2}'
    assert len(anthropic_ask.calls) == 1


async def test_all_providers_failing_raises(monkeypatch):
    client, _, _ = make_client(monkeypatch, RuntimeError("down"), RuntimeError("also down"))

    with pytest.raises(RuntimeError, match="All LLM providers failed: OpenAI: down; Anthropic: also down"):
        await client.complete_json("sys", "hi", max_tokens=50, temperature=0)


async def test_unconfigured_client_is_disabled():
    client = LLMClient()

    assert client.enabled is False
    with pytest.raises(RuntimeError, match="No LLM provider configured"):
        await client.complete_json("sys", "hi", max_tokens=50, temperature=0)
