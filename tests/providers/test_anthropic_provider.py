import asyncio
import unittest
from types import SimpleNamespace

from zero_engine.providers.anthropic_provider import AnthropicProvider, _to_anthropic_messages
from zero_engine.sessions.models import ExchangeTurn


class _FakeStream:
    def __init__(self, events: list[object]):
        self._events = events

    def __aiter__(self):
        self._iter = iter(self._events)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class _FakeMessages:
    def __init__(self, events=None, create_response=None):
        self._events = events or []
        self._create_response = create_response
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs.get("stream"):
            return _FakeStream(self._events)
        return self._create_response


class _FakeClient:
    def __init__(self, events=None, create_response=None):
        self.messages = _FakeMessages(events, create_response)


class AnthropicProviderTests(unittest.TestCase):
    def _make_provider(self, events=None, create_response=None) -> AnthropicProvider:
        provider = AnthropicProvider.__new__(AnthropicProvider)
        provider._client = _FakeClient(events, create_response)
        provider._max_tokens = 256
        provider._temperature = 1.0
        return provider

    def test_stream_chat_yields_text_deltas(self) -> None:
        events = [
            SimpleNamespace(type="message_start"),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text="[Draft]")),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="input_json_delta", partial_json="{")),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text="\nv1")),
            SimpleNamespace(type="message_delta", delta=SimpleNamespace(stop_reason="end_turn")),
        ]
        provider = self._make_provider(events=events)

        async def collect():
            return [c async for c in provider.stream_chat("m", [], [{"text": "hi"}], search_grounding=True)]

        chunks = asyncio.run(collect())

        self.assertEqual(["[Draft]", "\nv1"], [c.text for c in chunks])
        self.assertTrue(all(c.citations is None for c in chunks))
        call = provider._client.messages.calls[0]
        self.assertTrue(call["stream"])
        self.assertEqual([{"role": "user", "content": [{"type": "text", "text": "hi"}]}], call["messages"])

    def test_create_message_joins_text_blocks(self) -> None:
        response = SimpleNamespace(
            usage=SimpleNamespace(input_tokens=5, output_tokens=3),
            content=[SimpleNamespace(type="text", text="Hal"), SimpleNamespace(type="text", text="lo")],
        )
        provider = self._make_provider(create_response=response)

        self.assertEqual("Hallo", asyncio.run(provider.create_message("m", "Translate")))

    def test_message_conversion(self) -> None:
        history = [
            ExchangeTurn(role="user", parts=[{"text": "directive"}]),
            ExchangeTurn(role="model", parts=[{"text": "ack"}]),
        ]
        parts = [
            {"text": ""},
            {"inline_data": {"mime_type": "image/jpeg", "data": "abc"}},
            {"inline_data": {"mime_type": "application/pdf", "data": "pdf"}},
            {"inline_data": {"mime_type": "audio/wav", "data": "wav"}},
        ]

        messages = _to_anthropic_messages(history, parts)

        self.assertEqual(["user", "assistant", "user"], [m["role"] for m in messages])
        blocks = messages[-1]["content"]
        self.assertEqual(["image", "document", "text"], [b["type"] for b in blocks])
        self.assertEqual("image/jpeg", blocks[0]["source"]["media_type"])
        self.assertIn("audio/wav", blocks[2]["text"])


if __name__ == "__main__":
    unittest.main()
