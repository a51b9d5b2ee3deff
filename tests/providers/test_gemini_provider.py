import asyncio
import unittest
from types import SimpleNamespace

from zero_engine.providers.gemini_provider import GeminiProvider, _extract_citations, _to_gemini_contents
from zero_engine.sessions.models import Citation, ExchangeTurn


class _FakeStream:
    def __init__(self, chunks: list[object]):
        self._chunks = chunks

    def __aiter__(self):
        self._iter = iter(self._chunks)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class _FakeModels:
    def __init__(self, chunks=None, response=None):
        self._chunks = chunks or []
        self._response = response
        self.stream_kwargs: dict | None = None
        self.create_kwargs: dict | None = None

    async def generate_content_stream(self, **kwargs):
        self.stream_kwargs = kwargs
        return _FakeStream(self._chunks)

    async def generate_content(self, **kwargs):
        self.create_kwargs = kwargs
        return self._response


def _chunk(text: str | None, web: list[tuple[str, str]] | None = None) -> SimpleNamespace:
    if web is None:
        return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=None)])
    grounding = SimpleNamespace(
        grounding_chunks=[SimpleNamespace(web=SimpleNamespace(uri=u, title=t)) for u, t in web]
    )
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=grounding)])


class GeminiProviderTests(unittest.TestCase):
    def _make_provider(self, models: _FakeModels) -> GeminiProvider:
        provider = GeminiProvider.__new__(GeminiProvider)
        provider._client = SimpleNamespace(aio=SimpleNamespace(models=models))
        provider._max_tokens = 1024
        provider._temperature = 0.5
        return provider

    def test_stream_chat_yields_text_and_citations(self) -> None:
        models = _FakeModels(
            chunks=[
                _chunk("Hello"),
                _chunk(" world", web=[("https://a.example", "A"), ("", "no uri")]),
            ]
        )
        provider = self._make_provider(models)
        history = [
            ExchangeTurn(role="user", parts=[{"text": "directive"}]),
            ExchangeTurn(role="model", parts=[{"text": "ack"}]),
        ]

        async def collect():
            return [c async for c in provider.stream_chat("gemini-test", history, [{"text": "hi"}], search_grounding=True)]

        chunks = asyncio.run(collect())

        self.assertEqual(["Hello", " world"], [c.text for c in chunks])
        self.assertIsNone(chunks[0].citations)
        self.assertEqual([Citation(uri="https://a.example", title="A")], chunks[1].citations)
        self.assertEqual("gemini-test", models.stream_kwargs["model"])
        self.assertEqual(3, len(models.stream_kwargs["contents"]))
        config = models.stream_kwargs["config"]
        self.assertEqual(1024, config.max_output_tokens)
        self.assertEqual(1, len(config.tools))

    def test_search_grounding_off_sends_no_tools(self) -> None:
        models = _FakeModels(chunks=[_chunk(None)])
        provider = self._make_provider(models)

        async def collect():
            return [c async for c in provider.stream_chat("m", [], [{"text": "hi"}])]

        chunks = asyncio.run(collect())

        self.assertEqual([""], [c.text for c in chunks])
        self.assertIsNone(models.stream_kwargs["config"].tools)

    def test_create_message(self) -> None:
        models = _FakeModels(response=SimpleNamespace(text="Bonjour"))
        provider = self._make_provider(models)

        result = asyncio.run(provider.create_message("m", "Translate hello"))

        self.assertEqual("Bonjour", result)
        self.assertEqual("Translate hello", models.create_kwargs["contents"])


class ConversionTests(unittest.TestCase):
    def test_inline_data_becomes_bytes_part(self) -> None:
        contents = _to_gemini_contents([], [{"text": "look"}, {"inline_data": {"mime_type": "image/png", "data": "AAEC"}}])

        self.assertEqual(1, len(contents))
        self.assertEqual("user", contents[0].role)
        self.assertEqual("look", contents[0].parts[0].text)
        self.assertEqual(b"\x00\x01\x02", contents[0].parts[1].inline_data.data)
        self.assertEqual("image/png", contents[0].parts[1].inline_data.mime_type)

    def test_chunk_without_candidates_has_no_citations(self) -> None:
        self.assertIsNone(_extract_citations(SimpleNamespace(candidates=None)))


if __name__ == "__main__":
    unittest.main()
