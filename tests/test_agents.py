"""
Tests for the Gemini assistant and media studio.

Gemini is never called: GenerativeModel and the genai client are faked.
"""

import io
import wave
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from cedar.agents import (
    AssistantError,
    CedarAssistant,
    MediaGenerationError,
    MediaStudio,
    from_data_url,
    pcm_to_wav,
    to_data_url,
    transactions_to_context,
)
from cedar.agents import assistant as assistant_module
from cedar.config import GeminiSettings
from cedar.models import (
    AssistantMode,
    Currency,
    ExpenseCategory,
    TransactionSource,
    VideoAspectRatio,
)
from cedar.polling import PollTimeoutError
from tests.factories import expense

PAYLOAD = '{"parsedTransaction": {"amount": 20, "currency": "Fresh USD", "type": "EXPENSE", "category": "Medicine"}}'


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key")


class FakeModel:
    """Stands in for genai.GenerativeModel and records how it was built."""

    def __init__(self, response=None, error=None, **kwargs):
        self.kwargs = kwargs
        self.generate_content_async = AsyncMock(return_value=response, side_effect=error)


@pytest.fixture
def fake_model(monkeypatch):
    """Patch GenerativeModel; returns a setter for the next response."""
    built = []
    state = {"response": None, "error": None}

    def factory(**kwargs):
        model = FakeModel(response=state["response"], error=state["error"], **kwargs)
        built.append(model)
        return model

    monkeypatch.setattr(assistant_module.genai, "GenerativeModel", factory)

    def set_next(response=None, error=None):
        state["response"] = response
        state["error"] = error
        return built

    return set_next


def text_response(text, grounding=None):
    candidate = SimpleNamespace(grounding_metadata=grounding)
    return SimpleNamespace(text=text, candidates=[candidate])


class TestTransactionsToContext:
    """Tests for the history rendered into the system instruction."""

    def test_empty(self):
        assert transactions_to_context([]) == "The user has not logged any transactions yet."

    def test_lines(self):
        """Test one line per transaction with the LBP dollar equivalent."""
        tx = expense(895000, ExpenseCategory.GROCERIES, Currency.LBP)
        context = transactions_to_context([tx])
        assert "- EXPENSE: Groceries - 895,000 LBP ($10.00 USD) on " in context


class TestCedarAssistant:
    """Tests for CedarAssistant."""

    @pytest.mark.asyncio
    async def test_conversational_reply(self, gemini_settings, fake_model):
        """Test plain text comes back as-is with no proposal."""
        fake_model(response=text_response("Your budget looks healthy."))
        reply = await CedarAssistant(gemini_settings).respond("How am I doing?", [])
        assert reply.text == "Your budget looks healthy."
        assert not reply.is_proposal

    @pytest.mark.asyncio
    async def test_payload_becomes_proposal(self, gemini_settings, fake_model):
        """Test a parsedTransaction reply is turned into a proposal."""
        fake_model(response=text_response(PAYLOAD))
        reply = await CedarAssistant(gemini_settings).respond("I bought medicine for $20", [])
        assert reply.is_proposal
        assert reply.proposal.category == "Medicine"
        assert reply.proposal.source == TransactionSource.CHAT
        assert "Do you want to add it?" in reply.text

    @pytest.mark.asyncio
    async def test_mode_selects_model(self, gemini_settings, fake_model):
        """Test each mode uses its configured model."""
        built = fake_model(response=text_response("ok"))
        await CedarAssistant(gemini_settings).respond("hi", [], AssistantMode.FAST)
        assert built[-1].kwargs["model_name"] == gemini_settings.fast_model
        assert "Cedar" in built[-1].kwargs["system_instruction"]

    @pytest.mark.asyncio
    async def test_search_mode_grounding(self, gemini_settings, fake_model):
        """Test search mode enables the search tool and returns sources."""
        grounding = SimpleNamespace(grounding_chunks=[
            SimpleNamespace(web=SimpleNamespace(title="Fuel prices", uri="https://example.com/fuel")),
        ])
        built = fake_model(response=text_response("Fuel went up.", grounding))
        reply = await CedarAssistant(gemini_settings).respond("fuel prices?", [], AssistantMode.SEARCH)
        assert built[-1].generate_content_async.call_args.kwargs["tools"] == "google_search_retrieval"
        assert [s.uri for s in reply.sources] == ["https://example.com/fuel"]

    @pytest.mark.asyncio
    async def test_api_failure(self, gemini_settings, fake_model):
        """Test SDK errors become AssistantError."""
        fake_model(error=RuntimeError("403"))
        with pytest.raises(AssistantError):
            await CedarAssistant(gemini_settings).respond("hi", [])

    @pytest.mark.asyncio
    async def test_analyze_receipt(self, gemini_settings, fake_model):
        """Test receipt proposals are marked as receipts."""
        built = fake_model(response=text_response(f"```json\n{PAYLOAD}\n```"))
        reply = await CedarAssistant(gemini_settings).analyze_receipt(b"img", "image/png")
        assert reply.proposal.source == TransactionSource.RECEIPT
        parts = built[-1].generate_content_async.call_args.args[0]
        assert parts[0] == {"mime_type": "image/png", "data": b"img"}


class TestMediaHelpers:
    """Tests for media encoding helpers."""

    def test_pcm_to_wav(self):
        """Test the WAV header matches the TTS output format."""
        pcm = b"\x00\x01" * 2400
        with wave.open(io.BytesIO(pcm_to_wav(pcm))) as wav:
            assert wav.getframerate() == 24000
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getnframes() == 2400

    def test_data_url(self):
        """Test data URLs decode back to their bytes."""
        url = to_data_url(b"\x89PNG", "image/png")
        assert url.startswith("data:image/png;base64,")
        assert from_data_url(url) == ("image/png", b"\x89PNG")

    def test_from_data_url_rejects_plain_url(self):
        with pytest.raises(ValueError):
            from_data_url("https://example.com/a.png")


def fake_client():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.generate_videos = AsyncMock()
    client.aio.operations.get = AsyncMock()
    client.aio.files.download = AsyncMock()
    return client


def inline_response(data, mime_type):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def operation(done=False, video=None, error=None):
    response = SimpleNamespace(generated_videos=[SimpleNamespace(video=video)]) if done else None
    return SimpleNamespace(done=done, error=error, response=response)


class TestMediaStudio:
    """Tests for MediaStudio with a fake genai client."""

    @pytest.mark.asyncio
    async def test_speak_returns_pcm(self, gemini_settings):
        client = fake_client()
        client.aio.models.generate_content.return_value = inline_response(b"pcm", "audio/L16")
        assert await MediaStudio(gemini_settings, client).speak("hello") == b"pcm"

    @pytest.mark.asyncio
    async def test_speak_without_audio(self, gemini_settings):
        client = fake_client()
        client.aio.models.generate_content.return_value = SimpleNamespace(candidates=[])
        with pytest.raises(MediaGenerationError, match="No audio"):
            await MediaStudio(gemini_settings, client).speak("hello")

    @pytest.mark.asyncio
    async def test_generate_image_data_url(self, gemini_settings):
        client = fake_client()
        client.aio.models.generate_content.return_value = inline_response(b"img", "image/png")
        url = await MediaStudio(gemini_settings, client).generate_image("a cedar tree")
        assert from_data_url(url) == ("image/png", b"img")

    @pytest.mark.asyncio
    async def test_image_key_error_message(self, gemini_settings):
        """Test a missing key gets an actionable message."""
        client = fake_client()
        client.aio.models.generate_content.side_effect = RuntimeError("Requested entity was not found")
        with pytest.raises(MediaGenerationError, match="API key"):
            await MediaStudio(gemini_settings, client).generate_image("x")

    @pytest.mark.asyncio
    async def test_generate_video_polls_until_done(self, gemini_settings):
        """Test the operation is refreshed until it finishes."""
        client = fake_client()
        video = SimpleNamespace(video_bytes=None, mime_type="video/mp4")
        client.aio.models.generate_videos.return_value = operation()
        client.aio.operations.get.side_effect = [operation(), operation(done=True, video=video)]
        client.aio.files.download.return_value = b"mp4"

        status = await MediaStudio(gemini_settings, client).generate_video(
            "cedars in snow", VideoAspectRatio.LANDSCAPE, interval_seconds=0, max_attempts=5,
        )
        assert status.done
        assert status.video_bytes == b"mp4"
        assert client.aio.operations.get.await_count == 2

    @pytest.mark.asyncio
    async def test_generate_video_times_out(self, gemini_settings):
        client = fake_client()
        client.aio.models.generate_videos.return_value = operation()
        client.aio.operations.get.return_value = operation()
        with pytest.raises(PollTimeoutError):
            await MediaStudio(gemini_settings, client).generate_video(
                "x", VideoAspectRatio.PORTRAIT, interval_seconds=0, max_attempts=3,
            )
        assert client.aio.operations.get.await_count == 3

    @pytest.mark.asyncio
    async def test_operation_error_stops_polling(self, gemini_settings):
        """Test a failed operation is terminal."""
        client = fake_client()
        client.aio.models.generate_videos.return_value = operation()
        client.aio.operations.get.return_value = operation(error={"message": "quota"})
        with pytest.raises(MediaGenerationError, match="quota"):
            await MediaStudio(gemini_settings, client).generate_video(
                "x", VideoAspectRatio.LANDSCAPE, interval_seconds=0, max_attempts=10,
            )
        assert client.aio.operations.get.await_count == 1
