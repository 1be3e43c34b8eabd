"""
Media Studio

Speech, image and video generation through the google-genai SDK.

DESIGN DECISION: Video generation is a long-running operation. It is
never polled open-endedly: generate_video hands the status check to
cedar.polling, which enforces an attempt cap and honours cancellation.
"""

import base64
import io
import wave
from typing import Optional

import structlog
from google import genai
from google.genai import types

from cedar.config import GeminiSettings, get_settings
from cedar.models.media import VideoAspectRatio, VideoStatus
from cedar.polling import CancellationEvent, poll_until_done

logger = structlog.get_logger(__name__)

TTS_SAMPLE_RATE = 24000
TTS_CHANNELS = 1
TTS_SAMPLE_WIDTH = 2  # 16-bit PCM


class MediaGenerationError(Exception):
    """A generation request failed. Message is user-facing."""
    pass


def _friendly(error: Exception, default: str) -> str:
    """Map SDK errors to a message the user can act on."""
    if "not found" in str(error).lower():
        return "API key not found or invalid. Please select a valid key."
    return default


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a data: URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 data: URL into (mime_type, bytes)."""
    header, _, payload = url.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URL")
    return header[len("data:"):-len(";base64")], base64.b64decode(payload)


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = TTS_SAMPLE_RATE,
    channels: int = TTS_CHANNELS,
) -> bytes:
    """Wrap raw 16-bit little-endian PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(TTS_SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def _inline_parts(response):
    """Inline data blobs of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return []
    return [
        part.inline_data
        for part in candidates[0].content.parts or []
        if part.inline_data is not None and part.inline_data.data
    ]


class MediaStudio:
    """
    Generative media for the tools page and read-aloud.

    All methods raise MediaGenerationError with a user-facing message.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        client: Optional[genai.Client] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._client = client or genai.Client(api_key=self._settings.api_key)

    async def speak(self, text: str) -> bytes:
        """
        Synthesize speech.

        Returns:
            Raw 24 kHz mono 16-bit PCM. Use pcm_to_wav for playback.
        """
        try:
            response = await self._client.aio.models.generate_content(
                model=self._settings.tts_model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                voice_name=self._settings.tts_voice,
                            )
                        )
                    ),
                ),
            )
        except Exception as e:
            logger.error("tts_failed", error=str(e))
            raise MediaGenerationError("Failed to generate speech.") from e

        parts = _inline_parts(response)
        if not parts:
            raise MediaGenerationError("No audio data received.")
        return parts[0].data

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        image_size: str = "1K",
    ) -> str:
        """
        Generate an image.

        Returns:
            A data: URL of the first generated image
        """
        try:
            response = await self._client.aio.models.generate_content(
                model=self._settings.image_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(
                        aspect_ratio=aspect_ratio,
                        image_size=image_size,
                    ),
                ),
            )
        except Exception as e:
            logger.error("image_generation_failed", error=str(e))
            raise MediaGenerationError(_friendly(e, "Failed to generate image.")) from e

        parts = _inline_parts(response)
        if not parts:
            raise MediaGenerationError("No image was generated.")
        return to_data_url(parts[0].data, parts[0].mime_type or "image/png")

    async def start_video(
        self,
        prompt: str,
        aspect_ratio: VideoAspectRatio = VideoAspectRatio.LANDSCAPE,
    ) -> types.GenerateVideosOperation:
        """Start a video generation operation."""
        try:
            return await self._client.aio.models.generate_videos(
                model=self._settings.video_model,
                prompt=prompt,
                config=types.GenerateVideosConfig(
                    number_of_videos=1,
                    resolution="720p",
                    aspect_ratio=aspect_ratio.value,
                ),
            )
        except Exception as e:
            logger.error("video_start_failed", error=str(e))
            raise MediaGenerationError(_friendly(e, "Failed to start video generation.")) from e

    async def check_video(
        self,
        operation: types.GenerateVideosOperation,
    ) -> tuple[types.GenerateVideosOperation, VideoStatus]:
        """
        Refresh an operation once.

        Returns:
            (refreshed_operation, status)

        Raises:
            MediaGenerationError: the operation failed, or finished
                without a video. Both are terminal.
        """
        try:
            operation = await self._client.aio.operations.get(operation)
        except Exception as e:
            logger.error("video_status_failed", error=str(e))
            raise MediaGenerationError(_friendly(e, "Failed to check video status.")) from e

        if operation.error:
            raise MediaGenerationError(f"Video generation failed: {operation.error}")

        if not operation.done:
            return operation, VideoStatus(done=False)

        videos = operation.response.generated_videos if operation.response else None
        if not videos or videos[0].video is None:
            raise MediaGenerationError("No video was generated.")

        video = videos[0].video
        data = video.video_bytes
        if not data:
            try:
                data = await self._client.aio.files.download(file=video)
            except Exception as e:
                logger.error("video_download_failed", error=str(e))
                raise MediaGenerationError("Failed to download video.") from e

        return operation, VideoStatus(
            done=True,
            video_bytes=data,
            mime_type=video.mime_type or "video/mp4",
        )

    async def generate_video(
        self,
        prompt: str,
        aspect_ratio: VideoAspectRatio,
        interval_seconds: float,
        max_attempts: int,
        cancel_event: Optional[CancellationEvent] = None,
    ) -> VideoStatus:
        """
        Start a video and poll until it is ready.

        Raises:
            MediaGenerationError: start, status check or download failed
            PollTimeoutError: not ready after `max_attempts` checks
            PollCancelledError: `cancel_event` was set
        """
        operation = await self.start_video(prompt, aspect_ratio)

        async def check() -> VideoStatus:
            nonlocal operation
            operation, status = await self.check_video(operation)
            return status

        return await poll_until_done(
            check,
            interval_seconds=interval_seconds,
            max_attempts=max_attempts,
            cancel_event=cancel_event,
        )
