"""Speech recognition and synthesis behind the speech circuit breaker."""

from __future__ import annotations

from scheme_assist.context import SPEECH, ServiceContext
from scheme_assist.models.domain import SpeechAudio, Transcript
from scheme_assist.observability.logger import get_logger
from scheme_assist.protocols.speech import SpeechProvider

logger = get_logger("speech")


class SpeechGateway:
    """ASR is attempted once (the user is re-prompted on failure);
    TTS is retried once before the error surfaces."""

    def __init__(self, provider: SpeechProvider, context: ServiceContext) -> None:
        self._provider = provider
        self._asr_guard = context.guard(SPEECH, max_attempts=1)
        self._tts_guard = context.guard(SPEECH, max_attempts=context.settings.tts_max_attempts)
        self._default_voice = context.settings.default_voice

    async def transcribe(self, audio: bytes, language: str) -> Transcript:
        transcript = await self._asr_guard.call("asr", self._provider.asr, audio, language)
        logger.info(
            "transcribed",
            language=language,
            chars=len(transcript.text),
            confidence=round(transcript.confidence, 3),
        )
        return transcript

    async def synthesize(self, text: str, language: str, voice: str | None = None) -> SpeechAudio:
        speech = await self._tts_guard.call(
            "tts", self._provider.tts, text, language, voice or self._default_voice
        )
        logger.info("synthesized", language=language, duration_s=round(speech.duration_s, 2))
        return speech
