"""Protocol for speech recognition / synthesis vendors."""

from __future__ import annotations

from typing import Protocol

from scheme_assist.models.domain import SpeechAudio, Transcript


class SpeechProvider(Protocol):
    async def asr(self, audio: bytes, language: str) -> Transcript: ...

    async def tts(self, text: str, language: str, voice: str) -> SpeechAudio: ...
