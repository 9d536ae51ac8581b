"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

from google import genai
from google.genai import errors, types

from scheme_assist.exceptions import ExternalProviderError
from scheme_assist.observability.logger import get_logger

logger = get_logger("gemini")

_RETRYABLE_CODES = {408, 429, 500, 502, 503, 504}


class GeminiProvider:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> str:
        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            )
            if system:
                config.system_instruction = system

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
        except errors.APIError as e:
            raise ExternalProviderError(
                "generation",
                "generate",
                f"Gemini generation failed: {e}",
                transient=e.code in _RETRYABLE_CODES,
            ) from e
        except Exception as e:
            raise ExternalProviderError("generation", "generate", f"Gemini generation failed: {e}") from e

        text = response.text or ""
        if not text.strip():
            raise ExternalProviderError("generation", "generate", "Gemini returned an empty answer")
        return text
