"""Protocol for the text model behind answer generation and translation."""

from __future__ import annotations

from typing import Protocol


class LLMProvider(Protocol):
    """Single-shot completion.

    Both the answer assembler and the translator call ``generate`` through a
    ``ServiceGuard``, so implementations raise ``ExternalProviderError`` with
    ``transient`` set for failures worth retrying and let everything else
    propagate.
    """

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> str: ...
