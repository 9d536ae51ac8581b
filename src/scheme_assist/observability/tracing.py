"""Per-query stage timing.

Each orchestrator stage (asr, translate_in, retrieval, generation,
eligibility, tts) runs inside ``TraceContext.span``. A span that exits by
exception, including cancellation at the deadline, is kept and marked
``failed`` so the query metrics show where the time went.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import uuid4


@dataclass
class Span:
    stage: str
    start_ms: float
    end_ms: float | None = None
    failed: bool = False
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return (self.end_ms or self.start_ms) - self.start_ms


class TraceContext:
    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or str(uuid4())
        self.spans: list[Span] = []
        self._started = time.monotonic()

    def _offset_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    @contextmanager
    def span(self, stage: str, **metadata):
        s = Span(stage=stage, start_ms=self._offset_ms(), metadata=metadata)
        self.spans.append(s)
        try:
            yield s
        except BaseException:
            s.failed = True
            raise
        finally:
            s.end_ms = self._offset_ms()

    @property
    def elapsed_ms(self) -> float:
        return self._offset_ms()

    def stage_totals(self) -> dict[str, float]:
        """Milliseconds per stage; repeated stages are summed."""
        totals: dict[str, float] = {}
        for s in self.spans:
            totals[s.stage] = totals.get(s.stage, 0.0) + s.duration_ms
        return {stage: round(ms, 2) for stage, ms in totals.items()}

    def summary(self) -> list[dict]:
        return [
            {
                "stage": s.stage,
                "duration_ms": round(s.duration_ms, 2),
                **({"failed": True} if s.failed else {}),
                **s.metadata,
            }
            for s in self.spans
        ]
