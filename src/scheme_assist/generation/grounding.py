"""Lexical-overlap grounding check between an answer and retrieved documents."""

from __future__ import annotations

import re

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

STOPWORDS = frozenset(
    """
    a an the and or but if of to in on at by for with from as is are was were be been
    being this that these those it its you your we our they their he she his her them
    can could will would should may might must do does did have has had not no yes
    what which who whom how when where why there here also than then so such any all
    i me my about into over under more most other some only very just scheme schemes
    """.split()
)


def content_tokens(text: str) -> set[str]:
    tokens = (t.casefold() for t in _TOKEN_RE.findall(text))
    # amounts and ages matter even when short
    return {t for t in tokens if t.isdigit() or (len(t) > 2 and t not in STOPWORDS)}


def overlap_ratio(answer: str, document_text: str) -> float:
    """Share of the answer's content tokens that also appear in the document."""
    answer_tokens = content_tokens(answer)
    if not answer_tokens:
        return 0.0
    doc_tokens = content_tokens(document_text)
    return len(answer_tokens & doc_tokens) / len(answer_tokens)


def grounding_score(answer: str, documents: list) -> float:
    if not documents:
        return 0.0
    return max(overlap_ratio(answer, d.text) for d in documents)
