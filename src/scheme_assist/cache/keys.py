"""Normalized cache keys shared by retrieval and generation."""

from __future__ import annotations

import hashlib
import re
import unicodedata

RETRIEVAL = "retrieval"
RESPONSE = "response"
RULES = "rules"
PROFILE = "profile"


def normalize_text(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    return re.sub(r"\s+", " ", text).strip().casefold()


def query_key(text: str, language: str, *extra: object) -> str:
    parts = [normalize_text(text), language.strip().lower(), *(str(e) for e in extra)]
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
