"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # LLM / Gemini
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.1
    gemini_max_tokens: int = 1024

    # Retrieval
    retrieval_top_k: int = 5

    # Cache TTLs (seconds) per namespace
    cache_retrieval_ttl_s: float = 3600.0
    cache_response_ttl_s: float = 3600.0
    cache_rules_ttl_s: float = 21600.0
    cache_profile_ttl_s: float = 300.0
    cache_sweep_interval_s: float = 60.0

    # Circuit breakers (one per external capability)
    breaker_failure_threshold: int = 5
    breaker_open_timeout_s: float = 30.0

    # Retry with backoff
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 0.2
    tts_max_attempts: int = 2
    provider_call_timeout_s: float = 8.0

    # Write queue
    write_queue_max_attempts: int = 5
    write_queue_base_delay_s: float = 1.0

    # Orchestration
    default_deadline_ms: int = 15000
    default_language: str = "en"
    default_voice: str = "female"
    scheme_aliases: dict[str, str] = {}  # spoken name -> scheme id

    # Grounding
    grounding_overlap_threshold: float = 0.25

    # Storage paths
    sqlite_db_path: str = "data/scheme_assist.db"
    faiss_index_path: str = "data/faiss_index"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {"env_file": ".env", "env_prefix": "SCHEME_"}
