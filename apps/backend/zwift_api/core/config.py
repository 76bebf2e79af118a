"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets are injected via environment — never
hard-coded.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the POS dashboard.
    cors_origins_str: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Supabase (read-only context store) ────────────────────────
    # Project URL + anon key from the Supabase dashboard (Settings → API).
    # Left empty, every store read returns [] and prompts get less context.
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # ─── AI ────────────────────────────────────────────────────────
    # Get from https://aistudio.google.com/
    gemini_api_key: str = ""

    # When True, all AI calls return canned mock responses.
    # Always True in tests; set False in production with a real key.
    ai_mock_mode: bool = True

    # ─── AI request queue ──────────────────────────────────────────
    # One queue per process. Defaults suit the Gemini free tier:
    # 2 s spacing, 10 waiting, 30 s max wait, 100 ms re-poll.
    ai_queue_min_interval_ms: int = 2000
    ai_queue_max_size: int = 10
    ai_queue_max_wait_ms: int = 30000
    ai_queue_retry_delay_ms: int = 100
    # Budget for a single in-flight call. 0 = unbounded.
    ai_queue_max_execution_ms: int = 60000

    # ─── Per-client limits (slowapi) ───────────────────────────────
    profit_insights_rate_limit: str = "10/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
