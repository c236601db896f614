"""
ClearLens — runtime configuration.

Every knob is read from the environment (a local .env is loaded first).
Tests construct Settings directly instead of touching os.environ.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    debug: bool = False
    model_name: str = "llama3.1:8b"
    ollama_host: str = "http://localhost:11434"
    llm_timeout_seconds: float = 30.0
    max_output_tokens: int = 220
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 30
    memory_dir: str = "memory"
    supabase_url: str = ""
    supabase_key: str = ""
    log_file: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def debug_enabled(self) -> bool:
        return self.debug and not self.is_production

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            env=os.environ.get("CLEARLENS_ENV", "development"),
            debug=_env_bool("CLEARLENS_DEBUG"),
            model_name=os.environ.get("CLEARLENS_MODEL", "llama3.1:8b"),
            ollama_host=os.environ.get("OLLAMA_HOST", "http://localhost:11434"),
            llm_timeout_seconds=_env_float("CLEARLENS_LLM_TIMEOUT", 30.0),
            max_output_tokens=_env_int("CLEARLENS_MAX_TOKENS", 220),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 60),
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 30),
            memory_dir=os.environ.get("CLEARLENS_MEMORY_DIR", "memory"),
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_key=os.environ.get("SUPABASE_KEY", ""),
            log_file=os.environ.get("CLEARLENS_LOG_FILE") or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
