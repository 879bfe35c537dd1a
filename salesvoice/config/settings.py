"""
Environment-driven settings for the SalesVoice bridge.

Values come from process environment variables, optionally seeded from a ``.env``
file in the working directory. Settings are immutable once built; every bridge
reads the same instance and never mutates it.
"""

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field

from salesvoice.config.constants import (
    DEFAULT_CALL_GREETING,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GEMINI_VOICE,
    DEFAULT_GEMINI_WS_URL,
    DEFAULT_MAX_CONSECUTIVE_MALFORMED,
    DEFAULT_OPEN_TIMEOUT_SECONDS,
    DEFAULT_OUTBOUND_CALL_TIMEOUT_SECONDS,
    DEFAULT_PENDING_FRAME_LIMIT,
    DEFAULT_RECONNECT_ATTEMPTS,
    DEFAULT_SYSTEM_INSTRUCTION,
    DEFAULT_TWILIO_API_BASE,
)


class MalformedMessagePolicy(str, Enum):
    """What the telephony channel does with an unparseable message."""
    DROP = "drop"
    CLOSE = "close"


class Settings(BaseModel):
    """Runtime configuration for the HTTP surface and the audio relay."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_voice: str = DEFAULT_GEMINI_VOICE
    gemini_ws_url: str = DEFAULT_GEMINI_WS_URL
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION

    call_greeting: str = DEFAULT_CALL_GREETING
    public_host: Optional[str] = None
    twilio_api_base: str = DEFAULT_TWILIO_API_BASE
    outbound_call_timeout: float = Field(DEFAULT_OUTBOUND_CALL_TIMEOUT_SECONDS, gt=0)

    open_timeout: float = Field(DEFAULT_OPEN_TIMEOUT_SECONDS, gt=0)
    pending_frame_limit: int = Field(DEFAULT_PENDING_FRAME_LIMIT, ge=0)
    reconnect_attempts: int = Field(DEFAULT_RECONNECT_ATTEMPTS, ge=0)
    malformed_policy: MalformedMessagePolicy = MalformedMessagePolicy.DROP
    max_consecutive_malformed: int = Field(DEFAULT_MAX_CONSECUTIVE_MALFORMED, ge=1)

    @classmethod
    def from_env(cls, env: Optional[dict] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (used by tests)
        """
        env = os.environ if env is None else env

        values = {
            "host": env.get("HOST"),
            "port": env.get("PORT"),
            "log_level": env.get("LOG_LEVEL"),
            "gemini_api_key": env.get("GEMINI_API_KEY"),
            "gemini_model": env.get("GEMINI_MODEL"),
            "gemini_voice": env.get("GEMINI_VOICE"),
            "gemini_ws_url": env.get("GEMINI_WS_URL"),
            "system_instruction": env.get("SYSTEM_INSTRUCTION"),
            "call_greeting": env.get("CALL_GREETING"),
            "public_host": env.get("PUBLIC_HOST"),
            "twilio_api_base": env.get("TWILIO_API_BASE"),
            "outbound_call_timeout": env.get("OUTBOUND_CALL_TIMEOUT_SECONDS"),
            "open_timeout": env.get("AI_OPEN_TIMEOUT_SECONDS"),
            "pending_frame_limit": env.get("AI_PENDING_FRAME_LIMIT"),
            "reconnect_attempts": env.get("AI_RECONNECT_ATTEMPTS"),
            "malformed_policy": (env.get("MALFORMED_MESSAGE_POLICY") or "").lower() or None,
            "max_consecutive_malformed": env.get("MAX_CONSECUTIVE_MALFORMED"),
        }
        return cls(**{key: value for key, value in values.items() if value not in (None, "")})


def load_env_file(path: Path = Path(".") / ".env") -> bool:
    """Load a .env file into the process environment if it exists."""
    if path.exists():
        return dotenv.load_dotenv(path)
    return False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment once."""
    load_env_file()
    return Settings.from_env()
