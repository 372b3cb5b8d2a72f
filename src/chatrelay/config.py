"""Central configuration for paths, constants and the settings snapshot."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from .models import Settings

logger = logging.getLogger(__name__)

# Data directory, override with CHATRELAY_DATA_DIR env var
DATA_DIR = Path(
    os.environ.get("CHATRELAY_DATA_DIR", str(Path.home() / ".chatrelay"))
)

# Database path
SQLITE_PATH = DATA_DIR / "history.db"

# HTTP
HTTP_TIMEOUT = float(os.environ.get("CHATRELAY_HTTP_TIMEOUT", "60"))

# Provider endpoints and models
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
OPENAI_MODEL = "gpt-3.5-turbo"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_MODEL = "claude-3-haiku-20240307"
ANTHROPIC_VERSION = "2023-06-01"

# Token ceiling per request, keyed by summary length
MAX_TOKENS = {"short": 150, "medium": 300, "long": 500}

# Footer stamped on rendered output
GENERATOR_NAME = "AI Context Transfer"

# Env var → Settings field
_SETTINGS_ENV = {
    "CHATRELAY_PREFERRED_LLM": "preferred_llm",
    "CHATRELAY_OLLAMA_URL": "ollama_url",
    "CHATRELAY_OLLAMA_MODEL": "ollama_model",
    "OPENAI_API_KEY": "openai_api_key",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
    "CHATRELAY_SUMMARY_LENGTH": "summary_length",
    "CHATRELAY_AUTO_DETECT_RATE_LIMIT": "auto_detect_rate_limit",
    "CHATRELAY_MAX_HISTORY": "max_history",
}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build a Settings snapshot from environment variables.

    Values that fail validation are dropped one by one so a single bad
    variable never costs the rest of the configuration.
    """
    env = os.environ if environ is None else environ
    values = {
        field: env[var] for var, field in _SETTINGS_ENV.items() if env.get(var)
    }

    try:
        return Settings(**values)
    except ValidationError as exc:
        for error in exc.errors():
            field = error["loc"][0]
            logger.warning("Ignoring invalid setting %s=%r", field, values.get(field))
            values.pop(field, None)
        return Settings(**values)
