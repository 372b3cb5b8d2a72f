"""Tests for settings loading."""

import logging

import pytest
from chatrelay.config import load_settings
from chatrelay.models import Settings
from pydantic import ValidationError


class TestLoadSettings:
    def test_defaults(self):
        assert load_settings({}) == Settings()

    def test_reads_environment(self):
        settings = load_settings(
            {
                "CHATRELAY_PREFERRED_LLM": "anthropic",
                "ANTHROPIC_API_KEY": "sk-ant-x",
                "CHATRELAY_SUMMARY_LENGTH": "long",
                "CHATRELAY_AUTO_DETECT_RATE_LIMIT": "false",
                "CHATRELAY_MAX_HISTORY": "20",
            }
        )

        assert settings.preferred_llm == "anthropic"
        assert settings.anthropic_api_key == "sk-ant-x"
        assert settings.summary_length == "long"
        assert settings.auto_detect_rate_limit is False
        assert settings.max_history == 20

    def test_invalid_values_are_dropped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="chatrelay.config"):
            settings = load_settings(
                {
                    "CHATRELAY_PREFERRED_LLM": "gemini",
                    "CHATRELAY_MAX_HISTORY": "0",
                    "CHATRELAY_OLLAMA_MODEL": "mistral",
                }
            )

        assert settings.preferred_llm == "ollama"
        assert settings.max_history == 50
        assert settings.ollama_model == "mistral"
        assert "preferred_llm" in caplog.text
        assert "max_history" in caplog.text

    def test_empty_values_are_ignored(self):
        assert load_settings({"OPENAI_API_KEY": ""}).openai_api_key == ""

    def test_settings_are_frozen(self):
        settings = load_settings({})
        with pytest.raises(ValidationError):
            settings.preferred_llm = "openai"
