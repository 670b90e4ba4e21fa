"""Tests for request settings."""

import pytest

from gemclient.models import DEFAULT_STREAM_MAX_JSON_SIZE
from gemclient.settings import GenerationConfig, Settings
from gemclient.types import HarmBlockThreshold, HarmCategory


class TestSettings:
    """Tests for the Settings container."""

    def test_defaults_unset(self):
        settings = Settings()
        assert settings.safety_settings is None
        assert settings.generation_config is None
        assert settings.system_instruction is None
        assert settings.get_stream_max_json_size() == DEFAULT_STREAM_MAX_JSON_SIZE

    def test_set_all_safety_settings(self):
        settings = Settings()
        settings.set_all_safety_settings(HarmBlockThreshold.BLOCK_ONLY_HIGH)

        assert [s.category for s in settings.safety_settings] == list(HarmCategory)
        assert all(
            s.threshold is HarmBlockThreshold.BLOCK_ONLY_HIGH
            for s in settings.safety_settings
        )

    def test_individual_setters_create_config(self):
        settings = Settings()
        settings.set_temperature(0.5)
        settings.set_max_output_tokens(100)
        settings.set_top_k(40)

        config = settings.generation_config
        assert config.temperature == 0.5
        assert config.max_output_tokens == 100
        assert config.top_k == 40
        assert config.top_p is None

    def test_set_advance_settings_replaces_config(self):
        settings = Settings()
        settings.set_temperature(0.5)
        settings.set_advance_settings(response_mime_type="application/json")

        assert settings.generation_config.temperature is None
        assert settings.generation_config.response_mime_type == "application/json"

    def test_set_stream_max_json_size(self):
        settings = Settings()
        settings.set_stream_max_json_size(1024)
        assert settings.get_stream_max_json_size() == 1024

        with pytest.raises(ValueError):
            settings.set_stream_max_json_size(0)


class TestValidation:
    """Tests for generation config validation."""

    def test_temperature_range(self):
        GenerationConfig(temperature=0.0)
        GenerationConfig(temperature=2.0)
        with pytest.raises(ValueError):
            GenerationConfig(temperature=2.5)
        with pytest.raises(ValueError):
            Settings().set_temperature(-0.1)

    def test_stop_sequence_limit(self):
        GenerationConfig(stop_sequences=["a"] * 5)
        with pytest.raises(ValueError):
            Settings().set_stop_sequences(["a"] * 6)

    def test_positive_token_counts(self):
        with pytest.raises(ValueError):
            GenerationConfig(max_output_tokens=0)
        with pytest.raises(ValueError):
            Settings().set_top_k(-1)
