"""Tests for config module."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from tpa_pricing.config import (
    ClientConfig,
    DesignerConfig,
    PricingConfig,
    SearchConfig,
    config_from_env,
    load_config,
)


class TestPricingConfig:
    def test_defaults(self) -> None:
        config = PricingConfig()
        assert config.client.base_url == ""
        assert config.client.timeout_seconds == 30.0
        assert config.search.debounce_seconds == 0.3
        assert config.search.price_list_page_size == 20
        assert config.search.procedure_page_size == 10
        assert config.designer.default_priority == 1

    def test_json_round_trip(self) -> None:
        config = PricingConfig(client=ClientConfig(base_url="https://tpa.example.com", api_key="k"))
        restored = PricingConfig.model_validate_json(config.model_dump_json())
        assert restored.client.base_url == "https://tpa.example.com"
        assert restored.client.api_key == "k"

    def test_rejects_bad_values(self) -> None:
        with pytest.raises(ValidationError):
            ClientConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            SearchConfig(debounce_seconds=-1)
        with pytest.raises(ValidationError):
            DesignerConfig(default_point_value=-0.1)


class TestClientPaths:
    def test_trailing_slash_stripped(self) -> None:
        assert ClientConfig(base_url="https://tpa.example.com/").normalized_base_url == "https://tpa.example.com"

    def test_procedures_path_defaults(self) -> None:
        assert ClientConfig(base_url="https://tpa.example.com").procedures_path == "/api/v1"
        assert ClientConfig().procedures_path == "/api"

    def test_procedures_path_override(self) -> None:
        assert ClientConfig(procedures_base_path="gateway/v2/").procedures_path == "/gateway/v2"


class TestConfigFromEnv:
    def test_primary_variables(self) -> None:
        config = config_from_env(
            {
                "TPA_PRICING_API_BASE_URL": "https://a.test",
                "TPA_PRICING_API_KEY": "secret",
                "TPA_PRICING_TIMEOUT": "5",
            }
        )
        assert config.client.base_url == "https://a.test"
        assert config.client.api_key == "secret"
        assert config.client.timeout_seconds == 5.0

    def test_fallback_base_url(self) -> None:
        assert config_from_env({"API_BASE_URL": "https://b.test"}).client.base_url == "https://b.test"

    def test_primary_wins(self) -> None:
        env = {"TPA_PRICING_API_BASE_URL": "https://a.test", "API_BASE_URL": "https://b.test"}
        assert config_from_env(env).client.base_url == "https://a.test"

    def test_empty_environment(self) -> None:
        config = config_from_env({})
        assert config.client.base_url == ""
        assert config.client.api_key is None


class TestLoadConfig:
    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "client": {"base_url": "https://c.test"},
                    "search": {"debounce_seconds": 0},
                    "designer": {"default_priority": 4},
                }
            )
        )
        config = load_config(path)
        assert config.client.base_url == "https://c.test"
        assert config.search.debounce_seconds == 0
        assert config.designer.default_priority == 4

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "nope.json")

    def test_none_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TPA_PRICING_API_BASE_URL", raising=False)
        monkeypatch.setenv("API_BASE_URL", "https://env.test")
        assert load_config(None).client.base_url == "https://env.test"
