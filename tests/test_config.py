"""Tests for configuration loading and validation."""

import dataclasses
import logging

import pytest
import yaml

from slack_bubble_relay.config import (
    DEFAULT_APOLOGY_MESSAGE,
    ENV_OVERRIDES,
    Config,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the real environment and home directory."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("RELAY_CONFIG_PATH", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


def write_config(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data))
    return str(path)


class TestConfigDefaults:
    def test_default_config_values(self):
        config = Config()
        assert config.workflow_name == "slack_message"
        assert config.oauth_workflow_name == "slack_oauth"
        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.bot_user_id is None
        assert config.apology_message == DEFAULT_APOLOGY_MESSAGE

    def test_config_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Config().port = 8080

    def test_workflow_urls(self):
        config = Config(bubble_api_url="https://app.bubbleapps.io/api/1.1/wf/")
        assert config.workflow_url == "https://app.bubbleapps.io/api/1.1/wf/slack_message"
        assert config.oauth_workflow_url == "https://app.bubbleapps.io/api/1.1/wf/slack_oauth"

    def test_oauth_enabled_requires_id_and_secret(self):
        assert Config().oauth_enabled is False
        assert Config(slack_client_id="123").oauth_enabled is False
        assert Config(slack_client_id="123", slack_client_secret="s").oauth_enabled is True


class TestLoadConfigFromFile:
    def test_load_full_config(self, tmp_path):
        path = write_config(
            tmp_path,
            {
                "slack_bot_token": "xoxb-file",
                "bubble_api_url": "https://app.bubbleapps.io/api/1.1/wf",
                "bubble_api_token": "bubble-secret",
                "workflow_name": "incoming_slack",
                "port": 8080,
                "apology_message": "Oops",
            },
        )

        config = load_config(path)

        assert config.slack_bot_token == "xoxb-file"
        assert config.bubble_api_token == "bubble-secret"
        assert config.workflow_url == "https://app.bubbleapps.io/api/1.1/wf/incoming_slack"
        assert config.port == 8080
        assert config.apology_message == "Oops"

    def test_path_from_env_var(self, tmp_path, monkeypatch):
        path = write_config(
            tmp_path, {"slack_bot_token": "xoxb-a", "bubble_api_url": "https://x"}
        )
        monkeypatch.setenv("RELAY_CONFIG_PATH", path)

        config = load_config()

        assert config.slack_bot_token == "xoxb-a"

    def test_unknown_keys_warn(self, tmp_path, caplog):
        path = write_config(
            tmp_path,
            {"slack_bot_token": "xoxb-a", "bubble_api_url": "https://x", "colour": "blue"},
        )

        with caplog.at_level(logging.WARNING):
            load_config(path)

        assert "colour" in caplog.text

    def test_explicit_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="YAML mapping"):
            load_config(str(path))


class TestLoadConfigFromEnv:
    def test_env_only_without_file(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
        monkeypatch.setenv("BUBBLE_API_URL", "https://env.example/api/1.1/wf")
        monkeypatch.setenv("BUBBLE_API_TOKEN", "tok")
        monkeypatch.setenv("SLACK_BOT_USER_ID", "UBOT")
        monkeypatch.setenv("PORT", "9000")

        config = load_config()

        assert config.slack_bot_token == "xoxb-env"
        assert config.bubble_api_token == "tok"
        assert config.bot_user_id == "UBOT"
        assert config.port == 9000

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_config(
            tmp_path, {"slack_bot_token": "xoxb-file", "bubble_api_url": "https://x"}
        )
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")

        assert load_config(path).slack_bot_token == "xoxb-env"

    def test_invalid_port_env(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
        monkeypatch.setenv("BUBBLE_API_URL", "https://x")
        monkeypatch.setenv("PORT", "eighty")

        with pytest.raises(ValueError, match="port"):
            load_config()


class TestValidation:
    def test_missing_bot_token(self, monkeypatch):
        monkeypatch.setenv("BUBBLE_API_URL", "https://x")
        with pytest.raises(ValueError, match="slack_bot_token"):
            load_config()

    def test_missing_bubble_url(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
        with pytest.raises(ValueError, match="bubble_api_url"):
            load_config()

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_out_of_range(self, tmp_path, port):
        path = write_config(
            tmp_path,
            {"slack_bot_token": "xoxb-a", "bubble_api_url": "https://x", "port": port},
        )
        with pytest.raises(ValueError, match="between 1 and 65535"):
            load_config(path)
