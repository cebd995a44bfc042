"""Configuration loading and validation for slack-bubble-relay."""

import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/slack-bubble-relay/config.yaml"

DEFAULT_APOLOGY_MESSAGE = (
    "Sorry, I couldn't reach the app right now. Please try again in a moment."
)

# Environment variables override values from the YAML file.
ENV_OVERRIDES = {
    "SLACK_BOT_TOKEN": "slack_bot_token",
    "SLACK_BOT_USER_ID": "bot_user_id",
    "BUBBLE_API_URL": "bubble_api_url",
    "BUBBLE_API_TOKEN": "bubble_api_token",
    "SLACK_CLIENT_ID": "slack_client_id",
    "SLACK_CLIENT_SECRET": "slack_client_secret",
    "SLACK_REDIRECT_URI": "slack_redirect_uri",
    "PORT": "port",
}


@dataclass(frozen=True)
class Config:
    slack_bot_token: str = ""
    bubble_api_url: str = ""
    bubble_api_token: str = ""
    workflow_name: str = "slack_message"
    oauth_workflow_name: str = "slack_oauth"
    slack_client_id: str | None = None
    slack_client_secret: str | None = None
    slack_redirect_uri: str | None = None
    oauth_success_url: str = "https://slack.com/app"
    bot_user_id: str | None = None  # skips the auth.test lookup when set
    host: str = "0.0.0.0"
    port: int = 3000
    apology_message: str = DEFAULT_APOLOGY_MESSAGE

    @property
    def workflow_url(self) -> str:
        return f"{self.bubble_api_url.rstrip('/')}/{self.workflow_name}"

    @property
    def oauth_workflow_url(self) -> str:
        return f"{self.bubble_api_url.rstrip('/')}/{self.oauth_workflow_name}"

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.slack_client_id and self.slack_client_secret)


KNOWN_KEYS = {f.name for f in fields(Config)}


def _validate_config(config: Config) -> None:
    """Validate config values, raising ValueError on invalid fields."""
    if not config.slack_bot_token:
        raise ValueError("slack_bot_token is required (set SLACK_BOT_TOKEN)")
    if not config.bubble_api_url:
        raise ValueError("bubble_api_url is required (set BUBBLE_API_URL)")

    if not isinstance(config.port, int) or isinstance(config.port, bool):
        raise ValueError(f"port must be an integer, got {type(config.port).__name__}")
    if not 1 <= config.port <= 65535:
        raise ValueError(f"port must be between 1 and 65535, got {config.port}")


def _read_yaml(path: str) -> dict:
    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping, got {type(raw).__name__}")

    return raw


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file and the environment.

    Config path resolution order:
    1. Explicit path argument
    2. RELAY_CONFIG_PATH environment variable
    3. ~/.config/slack-bubble-relay/config.yaml (optional)

    Environment variables listed in ENV_OVERRIDES win over file values.
    """
    explicit = path or os.environ.get("RELAY_CONFIG_PATH")
    if explicit is not None:
        raw = _read_yaml(explicit)
    else:
        default_path = os.path.expanduser(DEFAULT_CONFIG_PATH)
        raw = _read_yaml(default_path) if os.path.exists(default_path) else {}

    values = {}
    for key, value in raw.items():
        if key not in KNOWN_KEYS:
            logger.warning("Unknown config key '%s' — ignoring", key)
            continue
        values[key] = value

    for env_name, key in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[key] = env_value

    if "port" in values and isinstance(values["port"], str):
        try:
            values["port"] = int(values["port"])
        except ValueError:
            raise ValueError(f"port must be an integer, got {values['port']!r}")

    config = Config(**values)
    _validate_config(config)

    return config
