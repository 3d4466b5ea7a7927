import os
from pathlib import Path
from typing import Optional

import yaml

from tagwatch_core.errors import ConfigError
from tagwatch_core.platform import Platform, parse_enabled_platforms

DEFAULT_CONFIG: dict = {
    "enabled_platforms": ["android", "ios", "desktop"],
    "forum_url": "https://community.signalusers.org",
    "server_topic_id": None,
    "topic_id_override": None,
    "topic_id_override_platform": None,  # None = the override applies to every platform
    "dry_run": False,
    "store": "gist",  # "gist" or "sqlite"
    "gist_id": None,
    "store_path": ".tagwatch.db",
    "state_key": "state",
    "posting_delay_seconds": 3.0,
}

# Config key -> environment variable. Secrets never live in the YAML file.
ENV_VARS = {
    "github_token": "GITHUB_TOKEN",
    "discourse_api_key": "DISCOURSE_API_KEY",
    "discord_webhook_url": "DISCORD_WEBHOOK_URL",
    "discord_webhook_url_updates": "DISCORD_WEBHOOK_URL_UPDATES",
    "discord_errors_mention_role": "DISCORD_ERRORS_MENTION_ROLE",
    "discord_updates_mention_role": "DISCORD_UPDATES_MENTION_ROLE",
    "user_id": "TAGWATCH_USER_ID",
}


def load_config(config_path: str = ".tagwatch.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .tagwatch.yml in the current directory
      3. CLI argument overrides

    Credentials are then resolved from environment variables, and
    ``enabled_platforms`` is normalized to a list of Platform members.
    """
    config = {**DEFAULT_CONFIG, "enabled_platforms": list(DEFAULT_CONFIG["enabled_platforms"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for key, var in ENV_VARS.items():
        config[key] = os.environ.get(var)

    try:
        config["enabled_platforms"] = parse_enabled_platforms(config["enabled_platforms"])
        if config["topic_id_override_platform"] is not None:
            config["topic_id_override_platform"] = Platform.from_name(config["topic_id_override_platform"])
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if config["user_id"] is not None:
        try:
            config["user_id"] = int(config["user_id"])
        except ValueError as e:
            raise ConfigError(f"TAGWATCH_USER_ID must be an integer, got {config['user_id']!r}") from e

    return config
