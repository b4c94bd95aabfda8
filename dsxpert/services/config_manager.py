"""
Configuration Manager - Handle backend settings persistence
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from dsxpert.log import get_logger

logger = get_logger("dsxpert.config")

# Environment variables that fill in provider keys left empty in the config file
ENV_API_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}


class ConfigManager:
    """Manage configuration persistence.

    One instance is created per process by the application lifespan and
    handed to whatever needs it; there is no module-level instance.
    """

    def __init__(self, config_dir: str | os.PathLike | None = None, load_env: bool = True):
        if load_env:
            load_dotenv()

        self._config_file: Path | None = None

        # 1st: explicit argument, 2nd: environment, 3rd: home directory
        config_dir = config_dir or os.environ.get("DSXPERT_CONFIG_DIR") or os.path.expanduser("~/.dsxpert")

        config_path = Path(config_dir)
        try:
            config_path.mkdir(parents=True, exist_ok=True)
            self._config_file = config_path / "config.json"
        except OSError as e:
            logger.warning(f"Cannot write to {config_dir}: {e}")

        # Last resort: temp directory
        if not self._config_file:
            tmp_dir = Path(tempfile.gettempdir()) / "dsxpert"
            tmp_dir.mkdir(parents=True, exist_ok=True)
            self._config_file = tmp_dir / "config.json"
            logger.info(f"Using temporary config path: {self._config_file}")

        self._config = self._load_config()

    @property
    def config_file(self) -> Path:
        return self._config_file

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._default_config()

        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    stored = json.load(f)
                for key, value in stored.items():
                    if isinstance(value, dict) and isinstance(config.get(key), dict):
                        config[key] = {**config[key], **value}
                    else:
                        config[key] = value
            except (json.JSONDecodeError, OSError) as e:
                logger.error(f"Error loading config: {e}")

        self._apply_env_keys(config)
        return config

    @staticmethod
    def _apply_env_keys(config: dict[str, Any]) -> None:
        for provider, env_name in ENV_API_KEYS.items():
            section = config.setdefault(provider, {})
            if not section.get("apiKey") and os.environ.get(env_name):
                section["apiKey"] = os.environ[env_name]

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "provider": "gemini",
            "gemini": {"apiKey": "", "model": "gemini-1.5-pro-002", "temperature": 0.0},
            "openai": {"apiKey": "", "model": "gpt-4"},
            "maxRetries": 3,
            "timeoutSeconds": 60,
            "formatterTimeoutSeconds": 10,
            "reviewOutcomeTimeoutSeconds": 300,
            "server": {"host": "127.0.0.1", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return json.loads(json.dumps(self._config))

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        # Merge with existing config
        self._config.update(config)

        # Ensure config directory exists
        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        # Keys that came from the environment stay out of the file
        stored = json.loads(json.dumps(self._config))
        for provider, env_name in ENV_API_KEYS.items():
            section = stored.get(provider) or {}
            if section.get("apiKey") and section.get("apiKey") == os.environ.get(env_name):
                section["apiKey"] = ""

        try:
            with open(self._config_file, "w") as f:
                json.dump(stored, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")

    def get(self, key: str, default=None):
        """Get specific config value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set specific config value"""
        self._config[key] = value
        self.save_config(self._config)
