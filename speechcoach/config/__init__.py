"""Simple YAML configuration loader for SpeechCoach."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "speechcoach.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "device_index": None,
    },
    "recognition": {
        "credentials_path": None,
        "language": "en-US",
        "use_enhanced_model": True,
        "enable_automatic_punctuation": True,
        "upload_window_seconds": 10.0,
    },
    "session": {
        "tick_interval_seconds": 1.0,
        "default_title": "Practice Session",
    },
    "level_meter": {
        "gain": 400.0,
        "jitter": 15,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/speechcoach.log",
        "console_output": True,
    },
}


def find_config_file(start_dir: Optional[str] = None) -> Optional[Path]:
    """Look for speechcoach.yaml in start_dir and its parents."""
    current = Path(start_dir or os.getcwd()).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class SpeechCoachConfig:
    """SpeechCoach configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for speechcoach.yaml
                        in current directory and parent directories, and falls back
                        to built-in defaults when none is found.
        """
        self.config_file: Optional[Path] = None
        if config_path is not None:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        else:
            self.config_file = find_config_file()

        if self.config_file is None:
            logger.info("No configuration file found, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(copy.deepcopy(DEFAULT_CONFIG), loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('recognition', 'credentials_path'),
                             ('storage', 'data_directory'),
                             ('logging', 'file_path')):
            path = config.get(section, {}).get(key)
            if path and not os.path.isabs(path):
                config[section][key] = str(config_dir / path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recognition.language').

        Args:
            key_path: Dot-separated key path (e.g., 'recognition.credentials_path')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'session.default_title')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - raises if not configured or missing."""
        creds_path = self.get('recognition.credentials_path')
        if not creds_path:
            raise ValueError(f"Google credentials path not configured in {CONFIG_FILENAME}")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
