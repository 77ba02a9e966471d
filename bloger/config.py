"""
Configuration management for Bloger.
"""
import os
import copy
import json
import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    "openai": {
        "text_model": "gpt-4.1",
        "suggestion_model": "gpt-4.1-mini",
        "image_model": "gpt-4.1-mini",
        "timeout_seconds": 120,
        "retry_tries": 3
    },
    "generation": {
        "language": "Polish",
        "suggestion_count": 6
    },
    "image": {
        "size": "1536x1024",
        "output_format": "png"
    },
    "share": {
        "token_budget": 30000,
        "base_url": "http://localhost:3000/"
    },
    "history": {
        "database": "cache/bloger_history.db",
        "slot": "bloger_history",
        "max_entries": 3,
        "quota_bytes": 5 * 1024 * 1024
    },
    "logging": {
        "level": "INFO",
        "file": None
    }
}

class Config:
    """
    Configuration manager for Bloger.
    """
    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file or use defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            try:
                path = Path(self.config_path)
                if path.exists():
                    if path.suffix.lower() in ['.yaml', '.yml']:
                        with open(path, 'r', encoding='utf-8') as f:
                            user_config = yaml.safe_load(f) or {}
                    elif path.suffix.lower() == '.json':
                        with open(path, 'r', encoding='utf-8') as f:
                            user_config = json.load(f)
                    else:
                        raise ValueError(f"Unsupported config file format: {path.suffix}")

                    # Update config with user settings
                    self._update_dict(config, user_config)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning(f"Error loading config from {self.config_path}: {e}")
                logger.warning("Using default configuration")

        # Override with environment variables
        self._override_from_env(config)

        return config

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _override_from_env(self, config: Dict, prefix: str = 'BLOGER_') -> None:
        """
        Override configuration with environment variables.

        Nesting levels are separated by a double underscore, so
        BLOGER_HISTORY__MAX_ENTRIES maps to history.max_entries.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in os.environ.items():
            if not key.startswith(prefix) or key == f"{prefix}CONFIG_PATH":
                continue

            parts = key[len(prefix):].lower().split('__')

            # Navigate to the right place in the config
            current = config
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            try:
                current[parts[-1]] = json.loads(value)
            except json.JSONDecodeError:
                current[parts[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'history.max_entries')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current


# Global configuration instance
config = Config(os.getenv('BLOGER_CONFIG_PATH'))

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        key: Dot-separated key path (e.g., 'openai.text_model')
        default: Default value if key not found

    Returns:
        Configuration value
    """
    return config.get(key, default)
