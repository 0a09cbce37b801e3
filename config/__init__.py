"""
Configuration Module for the Document Parser.

Centralized configuration management using YAML files. Pipeline
parameters (model, OCR languages, limits, paths) are read from
settings.yaml; secrets such as the model API key come from the
environment, optionally populated from a local .env file.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


class ConfigurationManager:
    """
    Centralized configuration management for the document parser.

    Attributes:
        config_path (Path): Path to the configuration file.

    Example:
        >>> config = ConfigurationManager()
        >>> model = config.get("llm.model")
        >>> languages = config.get("ocr.tesseract.lang")
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Optional path to configuration file. Defaults to
                the DOCUMENT_PARSER_CONFIG environment variable, then to
                config/settings.yaml.
        """
        if self._initialized:
            return

        if config_path is None:
            config_path = os.environ.get("DOCUMENT_PARSER_CONFIG")
        if config_path is None:
            self.config_path = Path(__file__).parent / "settings.yaml"
        else:
            self.config_path = Path(config_path)

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            yaml.YAMLError: If configuration file is invalid.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """Resolve relative entries under ``paths`` against the project root."""
        project_root = Path(__file__).parent.parent

        for key, value in (self._config.get('paths') or {}).items():
            if value and not Path(value).is_absolute():
                self._config['paths'][key] = str(project_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "llm.model").
            default: Default value if key doesn't exist.

        Returns:
            Configuration value or default.

        Example:
            >>> config.get("llm.model")
            "gpt-4o"
            >>> config.get("nonexistent.key", "default_value")
            "default_value"
        """
        value = self._config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_secret(self, env_key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Read a secret from the environment variable named by ``env_key``.

        Args:
            env_key: Dot-notation key whose value is an environment
                variable name (e.g., "llm.api_key_env").
            default: Returned when the variable is unset.
        """
        env_name = self.get(env_key)
        if not env_name:
            return default
        return os.environ.get(env_name, default)

    def get_all(self) -> Dict[str, Any]:
        """Return a shallow copy of the complete configuration."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (used by tests)."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Convenience function to get configuration values.

    Args:
        key: Configuration key in dot notation.
        default: Default value if key doesn't exist.

    Returns:
        Configuration value or default.
    """
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
