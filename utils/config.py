"""
Configuration Management

Centralized config loading for the presenter pipeline.
"""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict

from core.errors import ConfigError


DEFAULT_SETTINGS: Dict[str, Any] = {
    'session': {
        'execution_threshold': 0.7,
        'auto_advance': {
            'enabled': True,
            'completion_threshold': 80.0,
            'confidence_threshold': 0.7,
            'transition_phrases': [
                'next slide',
                'moving on',
                'in conclusion',
                "let's continue"
            ]
        }
    },
    'features': {
        'keyword_limit': 5,
        'min_keyword_length': 4,
        'pace_window_seconds': 10.0,
        'optimal_pace': [120, 180],
        'topic_target_length': 500
    },
    'analytics': {
        'confidence_weight': 30.0,
        'keyword_weight': 5.0,
        'keyword_cap': 30.0,
        'optimal_pace_points': 25.0,
        'other_pace_points': 15.0,
        'duration_weight': 2.0,
        'duration_cap': 15.0
    },
    'content': {
        'mcq_limit': 10,
        'theory_limit': 5,
        'excerpt_limit': 20,
        'shuffle_seed': None,
        'generate_on_end': ['mcq', 'summary']
    },
    'recognition': {
        'restart_backoff': 1.0,
        'max_restarts': 0
    },
    'storage': {
        'db_path': 'data/presenter.db'
    }
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into a copy of base, recursing into nested dicts"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages all configuration files"""

    def __init__(self, config_root: str = "config"):
        self.config_root = Path(config_root)
        self.global_config: Dict[str, Any] = {}
        self.module_configs: Dict[str, Dict] = {}

    def load_global_config(self) -> dict:
        """Load global settings, layered over the built-in defaults"""
        settings_path = self.config_root / "settings.yaml"

        if settings_path.exists():
            try:
                with open(settings_path, 'r', encoding='utf-8') as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {settings_path}: {e}") from e
            self.global_config = _deep_merge(DEFAULT_SETTINGS, loaded)
        else:
            self.global_config = copy.deepcopy(DEFAULT_SETTINGS)

        return self.global_config

    def load_module_config(self, module_name: str) -> dict:
        """Load configuration for a specific module"""
        config_path = self.config_root / "modules" / f"{module_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Module config not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        self.module_configs[module_name] = config
        return config

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Examples:
            config.get('session.execution_threshold')
            config.get('features.topic_target_length')
        """
        if not self.global_config:
            self.load_global_config()

        keys = path.split('.')
        value = self.global_config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default


# Global instance
_config_manager = None


def get_config_manager() -> ConfigManager:
    """Get global config manager"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def load_global_config() -> dict:
    """Convenience function to load global config"""
    return get_config_manager().load_global_config()
