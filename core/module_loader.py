"""
Dynamic Module Loader

Loads and manages independent modules based on configuration.
"""

import importlib
from typing import Optional, Dict, Any
from pathlib import Path
import yaml

from utils.logger import get_logger

logger = get_logger('module_loader')


class ModuleLoader:
    """
    Loads modules dynamically based on configuration.
    Allows swapping implementations without code changes.
    """

    # module type -> class name suffix
    CLASS_SUFFIXES = {
        'recognition': 'Recognition',
        'intent': 'Intent',
    }

    def __init__(self, config_dir: str = "config/modules"):
        self.config_dir = Path(config_dir)
        self.loaded_modules: Dict[str, Any] = {}

    def load_config(self, module_name: str) -> dict:
        """
        Load configuration for a module.

        Args:
            module_name: Name of module (e.g., 'recognition', 'intent')

        Returns:
            Configuration dictionary
        """
        config_path = self.config_dir / f"{module_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def load_module(
        self,
        module_type: str,
        provider: Optional[str] = None,
        overrides: Optional[dict] = None
    ) -> Any:
        """
        Load a module dynamically.

        Args:
            module_type: Type of module ('recognition', 'intent')
            provider: Specific provider to load (or read from config)
            overrides: Config values layered over the YAML file

        Returns:
            Instantiated module

        Example:
            adapter = loader.load_module('recognition')  # Loads Google recognition
            adapter = loader.load_module('recognition', 'replay')
        """
        try:
            config = self.load_config(module_type)
        except FileNotFoundError:
            if provider is None:
                raise
            config = {}

        config = {**config, **(overrides or {})}

        if provider is None:
            provider = config.get('provider')

        if not provider:
            raise ValueError(f"No provider specified for {module_type}")

        # modules.recognition.google -> GoogleRecognition
        module_path = f"modules.{module_type}.{provider}"
        class_name = self._get_class_name(provider, module_type)

        try:
            module = importlib.import_module(module_path)
            provider_class = getattr(module, class_name)
            instance = provider_class(config)

            cache_key = f"{module_type}:{provider}"
            self.loaded_modules[cache_key] = instance

            logger.info(f"Loaded {module_type} provider '{provider}' ({class_name})")
            return instance

        except ImportError as e:
            raise ImportError(
                f"Failed to import {module_path}: {e}\n"
                f"Make sure {provider}.py exists in modules/{module_type}/"
            ) from e
        except AttributeError as e:
            raise AttributeError(
                f"Class {class_name} not found in {module_path}: {e}"
            ) from e

    def get_module(self, module_type: str, provider: Optional[str] = None) -> Optional[Any]:
        """
        Get cached module or load it.

        Args:
            module_type: Type of module
            provider: Optional provider name

        Returns:
            Module instance or None
        """
        if provider is None:
            config = self.load_config(module_type)
            provider = config.get('provider')

        cache_key = f"{module_type}:{provider}"

        if cache_key in self.loaded_modules:
            return self.loaded_modules[cache_key]

        return self.load_module(module_type, provider)

    def _get_class_name(self, provider: str, module_type: str) -> str:
        """
        Convert provider name to class name.

        Examples:
            'google' + 'recognition' -> 'GoogleRecognition'
            'replay' + 'recognition' -> 'ReplayRecognition'
            'pattern' + 'intent' -> 'PatternIntent'
        """
        parts = provider.split('_')
        class_name = ''.join(word.capitalize() for word in parts)
        return class_name + self.CLASS_SUFFIXES.get(module_type, '')

    def list_available_providers(self, module_type: str) -> list:
        """
        List available providers for a module type.

        Args:
            module_type: Type of module

        Returns:
            List of provider names
        """
        module_dir = Path(__file__).resolve().parent.parent / "modules" / module_type

        if not module_dir.exists():
            return []

        skip = {'__init__.py', 'base.py', 'supervisor.py'}
        return sorted(file.stem for file in module_dir.glob("*.py") if file.name not in skip)


# Global instance
_loader = None


def get_module_loader() -> ModuleLoader:
    """Get global module loader instance"""
    global _loader
    if _loader is None:
        _loader = ModuleLoader()
    return _loader
