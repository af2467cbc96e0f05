"""
Plugin loader module for traitlab.

Loads the built-in plugin packages and the ``*.py`` files of a project
``plugins/`` directory. Importing a plugin module runs its ``@register``
decorators, which is what puts the plugins in the registry.
"""

# core/plugins/plugin_loader.py
import importlib
import importlib.util
import logging
import pkgutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .base import PluginType
from .exceptions import PluginLoadError
from .registry import PluginRegistry

logger = logging.getLogger(__name__)

# Core plugin packages loaded automatically
CORE_PLUGIN_MODULES = [
    "traitlab.core.plugins.transformers",
    "traitlab.core.plugins.null_models",
]


def _registered_modules() -> Set[str]:
    modules = set()
    for plugin_type in PluginType:
        for plugin_class in PluginRegistry.get_plugins_by_type(plugin_type).values():
            modules.add(plugin_class.__module__)
    return modules


class PluginLoader:
    """Loader for traitlab plugins, handling both core and project plugins."""

    def __init__(self):
        self.loaded_plugins: Set[str] = set()
        self.plugin_paths: Dict[str, str] = {}

    def load_core_plugins(self) -> None:
        """
        Import every module of the built-in plugin packages.

        A module imported earlier whose plugins are no longer registered
        (after ``PluginRegistry.clear()``) is reloaded so it registers again.

        Raises:
            PluginLoadError: If a core module fails to import
        """
        registered = _registered_modules()
        for package_name in CORE_PLUGIN_MODULES:
            try:
                package = importlib.import_module(package_name)
            except ImportError as e:
                raise PluginLoadError(
                    f"Failed to import core plugin package {package_name}",
                    details={"error": str(e)},
                )
            for module_info in pkgutil.iter_modules(package.__path__):
                if module_info.name.startswith("_"):
                    continue
                module_name = f"{package_name}.{module_info.name}"
                try:
                    if module_name in sys.modules and module_name not in registered:
                        importlib.reload(sys.modules[module_name])
                    else:
                        importlib.import_module(module_name)
                except ImportError as e:
                    raise PluginLoadError(
                        f"Failed to import core plugin module {module_name}",
                        details={"error": str(e)},
                    )
                self.loaded_plugins.add(module_name)
        logger.debug(f"Core plugins loaded: {PluginRegistry.list_plugins()}")

    def load_project_plugins(self, plugins_dir: Optional[Path]) -> None:
        """
        Load every ``*.py`` file of a project plugins directory.

        Args:
            plugins_dir: Directory to scan; missing directories are skipped
        """
        if plugins_dir is None:
            return
        plugins_dir = Path(plugins_dir)
        if not plugins_dir.is_dir():
            logger.debug(f"No project plugins directory at {plugins_dir}")
            return

        for file in sorted(plugins_dir.rglob("*.py")):
            if file.name.startswith("_"):
                continue
            relative = file.relative_to(plugins_dir).with_suffix("")
            module_name = f"plugins.{'.'.join(relative.parts)}"
            self._load_plugin_module(file, module_name)
            self.loaded_plugins.add(module_name)
            self.plugin_paths[module_name] = str(file)
            logger.info(f"Loaded project plugin module {file.name}")

    def load_plugins(self, plugins_dir: Optional[Path] = None) -> None:
        """Load core plugins, then project plugins."""
        self.load_core_plugins()
        self.load_project_plugins(plugins_dir)

    def _load_plugin_module(self, file: Path, module_name: str) -> None:
        """
        Load a single plugin module from a file.

        Raises:
            PluginLoadError: If loading of module fails
        """
        spec = importlib.util.spec_from_file_location(module_name, file)
        if spec is None or spec.loader is None:
            raise PluginLoadError(
                f"Failed to create spec for {module_name}",
                details={"file": str(file)},
            )
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise PluginLoadError(
                f"Failed to load module {module_name}",
                details={"file": str(file), "error": str(e)},
            )

    def get_plugin_info(self) -> Dict[str, Any]:
        """Information about loaded modules and registered plugins."""
        return {
            "loaded_plugins": sorted(self.loaded_plugins),
            "plugin_paths": self.plugin_paths,
            "plugins_by_type": {
                plugin_type.value: names
                for plugin_type, names in PluginRegistry.list_plugins().items()
            },
        }

    def get_plugin_details(self) -> List[Dict[str, Any]]:
        """One record per registered plugin, used by ``traitlab plugins``."""
        details = []
        for plugin_type in PluginType:
            for name, plugin_class in PluginRegistry.get_plugins_by_type(plugin_type).items():
                metadata = PluginRegistry.get_plugin_metadata(name, plugin_type)
                details.append(
                    {
                        "name": name,
                        "type": plugin_type.value,
                        "module": plugin_class.__module__,
                        "description": metadata.get("description", ""),
                    }
                )
        details.sort(key=lambda x: (x["type"], x["name"]))
        return details
