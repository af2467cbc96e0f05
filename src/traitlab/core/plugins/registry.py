"""
Registry of analysis step and null model plugins.

Entries are keyed by (type, name), so a transformer and a null model may share
a name. Registering the same class twice is a no-op, which lets project
plugin modules be reloaded between runs.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from .base import Plugin, PluginType
from .exceptions import PluginNotFoundError, PluginRegistrationError


@dataclass
class _Entry:
    plugin_class: Type[Plugin]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def import_path(self) -> str:
        return f"{self.plugin_class.__module__}.{self.plugin_class.__name__}"


class PluginRegistry:
    """Class-level registry shared by the loader, the services and ``@register``."""

    _entries: Dict[Tuple[PluginType, str], _Entry] = {}

    @classmethod
    def register_plugin(
        cls,
        name: str,
        plugin_class: Type[Plugin],
        plugin_type: Optional[PluginType] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Register ``plugin_class`` under ``name``.

        Args:
            name: Name used in analysis.yml (or as ``null_model`` parameter)
            plugin_class: Plugin class
            plugin_type: Defaults to the ``type`` attribute of the class
            metadata: Description and module shown by ``traitlab plugins``

        Raises:
            PluginRegistrationError: If the type is invalid or the name is taken
                by another class
        """
        actual_type = plugin_type or getattr(plugin_class, "type", None)
        if not isinstance(actual_type, PluginType):
            raise PluginRegistrationError(
                f"Invalid plugin type: {actual_type}",
                details={"plugin": name, "type": str(actual_type)},
            )

        entry = _Entry(plugin_class, dict(metadata or {}))
        existing = cls._entries.get((actual_type, name))
        if existing is not None:
            # Module reloads create new class objects with the same import path
            if existing.import_path == entry.import_path:
                return
            raise PluginRegistrationError(
                f"'{name}' is already a {actual_type.value} plugin",
                details={
                    "plugin": name,
                    "type": actual_type.value,
                    "existing_class": existing.import_path,
                    "new_class": entry.import_path,
                },
            )
        cls._entries[(actual_type, name)] = entry

    @classmethod
    def _entry(cls, name: str, plugin_type: PluginType) -> _Entry:
        try:
            return cls._entries[(plugin_type, name)]
        except KeyError:
            raise PluginNotFoundError(
                f"no {plugin_type.value} plugin named '{name}'",
                details={
                    "plugin": name,
                    "type": plugin_type.value,
                    "available": cls.list_plugins()[plugin_type],
                },
            )

    @classmethod
    def get_plugin(cls, name: str, plugin_type: PluginType) -> Type[Plugin]:
        """
        Raises:
            PluginNotFoundError: With the sorted names of the type as ``available``
        """
        return cls._entry(name, plugin_type).plugin_class

    @classmethod
    def get_plugin_metadata(cls, name: str, plugin_type: PluginType) -> Dict[str, Any]:
        entry = cls._entries.get((plugin_type, name))
        return dict(entry.metadata) if entry else {}

    @classmethod
    def get_plugins_by_type(cls, plugin_type: PluginType) -> Dict[str, Type[Plugin]]:
        return {
            name: entry.plugin_class
            for (entry_type, name), entry in cls._entries.items()
            if entry_type is plugin_type
        }

    @classmethod
    def list_plugins(cls) -> Dict[PluginType, List[str]]:
        """Sorted plugin names per type (every type present, possibly empty)."""
        return {
            plugin_type: sorted(cls.get_plugins_by_type(plugin_type))
            for plugin_type in PluginType
        }

    @classmethod
    def has_plugin(cls, name: str, plugin_type: PluginType) -> bool:
        return (plugin_type, name) in cls._entries

    @classmethod
    def remove_plugin(cls, name: str, plugin_type: PluginType) -> None:
        """
        Raises:
            PluginNotFoundError: If nothing is registered under that name
        """
        cls._entry(name, plugin_type)
        del cls._entries[(plugin_type, name)]

    @classmethod
    def clear(cls) -> None:
        """Forget every plugin (tests reload the core plugins afterwards)."""
        cls._entries.clear()
