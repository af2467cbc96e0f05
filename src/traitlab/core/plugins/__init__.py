"""
Plugin system: analysis steps and null models registered by name.
"""

from .base import NullModelPlugin, Plugin, PluginType, TransformerPlugin, register
from .registry import PluginRegistry

__all__ = [
    "NullModelPlugin",
    "Plugin",
    "PluginType",
    "TransformerPlugin",
    "register",
    "PluginRegistry",
]
