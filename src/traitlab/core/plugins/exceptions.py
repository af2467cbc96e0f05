"""
Errors of the plugin system.

They derive from ``TraitlabError`` so the CLI reports a broken project plugin
like any other traitlab error.
"""

from typing import Any, Dict, Optional

from traitlab.common.exceptions import TraitlabError


class PluginError(TraitlabError):
    """Base class of plugin errors; the message is prefixed with ``prefix``."""

    prefix = "Plugin error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{self.prefix}: {message}", details)

    def get_user_message(self) -> str:
        if not self.details:
            return str(self)
        return f"{self}\nDetails: {self.details}"


class PluginRegistrationError(PluginError):
    prefix = "Plugin registration failed"


class PluginNotFoundError(PluginError):
    prefix = "Plugin not found"


class PluginLoadError(PluginError):
    """A core or project plugin module could not be imported."""

    prefix = "Plugin loading failed"
