"""
Plugin base classes.

Two families exist. Transformers are the steps of analysis.yml: they read the
tables of a run (or an earlier result) and return a result table. Null models
randomise an abundance and trait pair for the null_model_ses step.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ValidationError

from traitlab.common.exceptions import DataTransformError


class PluginType(Enum):
    TRANSFORMER = "transformer"
    NULL_MODEL = "null_model"


class Plugin(ABC):
    """Base class of all plugins; subclasses set ``type``."""

    type: PluginType

    def __init__(self, context: Any = None):
        """
        Initialize the plugin.

        Args:
            context: Shared state of the running analysis (tables, previous
                results, seed). Plugins that only need their inputs can
                ignore it.
        """
        self.context = context


class TransformerPlugin(Plugin, ABC):
    """Abstract base class for analysis step plugins."""

    type = PluginType.TRANSFORMER
    # Concrete transformers define: config_model = MyTransformerConfig
    #                               param_model = MyTransformerParams
    config_model: type = None
    param_model: type = None

    def validate_config(self, config: Dict[str, Any]) -> BaseModel:
        """
        Validate a step configuration and return its typed parameters.

        Raises:
            DataTransformError: If the configuration or its params are invalid
        """
        try:
            validated = self.config_model(**config)
            return self.param_model(**validated.params)
        except ValidationError as e:
            raise DataTransformError(
                f"Invalid configuration for plugin '{config.get('plugin')}'",
                details={"error": str(e), "config": config},
            )

    @abstractmethod
    def transform(self, data: Any, config: Dict[str, Any]) -> Any:
        """
        Run the analysis step.

        Args:
            data: The analysis context holding the tables of the run
            config: The raw step configuration (plugin, source, params)

        Returns:
            A DataFrame, or a result object exposing ``tables()``
        """
        raise NotImplementedError


class NullModelPlugin(Plugin, ABC):
    """Abstract base class for community randomisation plugins."""

    type = PluginType.NULL_MODEL
    param_model: type = None

    def __init__(self, context: Any = None, params: Optional[Dict[str, Any]] = None):
        super().__init__(context)
        try:
            self.params = self.param_model(**(params or {}))
        except ValidationError as e:
            raise DataTransformError(
                f"Invalid parameters for null model {type(self).__name__}",
                details={"error": str(e), "params": params},
            )

    @abstractmethod
    def randomize(
        self, abundance: np.ndarray, traits: np.ndarray, rng: np.random.Generator
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return a randomised (abundance, traits) pair.

        Args:
            abundance: plots x species array
            traits: species x traits array
            rng: Random generator owned by the caller
        """
        raise NotImplementedError


def register(name: str, plugin_type: Optional[PluginType] = None):
    """
    Class decorator registering a plugin under ``name``.

    The first line of the class docstring becomes the description listed by
    ``traitlab plugins``.

    Raises:
        TypeError: If no PluginType is given nor set on the class
    """
    from .registry import PluginRegistry

    def decorator(plugin_class):
        actual_type = plugin_type or getattr(plugin_class, "type", None)
        if not isinstance(actual_type, PluginType):
            raise TypeError(
                f"{plugin_class.__name__} needs a PluginType, "
                f"as 'type' attribute or @register argument (got {actual_type!r})"
            )
        description = (plugin_class.__doc__ or "").strip().split("\n")[0]
        PluginRegistry.register_plugin(
            name, plugin_class, actual_type, metadata={"description": description}
        )
        plugin_class.plugin_name = name
        return plugin_class

    return decorator
