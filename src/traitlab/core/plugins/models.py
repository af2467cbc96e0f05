# core/plugins/models.py
"""
Pydantic models for the analysis.yml configuration file.

A pipeline is a list of steps; each step names the plugin to run, an
optional source (a table of the run or the result of an earlier step) and
the plugin parameters. Parameter models of individual plugins are defined
within the plugin files themselves.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BasePluginParams(BaseModel):
    """
    Base model for the 'params' dictionary within plugin configurations.
    Specific plugins define their own parameter model inheriting from this.
    """

    model_config = ConfigDict(extra="allow")


class PluginConfig(BaseModel):
    """A plugin configuration entry (plugin name, input source, params)."""

    plugin: str = Field(..., description="Registered name of the plugin")
    source: Optional[str] = Field(
        None, description="Optional key identifying the input table or step result"
    )
    params: Dict[str, Any] = Field(
        default_factory=dict, description="Dictionary of plugin-specific parameters"
    )


class StepConfig(PluginConfig):
    """One entry of analysis.yml."""

    name: str = Field(..., description="Name under which the result is stored")

    @model_validator(mode="after")
    def check_name(self) -> "StepConfig":
        if not self.name.strip():
            raise ValueError("step name must not be empty")
        return self

    def plugin_config(self) -> Dict[str, Any]:
        return {"plugin": self.plugin, "source": self.source, "params": dict(self.params)}


class AnalysisConfig(BaseModel):
    """Ordered list of steps with unique names."""

    steps: List[StepConfig]

    @model_validator(mode="after")
    def check_unique_names(self) -> "AnalysisConfig":
        names = [step.name for step in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate step names: {', '.join(duplicates)}")
        return self
