"""
Pydantic models describing where the R, L and Q tables live and how to read them.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DataConfig(BaseModel):
    """The ``data`` section of config.yml."""

    model_config = ConfigDict(extra="forbid")

    environment: str = Field(
        "data/environment.csv", description="Plot x environment table (R)"
    )
    abundance: str = Field(
        "data/abundance.csv",
        description="Abundance table (L), long (plot, species, value) or wide",
    )
    individuals: Optional[str] = Field(
        "data/individual_traits.csv",
        description="Individual-level trait measurements used to build Q",
    )
    species_traits: Optional[str] = Field(
        None, description="Ready-made species x trait table (Q), overrides individuals"
    )
    plot_column: str = "plot_id"
    species_column: str = "species_id"
    abundance_column: str = "cover"
    traits: List[str] = Field(
        default_factory=lambda: ["plant_height", "sla", "seed_mass"],
        description="Trait columns to keep; empty means every numeric column",
    )
    log10_traits: List[str] = Field(
        default_factory=lambda: ["plant_height", "seed_mass"],
        description="Traits log10-transformed before species averaging",
    )
    environment_variables: List[str] = Field(
        default_factory=list,
        description="Environmental columns to keep; empty means every numeric column",
    )
    relative_abundance: bool = False

    @model_validator(mode="after")
    def check_trait_sources(self) -> "DataConfig":
        if not self.individuals and not self.species_traits:
            raise ValueError(
                "Either 'individuals' or 'species_traits' must point to a trait table"
            )
        unknown = [t for t in self.log10_traits if self.traits and t not in self.traits]
        if unknown:
            raise ValueError(f"log10_traits not listed in traits: {unknown}")
        return self
