"""
Reading, reshaping, aligning and writing the community tables.
"""

from .alignment import align_species, check_plot_alignment
from .readers import (
    aggregate_species_traits,
    pivot_abundance,
    read_abundance,
    read_environment,
    read_individual_traits,
    read_species_traits,
    to_relative_abundance,
)
from .writers import load_null_snapshot, save_null_snapshot, write_table

__all__ = [
    "align_species",
    "check_plot_alignment",
    "aggregate_species_traits",
    "pivot_abundance",
    "read_abundance",
    "read_environment",
    "read_individual_traits",
    "read_species_traits",
    "to_relative_abundance",
    "load_null_snapshot",
    "save_null_snapshot",
    "write_table",
]
