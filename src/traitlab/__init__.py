"""
traitlab: functional-trait analysis of plant communities.

Community-weighted means, null-model tests, functional diversity,
ordination and trait-environment analyses (RLQ, fourth-corner) driven by
a YAML-configured pipeline of plugins.
"""

__version__ = "0.1.0"
