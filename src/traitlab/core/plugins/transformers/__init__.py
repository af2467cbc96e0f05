"""
Transformer plugins for traitlab.
"""

# List of all available transformers
__all__ = [
    # Trait tables
    "SpeciesTraits",
    # Community aggregates
    "CommunityWeightedMean",
    "FunctionalDiversity",
    # Null models
    "NullModelSes",
    # Ordination
    "PcaTransformer",
    "RdaTransformer",
    # Trait-environment
    "RlqTransformer",
    "FourthCornerTransformer",
]
