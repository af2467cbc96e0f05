"""
Null model plugins for traitlab.
"""

__all__ = [
    "IndependentSwapModel",
    "RichnessModel",
    "FrequencyModel",
    "TaxaLabelsModel",
]
