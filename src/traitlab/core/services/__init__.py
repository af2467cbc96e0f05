"""
Services orchestrating the analysis of a project.
"""

from .analysis import AnalysisService
from .context import AnalysisContext

__all__ = ["AnalysisService", "AnalysisContext"]
