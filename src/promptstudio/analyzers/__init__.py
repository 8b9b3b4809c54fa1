"""Auxiliary analyzers that enrich a project without blocking the pipeline."""

from promptstudio.analyzers.architect import ArchitectAdvisor
from promptstudio.analyzers.brainstorm import FeatureBrainstormer
from promptstudio.analyzers.estimation import EstimationAnalyzer
from promptstudio.analyzers.lab import LabStudio
from promptstudio.analyzers.marketing import MarketingAnalyzer
from promptstudio.analyzers.rebuild import RebuildResearcher
from promptstudio.analyzers.refinement import ComponentRefiner
from promptstudio.analyzers.runner import AuxiliaryRunner

__all__ = [
    "ArchitectAdvisor",
    "AuxiliaryRunner",
    "ComponentRefiner",
    "EstimationAnalyzer",
    "FeatureBrainstormer",
    "LabStudio",
    "MarketingAnalyzer",
    "RebuildResearcher",
]
