from .career_matcher import CareerMatcher, CareerMatchOutcome, MatchResult, MatchType
from .riasec_classifier import classify_occupation, classify_text
from .dreamscapes_analyst import AnalysisError, DreamscapesAnalysis, DreamscapesAnalyst
from .simulation_designer import GeneratedSimulation, SimulationDesigner, SimulationError

__all__ = [
    "CareerMatcher",
    "CareerMatchOutcome",
    "MatchResult",
    "MatchType",
    "classify_occupation",
    "classify_text",
    "AnalysisError",
    "DreamscapesAnalysis",
    "DreamscapesAnalyst",
    "GeneratedSimulation",
    "SimulationDesigner",
    "SimulationError",
]
