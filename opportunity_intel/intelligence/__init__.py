from .engine import IntelligenceEngine
from .heuristics import DEFAULT_HEURISTICS, Heuristics, MatchPoints, load_heuristics
from .matching import score_match

__all__ = [
    "IntelligenceEngine",
    "DEFAULT_HEURISTICS",
    "Heuristics",
    "MatchPoints",
    "load_heuristics",
    "score_match",
]
