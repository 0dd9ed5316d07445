from .engine import GRANTS_GOV, USASPENDING, NormalizationEngine

__all__ = ["GRANTS_GOV", "USASPENDING", "NormalizationEngine"]
