from .competition import CompetitionScore, score_competition, score_opportunity
from .historical import HistoricalAnalyticsService

__all__ = ["CompetitionScore", "score_competition", "score_opportunity", "HistoricalAnalyticsService"]
