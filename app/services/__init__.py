"""Statistics services behind the slash-command endpoint."""
from app.services.keyword_graph_stats_collector import KeywordGraphStatsCollector  # noqa: F401
from app.services.social_graph_stats_collector import (  # noqa: F401
    SocialGraphStatsCollector,
    VertexNotFoundError,
)
from app.services.stats_collector import StatsCollector  # noqa: F401
