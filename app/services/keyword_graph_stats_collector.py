"""Keyword statistics from the Slack keyword graph."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

from app.infra.graph_client import GraphClient
from app.infra.slack_client import SlackNotifier
from app.shared.models import VertexInfo

from .stats_formatting import (
    format_ranking,
    merge_counts,
    stats_attachment,
    stats_failure_response,
    stats_message,
    top_counts,
)

_KEYWORD_MATCH_QUERY = "g.V().hasLabel('keyword').has('keyword', textContains(searchTerm))"
_KEYWORD_CHANNELS_QUERY = "g.V(vertexIds).out('mentioned_in').groupCount().by('channel_name')"
_KEYWORD_USERS_QUERY = "g.V(vertexIds).in('uses_keyword').groupCount().by('user_name')"


class KeywordGraphStatsCollector:
    """Finds keyword vertices by substring and posts their usage to Slack."""

    def __init__(
        self,
        graph_client: GraphClient,
        *,
        notifier: SlackNotifier | None = None,
        top_n: int = 5,
        logger: logging.Logger | None = None,
    ) -> None:
        self.graph_client = graph_client
        self.notifier = notifier or SlackNotifier()
        self.top_n = top_n
        self.logger = logger or logging.getLogger(__name__)

    async def fetch_keyword_info(self, keyword: str) -> List[VertexInfo]:
        """Return every keyword vertex containing ``keyword``; may be empty."""

        rows = await self.graph_client.run_gremlin(_KEYWORD_MATCH_QUERY, {"searchTerm": keyword})
        return [VertexInfo.from_payload(row) for row in rows]

    async def fetch_keyword_stats(
        self,
        keyword: str,
        matches: Sequence[VertexInfo],
        response_url: str,
    ) -> None:
        """Aggregate channel and user usage over all matching keyword vertices."""

        if not matches:
            await self.notifier.send_response(
                stats_message(f"The keyword _{keyword}_ has not been mentioned yet.", []),
                response_url,
            )
            return

        vertex_ids = [match.id for match in matches]
        try:
            channel_rows, user_rows = await asyncio.gather(
                self.graph_client.run_gremlin(_KEYWORD_CHANNELS_QUERY, {"vertexIds": vertex_ids}),
                self.graph_client.run_gremlin(_KEYWORD_USERS_QUERY, {"vertexIds": vertex_ids}),
            )
        except Exception:
            self.logger.exception("Collecting statistics for keyword %s failed", keyword)
            await self.notifier.send_response(stats_failure_response("keyword", keyword), response_url)
            return

        matched_terms = sorted({str(match.value("keyword", match.id)) for match in matches})
        payload = stats_message(
            f"Statistics for keyword _{keyword}_",
            [
                stats_attachment("Matching keywords", ", ".join(matched_terms)),
                stats_attachment(
                    "Mentioned most often in",
                    format_ranking(top_counts(merge_counts(channel_rows), self.top_n), prefix="#"),
                ),
                stats_attachment(
                    "Used most often by",
                    format_ranking(top_counts(merge_counts(user_rows), self.top_n), prefix="@"),
                ),
            ],
        )
        self.logger.debug("Posting statistics for keyword %s (%d matches)", keyword, len(matches))
        await self.notifier.send_response(payload, response_url)
