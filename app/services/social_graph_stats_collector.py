"""User and channel statistics from the Slack social graph."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from app.infra.graph_client import GraphClient
from app.infra.slack_client import SlackNotifier
from app.shared.models import VERTEX_KEYS, VertexInfo

from .stats_formatting import (
    format_ranking,
    merge_counts,
    stats_attachment,
    stats_failure_response,
    stats_message,
    top_counts,
)

_VERTEX_QUERY = "g.V().hasLabel(vertexLabel).has(propertyKey, propertyValue).limit(1)"
_GROUP_COUNT_QUERIES = {
    "user_channels": "g.V(vertexId).out('posts_in').groupCount().by('channel_name')",
    "user_mentions": "g.V(vertexId).out('mentions').groupCount().by('user_name')",
    "user_mentioned_by": "g.V(vertexId).in('mentions').groupCount().by('user_name')",
    "channel_posters": "g.V(vertexId).in('posts_in').groupCount().by('user_name')",
    "channel_keywords": "g.V(vertexId).in('mentioned_in').groupCount().by('keyword')",
}


class VertexNotFoundError(LookupError):
    """No vertex with the requested key property exists."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"no {kind} vertex named '{name}'")
        self.kind = kind
        self.name = name


async def lookup_vertex(graph_client: GraphClient, kind: str, name: str) -> VertexInfo:
    """Return the vertex of ``kind`` whose key property equals ``name``."""

    label, key = VERTEX_KEYS[kind]
    rows = await graph_client.run_gremlin(
        _VERTEX_QUERY,
        {"vertexLabel": label, "propertyKey": key, "propertyValue": name},
    )
    if not rows:
        raise VertexNotFoundError(kind, name)
    return VertexInfo.from_payload(rows[0])


class SocialGraphStatsCollector:
    """Looks up user/channel vertices and posts their statistics to Slack."""

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

    async def fetch_user_info(self, user_name: str) -> VertexInfo:
        return await lookup_vertex(self.graph_client, "user", user_name)

    async def fetch_channel_info(self, channel_name: str) -> VertexInfo:
        return await lookup_vertex(self.graph_client, "channel", channel_name)

    async def _group_counts(self, vertex_id: Any, *names: str) -> List[Dict[str, int]]:
        results = await asyncio.gather(
            *(
                self.graph_client.run_gremlin(_GROUP_COUNT_QUERIES[name], {"vertexId": vertex_id})
                for name in names
            )
        )
        return [merge_counts(rows) for rows in results]

    async def fetch_user_stats(self, user_info: VertexInfo, response_url: str) -> None:
        """Collect channel activity and mention counts for a user."""

        user_name = user_info.value("user_name", str(user_info.id))
        try:
            channels, mentions, mentioned_by = await self._group_counts(
                user_info.id, "user_channels", "user_mentions", "user_mentioned_by"
            )
        except Exception:
            self.logger.exception("Collecting statistics for user %s failed", user_name)
            await self.notifier.send_response(stats_failure_response("user", user_name), response_url)
            return

        payload = stats_message(
            f"Statistics for user _{user_name}_",
            [
                stats_attachment(
                    "Most active in",
                    format_ranking(top_counts(channels, self.top_n), prefix="#"),
                ),
                stats_attachment(
                    "Mentions most often",
                    format_ranking(top_counts(mentions, self.top_n), prefix="@"),
                ),
                stats_attachment(
                    "Mentioned most often by",
                    format_ranking(top_counts(mentioned_by, self.top_n), prefix="@"),
                ),
            ],
        )
        self.logger.debug("Posting statistics for user %s", user_name)
        await self.notifier.send_response(payload, response_url)

    async def fetch_channel_stats(self, channel_info: VertexInfo, response_url: str) -> None:
        """Collect poster and keyword counts for a channel."""

        channel_name = channel_info.value("channel_name", str(channel_info.id))
        try:
            posters, keywords = await self._group_counts(
                channel_info.id, "channel_posters", "channel_keywords"
            )
        except Exception:
            self.logger.exception("Collecting statistics for channel %s failed", channel_name)
            await self.notifier.send_response(
                stats_failure_response("channel", channel_name), response_url
            )
            return

        payload = stats_message(
            f"Statistics for channel _{channel_name}_",
            [
                stats_attachment("Members who posted", str(len(posters))),
                stats_attachment(
                    "Most active members",
                    format_ranking(top_counts(posters, self.top_n), prefix="@"),
                ),
                stats_attachment(
                    "Most discussed keywords",
                    format_ranking(top_counts(keywords, self.top_n)),
                ),
            ],
        )
        self.logger.debug("Posting statistics for channel %s", channel_name)
        await self.notifier.send_response(payload, response_url)
