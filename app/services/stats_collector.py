"""Dispatches slash-command statistics requests to the graph collectors."""
from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set

from app.infra.graph_client import GraphClient
from app.infra.slack_client import SlackNotifier
from app.shared.models import MISSING_INPUT_MESSAGE, StatsStatus, not_found_response

from .keyword_graph_stats_collector import KeywordGraphStatsCollector
from .social_graph_stats_collector import SocialGraphStatsCollector

Callback = Callable[[Optional[StatsStatus], Optional[StatsStatus]], Any]

NO_EVENT_LOOP_MESSAGE = "The statistics service cannot process this request: no event loop is running."


async def _lookup_then_collect(
    *,
    kind: str,
    identifier: str,
    response_url: str,
    lookup: Callable[[str], Awaitable[Any]],
    collect: Callable[[Any, str], Awaitable[Any]],
    notifier: SlackNotifier,
    logger: logging.Logger,
) -> None:
    """Verify the vertex exists, then hand off to the statistics fetch."""

    try:
        found = await lookup(identifier)
    except Exception as exc:
        logger.error("%s lookup returned error: %s", kind.capitalize(), exc)
        await notifier.send_response(not_found_response(kind), response_url)
        return

    if kind == "keyword":
        logger.debug(
            "Found %d matches for keyword %s. Collecting information from graph.",
            len(found),
            identifier,
        )
    else:
        logger.debug("Found %s %s. Collecting information from graph.", kind, identifier)

    # Results (or failures) of the fetch are posted to response_url by the collector.
    await collect(found, response_url)


class StatsCollector:
    """Collects user, channel and keyword Slack statistics.

    Each ``get_*_stats`` call validates its input, schedules the vertex
    lookup on the running event loop and acknowledges immediately through
    ``callback(error, result)``. The acknowledgment does not mean the lookup
    succeeded: a missing vertex is reported to ``response_url`` instead.

    Lookups run on the caller's event loop; called outside a running loop an
    entry point reports a ``500`` through the callback and schedules nothing.
    """

    def __init__(
        self,
        graph_client: GraphClient | None,
        *,
        social_collector: SocialGraphStatsCollector | None = None,
        keyword_collector: KeywordGraphStatsCollector | None = None,
        notifier: SlackNotifier | None = None,
        logger: logging.Logger | None = None,
        top_n: int = 5,
    ) -> None:
        self.graph_client = graph_client
        self.notifier = notifier or SlackNotifier()
        self.logger = logger or logging.getLogger(__name__)
        self.social_graph_stats_collector = social_collector or SocialGraphStatsCollector(
            graph_client, notifier=self.notifier, top_n=top_n, logger=self.logger
        )
        self.keyword_graph_stats_collector = keyword_collector or KeywordGraphStatsCollector(
            graph_client, notifier=self.notifier, top_n=top_n, logger=self.logger
        )
        self._pending: Set[asyncio.Task] = set()

    def get_user_stats(self, user_name: str, response_url: str, callback: Callback) -> Any:
        """Acknowledge and asynchronously post statistics for ``user_name``."""

        collector = self.social_graph_stats_collector
        return self._dispatch(
            "user",
            user_name,
            response_url,
            callback,
            lookup=collector.fetch_user_info,
            collect=collector.fetch_user_stats,
        )

    def get_channel_stats(self, channel_name: str, response_url: str, callback: Callback) -> Any:
        """Acknowledge and asynchronously post statistics for ``channel_name``."""

        collector = self.social_graph_stats_collector
        return self._dispatch(
            "channel",
            channel_name,
            response_url,
            callback,
            lookup=collector.fetch_channel_info,
            collect=collector.fetch_channel_stats,
        )

    def get_keyword_stats(self, keyword: str, response_url: str, callback: Callback) -> Any:
        """Acknowledge and asynchronously post statistics for keywords containing ``keyword``.

        An empty match list is not an error; it is forwarded to the keyword
        statistics fetch like any other result.
        """

        collector = self.keyword_graph_stats_collector
        return self._dispatch(
            "keyword",
            keyword,
            response_url,
            callback,
            lookup=collector.fetch_keyword_info,
            collect=partial(collector.fetch_keyword_stats, keyword),
        )

    def _dispatch(
        self,
        kind: str,
        identifier: str,
        response_url: str,
        callback: Callback,
        *,
        lookup: Callable[[str], Awaitable[Any]],
        collect: Callable[[Any, str], Awaitable[Any]],
    ) -> Any:
        if not callable(callback):
            self.logger.error(
                "Invalid get_%s_stats invocation: callback is missing or not a function", kind
            )
            return None

        if not identifier or not self.graph_client or not response_url:
            return callback(StatsStatus(code=500, message=MISSING_INPUT_MESSAGE), None)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.error(
                "Cannot look up %s %s: get_%s_stats was called without a running event loop",
                kind,
                identifier,
                kind,
            )
            return callback(StatsStatus(code=500, message=NO_EVENT_LOOP_MESSAGE), None)

        self.logger.debug("Fetching vertex information for %s %s", kind, identifier)
        self._spawn(
            loop,
            _lookup_then_collect(
                kind=kind,
                identifier=identifier,
                response_url=response_url,
                lookup=lookup,
                collect=collect,
                notifier=self.notifier,
                logger=self.logger,
            )
        )

        return callback(
            None,
            StatsStatus(code=200, message=f"Collecting information about {kind} _{identifier}_ ..."),
        )

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Statistics task failed: %s", exc, exc_info=exc)

    @property
    def pending(self) -> int:
        """Number of lookups still in flight."""

        return len(self._pending)

    async def wait_pending(self) -> None:
        """Wait until every scheduled lookup (and hand-off) has finished."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
