"""Centralized dependency providers for infra clients and the dispatcher.

This keeps construction in one place so the API layer and the CLI share
consistent configuration and make DI/testing easier.
"""
from __future__ import annotations

from functools import lru_cache

from app.config import settings
from app.infra.graph_client import GraphClient
from app.infra.slack_client import SlackNotifier
from app.services.stats_collector import StatsCollector


@lru_cache(maxsize=1)
def get_graph_client() -> GraphClient:
    return GraphClient(
        settings.graph_api_url,
        username=settings.graph_username,
        password=settings.graph_password,
        timeout=settings.graph_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_slack_notifier() -> SlackNotifier:
    return SlackNotifier(timeout=settings.slack_timeout_seconds)


@lru_cache(maxsize=1)
def get_stats_collector() -> StatsCollector:
    return StatsCollector(
        get_graph_client(),
        notifier=get_slack_notifier(),
        top_n=settings.stats_top_n,
    )
