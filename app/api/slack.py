"""Slack slash-command endpoint for user, channel and keyword statistics."""
from __future__ import annotations

import logging
import secrets
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, status
from pydantic import BaseModel

from app.config import settings
from app.core import providers
from app.services.stats_collector import StatsCollector
from app.shared.models import SlashCommand, StatsStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

USAGE_TEXT = "Usage: `/stats @user`, `/stats #channel` or `/stats keyword`"


class SlashCommandResponse(BaseModel):
    """Immediate reply shown to the user who typed the command."""

    response_type: str = "ephemeral"
    text: str
    color: Optional[str] = None


def get_stats_collector() -> StatsCollector:
    """Lazy singleton used as a FastAPI dependency."""
    return providers.get_stats_collector()


def slash_command_form(
    token: Optional[str] = Form(None),
    team_id: Optional[str] = Form(None),
    team_domain: Optional[str] = Form(None),
    channel_id: Optional[str] = Form(None),
    channel_name: Optional[str] = Form(None),
    user_id: Optional[str] = Form(None),
    user_name: Optional[str] = Form(None),
    command: str = Form("/stats"),
    text: str = Form(""),
    response_url: Optional[str] = Form(None),
) -> SlashCommand:
    return SlashCommand(
        token=token,
        team_id=team_id,
        team_domain=team_domain,
        channel_id=channel_id,
        channel_name=channel_name,
        user_id=user_id,
        user_name=user_name,
        command=command,
        text=text,
        response_url=response_url,
    )


def _verify_token(token: Optional[str]) -> None:
    expected = settings.slack_verification_token
    if not expected:
        return
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid slash command token",
        )


@router.post(
    "/stats",
    response_model=SlashCommandResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def slash_stats(
    command: SlashCommand = Depends(slash_command_form),
    collector: StatsCollector = Depends(get_stats_collector),
) -> SlashCommandResponse:
    """Acknowledge a ``/stats`` command; the statistics follow via ``response_url``."""

    _verify_token(command.token)

    target = command.target()
    if target is None:
        return SlashCommandResponse(text=USAGE_TEXT)
    kind, name = target

    handlers: Dict[str, Callable] = {
        "user": collector.get_user_stats,
        "channel": collector.get_channel_stats,
        "keyword": collector.get_keyword_stats,
    }

    outcome: Dict[str, Optional[StatsStatus]] = {}

    def _capture(error: Optional[StatsStatus], result: Optional[StatsStatus]) -> None:
        outcome["error"] = error
        outcome["result"] = result

    try:
        handlers[kind](name, command.response_url or "", _capture)
    except Exception as exc:
        logger.error("Dispatching %s statistics for %s failed: %s", kind, name, exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"statistics dispatch failed: {exc}",
        ) from exc

    error = outcome.get("error")
    if error is not None:
        logger.warning("Rejected %s statistics request (%s): %s", kind, error.code, error.message)
        return SlashCommandResponse(text=error.message, color="danger")

    result = outcome.get("result")
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="statistics service did not acknowledge the request",
        )
    return SlashCommandResponse(text=result.message)
