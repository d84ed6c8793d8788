"""Shared domain models for the statistics service."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

StatsKind = Literal["user", "channel", "keyword"]

# Vertex label and key property per statistics kind.
VERTEX_KEYS: Dict[str, Tuple[str, str]] = {
    "user": ("user", "user_name"),
    "channel": ("channel", "channel_name"),
    "keyword": ("keyword", "keyword"),
}

MISSING_INPUT_MESSAGE = "The statistics service cannot process this request: missing input."


@dataclass(slots=True)
class StatsStatus:
    """Acknowledgment (or error) handed to the caller's completion handler."""

    code: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(slots=True)
class VertexInfo:
    """Flattened view of a vertex returned by the graph API."""

    id: Any
    label: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "VertexInfo":
        """Build from the graph JSON, keeping the first value of each property."""

        if "id" not in payload:
            raise ValueError("vertex payload is missing 'id'")

        properties: Dict[str, Any] = {}
        for key, raw in (payload.get("properties") or {}).items():
            value = raw
            if isinstance(raw, list):
                value = raw[0] if raw else None
            if isinstance(value, Mapping) and "value" in value:
                value = value["value"]
            properties[key] = value

        return cls(id=payload["id"], label=str(payload.get("label") or ""), properties=properties)

    def value(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)


def not_found_response(kind: str) -> Dict[str, Any]:
    """Ephemeral warning sent to Slack when a lookup finds nothing."""

    return {
        "response_type": "ephemeral",
        "text": f"No information about this {kind} was found.",
        "color": "warning",
        "mrkdwn": True,
    }


class SlashCommand(BaseModel):
    """Form fields Slack posts for a slash command invocation."""

    token: Optional[str] = None
    team_id: Optional[str] = None
    team_domain: Optional[str] = None
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    command: str = Field("/stats", description="Slash command as typed by the user.")
    text: str = Field("", description="Arguments following the command.")
    response_url: Optional[str] = Field(None, description="Webhook for delayed responses.")

    def target(self) -> Optional[Tuple[StatsKind, str]]:
        """Classify the command text as a user, channel or keyword request.

        ``@name`` selects a user and ``#name`` a channel; anything else is a
        keyword (or phrase). Returns ``None`` for empty text.
        """

        cleaned = (self.text or "").strip()
        if not cleaned:
            return None
        if cleaned.startswith("@"):
            name = cleaned[1:].strip()
            return ("user", name) if name else None
        if cleaned.startswith("#"):
            name = cleaned[1:].strip()
            return ("channel", name) if name else None
        return ("keyword", cleaned)
