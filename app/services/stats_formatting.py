"""Helpers turning graph group counts into Slack messages."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple


def merge_counts(rows: Iterable[Any]) -> Dict[str, int]:
    """Merge ``groupCount()`` result maps into one name -> count mapping."""

    merged: Dict[str, int] = {}
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        for name, count in row.items():
            merged[str(name)] = merged.get(str(name), 0) + int(count or 0)
    return merged


def top_counts(counts: Mapping[str, int], limit: int) -> List[Tuple[str, int]]:
    """Highest counts first; ties ordered by name."""

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ordered[: max(0, limit)]


def format_ranking(entries: Sequence[Tuple[str, int]], *, prefix: str = "") -> str:
    if not entries:
        return "_none_"
    return "\n".join(f"{prefix}{name} ({count})" for name, count in entries)


def stats_attachment(title: str, text: str, *, color: str = "good") -> Dict[str, Any]:
    return {"title": title, "text": text, "color": color, "mrkdwn_in": ["text"]}


def stats_message(text: str, attachments: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    return {
        "response_type": "ephemeral",
        "text": text,
        "mrkdwn": True,
        "attachments": [dict(a) for a in attachments],
    }


def stats_failure_response(kind: str, name: str) -> Dict[str, Any]:
    return {
        "response_type": "ephemeral",
        "text": f"Statistics about {kind} _{name}_ could not be collected.",
        "color": "danger",
        "mrkdwn": True,
    }
