"""Lightweight CLI helpers for graphstats."""
from __future__ import annotations

import argparse
import json
from typing import List, Optional

import httpx


def _print_http_error(exc: httpx.HTTPError) -> None:
    response = getattr(exc, "response", None)
    if response is None:
        return
    try:
        error_detail = response.json()
        print(f"Error detail: {error_detail}")
    except Exception:
        print(f"Response text: {response.text}")


def _command_stats(args: argparse.Namespace) -> int:
    text = " ".join(args.text).strip()
    if not text:
        print("Nothing to look up: pass @user, #channel or a keyword.")
        return 1

    form = {"command": "/stats", "text": text, "response_url": args.response_url}
    if args.token:
        form["token"] = args.token

    api_base = args.api.rstrip("/")
    try:
        with httpx.Client(timeout=args.timeout) as client:
            response = client.post(f"{api_base}/api/v1/slack/stats", data=form)
            response.raise_for_status()
            body = response.json()
    except httpx.HTTPError as exc:
        print(f"Request failed: {exc}")
        _print_http_error(exc)
        return 1

    print(body.get("text", ""))
    return 1 if body.get("color") == "danger" else 0


def _command_health(args: argparse.Namespace) -> int:
    api_base = args.api.rstrip("/")
    try:
        with httpx.Client(timeout=args.timeout) as client:
            response = client.get(f"{api_base}/healthz")
            response.raise_for_status()
            body = response.json()
    except httpx.HTTPError as exc:
        print(f"Health check failed: {exc}")
        return 1

    print(json.dumps(body, indent=2))
    graph = body.get("dependencies", {}).get("graph", {})
    return 0 if graph.get("status") == "healthy" else 1


def build_parser() -> argparse.ArgumentParser:
    # Connection options are accepted after every subcommand.
    connection = argparse.ArgumentParser(add_help=False)
    connection.add_argument(
        "--api",
        default="http://localhost:8000",
        help="graphstats API base URL (default: http://localhost:8000).",
    )
    connection.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="HTTP timeout per request in seconds (default: 30).",
    )

    parser = argparse.ArgumentParser(
        prog="graphstats",
        description="Utilities for working with the graphstats slash-command API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    stats_parser = subparsers.add_parser(
        "stats",
        parents=[connection],
        help="Send a /stats command; results are posted to --response-url.",
    )
    stats_parser.add_argument("text", nargs="+", help="@user, #channel or keyword (phrase).")
    stats_parser.add_argument(
        "--response-url",
        "-r",
        required=True,
        help="Webhook URL that receives the statistics.",
    )
    stats_parser.add_argument("--token", default=None, help="Slash command verification token.")
    stats_parser.set_defaults(func=_command_stats)

    health_parser = subparsers.add_parser(
        "health", parents=[connection], help="Show dependency health of the service."
    )
    health_parser.set_defaults(func=_command_health)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
