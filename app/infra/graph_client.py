"""Thin async wrapper for a Gremlin-over-HTTP graph API."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

import httpx


class GraphClientError(RuntimeError):
    """Raised when the graph API answers with an error status."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"Graph API request failed ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


class GraphClient:
    """Minimal client for the Gremlin endpoint of the Slack graph."""

    def __init__(
        self,
        api_url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = str(api_url).rstrip("/")
        self.timeout = timeout
        self.auth = (username, password) if username and password else None
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            auth=self.auth,
            transport=self._transport,
        )

    async def run_gremlin(
        self,
        script: str,
        bindings: Mapping[str, object] | None = None,
    ) -> List[Any]:
        """Execute a Gremlin script and return the ``result.data`` list."""

        payload: Dict[str, object] = {"gremlin": script}
        if bindings:
            payload["bindings"] = dict(bindings)

        async with self._client() as client:
            response = await client.post(f"{self.api_url}/gremlin", json=payload)
            if response.status_code >= 400:
                raise GraphClientError(response.status_code, response.text)
            data = response.json()

        result = data.get("result") or {}
        return list(result.get("data") or [])

    async def health(self) -> Dict[str, Any]:
        """Probe the session endpoint of the graph API."""

        async with self._client() as client:
            response = await client.get(f"{self.api_url}/_session")
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
        # Session tokens are credentials; only report which keys came back.
        return {"keys": sorted(payload)} if isinstance(payload, dict) else {"message": str(payload)}
