"""Server-computed insights with graceful fallback and superseded-request discarding."""

from __future__ import annotations

import logging
import threading
from typing import Any, MutableMapping

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0


def fetch_server_insights(
    url: str,
    token: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> dict[str, Any] | None:
    """GET the insight endpoint; ``None`` on any network, status or decoding failure."""
    if not str(url or "").strip():
        return None
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    client = session or requests
    try:
        response = client.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        logger.warning("Server insights unavailable from %s: %s", url, exc)
        return None
    except ValueError as exc:
        logger.warning("Server insights from %s are not valid JSON: %s", url, exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("Server insights from %s have unexpected shape: %s", url, type(payload).__name__)
        return None
    return payload


class LatestRequestGate:
    """Hands out tickets; only the newest ticket's result is accepted."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def cancel(self) -> None:
        """Invalidate every ticket handed out so far, e.g. when the consumer leaves the view."""
        with self._lock:
            self._latest += 1

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest


def session_gate(state: MutableMapping[str, Any], key: str = "insight_gate") -> LatestRequestGate:
    """The gate owned by one consumer's state (a Streamlit session), created on first use."""
    gate = state.get(key)
    if not isinstance(gate, LatestRequestGate):
        gate = LatestRequestGate()
        state[key] = gate
    return gate


def refresh_server_insights(
    gate: LatestRequestGate,
    url: str,
    token: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> dict[str, Any] | None:
    ticket = gate.begin()
    payload = fetch_server_insights(url, token=token, timeout=timeout, session=session)
    if not gate.is_current(ticket):
        logger.debug("Discarding superseded insight response (ticket %d)", ticket)
        return None
    return payload
