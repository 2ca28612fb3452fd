"""
Presence beacon: counts a visit once per session, keeps the client marked
online with heartbeats and keeps an "online / visits" counter current.

Two independent periodic tasks drive it:
  - heartbeat every 15 s, paused while the page is hidden; becoming visible
    again sends one heartbeat right away and restarts the schedule
  - stats refresh every 10 s

Every network call is best-effort. Errors end at the call that hit them and
only ever show up as the fallback counter text.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Optional

import httpx

from ..config import PRODUCTION_HOSTS, PRODUCTION_STATS_BASE
from .display import (
    FALLBACK_TEXT, LOADING_TEXT, CounterDisplay, DisplaySink, format_stats,
)
from .storage import (
    VISIT_COUNTED_KEY, KeyValueStore, MemoryStore, ensure_client_identity,
)
from .timers import PeriodicTask

log = logging.getLogger("storefront.beacon")

HEARTBEAT_INTERVAL_S = 15.0
STATS_INTERVAL_S = 10.0


def resolve_api_base(host: Optional[str]) -> str:
    """Stats service for the host the widget runs on; "" means local mode."""
    if host and host.lower() in PRODUCTION_HOSTS:
        return PRODUCTION_STATS_BASE
    return ""


class BeaconController:

    def __init__(
        self,
        api_base: str,
        display: CounterDisplay | DisplaySink,
        local_store: KeyValueStore,
        session_store: Optional[KeyValueStore] = None,
        client: Optional[httpx.AsyncClient] = None,
        heartbeat_interval_s: float = HEARTBEAT_INTERVAL_S,
        stats_interval_s: float = STATS_INTERVAL_S,
    ):
        self.api_base = api_base.rstrip("/")
        if not isinstance(display, CounterDisplay):
            display = CounterDisplay(display)
        self.display = display
        self.local_store = local_store
        self.session_store = session_store or MemoryStore()
        self._client = client
        self._owns_client = client is None
        self.client_id: Optional[str] = None
        self.visible = True
        self.heartbeats = PeriodicTask(
            heartbeat_interval_s, self.send_heartbeat, name="heartbeat"
        )
        self.stats = PeriodicTask(
            stats_interval_s, self.refresh_stats, name="stats"
        )
        self._started = False

    @property
    def local_mode(self) -> bool:
        return not self.api_base

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    # ----------------------------
    # lifecycle
    # ----------------------------
    async def start(self) -> None:
        self.update_display(LOADING_TEXT)
        self.client_id = ensure_client_identity(self.local_store)
        self._started = True

        if not self.local_mode:
            await self.register_visit_once()
            await self.send_heartbeat()
            if self.visible:
                self.heartbeats.start()

        await self.refresh_stats()
        self.stats.start()

    async def stop(self) -> None:
        self._started = False
        await self.heartbeats.stop()
        await self.stats.stop()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def set_visible(self, visible: bool) -> None:
        if visible == self.visible:
            return
        self.visible = visible
        if not self._started or self.local_mode:
            return
        if not visible:
            self.heartbeats.cancel()
            log.debug("beacon.heartbeat.paused")
            return
        # arm the schedule first so a hide during the request can cancel it
        self.heartbeats.start()
        log.debug("beacon.heartbeat.resumed")
        await self.send_heartbeat()

    # ----------------------------
    # beacon calls
    # ----------------------------
    async def _fetch_json(self, method: str, path: str, **kw) -> Optional[Any]:
        try:
            resp = await self.client.request(method, f"{self.api_base}{path}", **kw)
            return resp.json()
        except (httpx.HTTPError, json.JSONDecodeError, UnicodeDecodeError) as e:
            log.debug("beacon.request_failed %s %s: %s", method, path, e)
            return None

    async def register_visit_once(self) -> None:
        if self.session_store.get(VISIT_COUNTED_KEY):
            return
        data = await self._fetch_json("POST", "/metrics/visit")
        if isinstance(data, dict) and data.get("total") is not None:
            self.session_store.set(VISIT_COUNTED_KEY, "1")

    async def send_heartbeat(self) -> None:
        if self.client_id is None:
            self.client_id = ensure_client_identity(self.local_store)
        await self._fetch_json(
            "POST", "/metrics/heartbeat", json={"clientId": self.client_id}
        )

    async def refresh_stats(self) -> None:
        if self.local_mode:
            self.update_display(FALLBACK_TEXT)
            return
        data = await self._fetch_json("GET", "/metrics/stats")
        self.update_display(format_stats(data))

    def update_display(self, text: str) -> None:
        self.display.update(text)
