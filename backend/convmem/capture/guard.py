"""Ingestion guard: payload validation, per-project rate limiting and deduplication."""

from __future__ import annotations

import asyncio
import collections
import dataclasses
import hashlib
import logging
import time
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config import DEFAULT_CONFIG
from ..core.errors import RateLimitError
from ..core.models import Exchange
from .schemas import parse_exchanges

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def exchange_fingerprint(exchange: Exchange) -> str:
    content = f"{exchange.timestamp}\x1f{exchange.user}\x1f{exchange.assistant}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclasses.dataclass
class ProjectState:
    """Mutable guard state owned by one project."""

    fingerprints: "collections.OrderedDict[str, float]" = dataclasses.field(
        default_factory=collections.OrderedDict
    )
    requests: Deque[float] = dataclasses.field(default_factory=collections.deque)
    lock: asyncio.Lock = dataclasses.field(default_factory=asyncio.Lock)


class ProjectStateStore:
    """Per-project guard state, least recently used project evicted first."""

    def __init__(self, max_projects: int = 1024):
        if max_projects < 1:
            raise ValueError("max_projects must be >= 1")
        self.max_projects = max_projects
        self._states: "collections.OrderedDict[str, ProjectState]" = collections.OrderedDict()

    def get(self, project_key: str) -> ProjectState:
        state = self._states.get(project_key)
        if state is None:
            state = ProjectState()
            self._states[project_key] = state
            self._evict()
        else:
            self._states.move_to_end(project_key)
        return state

    def _evict(self) -> None:
        # a held lock means a pipeline is running for that project
        for key in list(self._states)[:-1]:
            if len(self._states) <= self.max_projects:
                return
            if self._states[key].lock.locked():
                continue
            del self._states[key]
            logger.debug(f"Evicted capture state for {key}")

    def __contains__(self, project_key: str) -> bool:
        return project_key in self._states

    def __len__(self) -> int:
        return len(self._states)

    def reset(self) -> None:
        self._states.clear()


class CaptureGuard:
    """Admits capture batches for a project.

    Order of checks: payload validation, rate limit, deduplication. A
    rejected batch never touches the dedup window. Callers that fail to
    persist an admitted batch hand it back through ``forget``.
    """

    def __init__(
        self,
        cfg: Optional[Dict] = None,
        state: Optional[ProjectStateStore] = None,
        clock: Clock = time.monotonic,
    ):
        capture_cfg = (cfg or DEFAULT_CONFIG).get("capture", DEFAULT_CONFIG["capture"])
        rate_cfg = capture_cfg.get("rate_limit", {})
        self.rate_limit = int(rate_cfg.get("limit", 30))
        self.rate_window = float(rate_cfg.get("window_seconds", 60))
        self.dedup_window = float(capture_cfg.get("dedup_window_seconds", 3600))
        self.max_exchanges = int(capture_cfg.get("max_exchanges", 200))
        self.max_exchange_chars = int(capture_cfg.get("max_exchange_chars", 50000))
        self.max_fingerprints = int(capture_cfg.get("max_fingerprints", 5000))
        self.state = state if state is not None else ProjectStateStore(int(capture_cfg.get("max_projects", 1024)))
        self.clock = clock

    def lock_for(self, project_key: str) -> asyncio.Lock:
        return self.state.get(project_key).lock

    async def admit(self, project_key: str, payload: Any) -> List[Exchange]:
        """Validate, rate limit and deduplicate a batch under the project lock."""
        async with self.lock_for(project_key):
            return self.admit_locked(project_key, payload)

    def admit_locked(self, project_key: str, payload: Any) -> List[Exchange]:
        """Same as ``admit``; the caller must already hold ``lock_for(project_key)``."""
        exchanges = parse_exchanges(payload, self.max_exchanges, self.max_exchange_chars)
        state = self.state.get(project_key)
        now = self.clock()
        self._check_rate(project_key, state, now)
        fresh = self._dedupe(state, exchanges, now)
        if len(fresh) < len(exchanges):
            logger.debug(f"Dropped {len(exchanges) - len(fresh)} duplicate exchanges for {project_key}")
        return fresh

    def _check_rate(self, project_key: str, state: ProjectState, now: float) -> None:
        cutoff = now - self.rate_window
        while state.requests and state.requests[0] <= cutoff:
            state.requests.popleft()
        if len(state.requests) >= self.rate_limit:
            retry_after = max(0.0, state.requests[0] + self.rate_window - now)
            logger.warning(f"Capture rate limit hit for {project_key}, retry in {retry_after:.1f}s")
            raise RateLimitError(
                f"rate limit of {self.rate_limit} captures per {self.rate_window:g}s exceeded",
                retry_after=retry_after,
            )
        state.requests.append(now)

    def _dedupe(self, state: ProjectState, exchanges: List[Exchange], now: float) -> List[Exchange]:
        cutoff = now - self.dedup_window
        seen = state.fingerprints
        while seen:
            oldest = next(iter(seen))
            if seen[oldest] > cutoff:
                break
            del seen[oldest]

        fresh: List[Exchange] = []
        for ex in exchanges:
            fp = exchange_fingerprint(ex)
            if fp in seen:
                continue
            seen[fp] = now
            fresh.append(ex)
        while len(seen) > self.max_fingerprints:
            seen.popitem(last=False)
        return fresh

    def forget(self, project_key: str, exchanges: List[Exchange]) -> None:
        """Drop the fingerprints of admitted exchanges whose capture did not complete."""
        seen = self.state.get(project_key).fingerprints
        for ex in exchanges:
            seen.pop(exchange_fingerprint(ex), None)
