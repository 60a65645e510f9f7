"""In-memory counters for the /api/metrics endpoint."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field


@dataclass
class MetricsCollector:
    """Request, upstream and answer counters plus a bounded latency sample.

    All mutation happens under ``_lock``.  When the latency list grows past
    ``_MAX_LATENCY_SAMPLES`` only the newest half is kept.
    """

    _MAX_LATENCY_SAMPLES: int = field(default=10_000, repr=False)

    total_requests: int = field(default=0, init=False)
    status_codes: dict[int, int] = field(default_factory=dict, init=False)
    geocoder_ok: int = field(default=0, init=False)
    geocoder_not_found: int = field(default=0, init=False)
    geocoder_failures: int = field(default=0, init=False)
    wikipedia_ok: int = field(default=0, init=False)
    wikipedia_empty: int = field(default=0, init=False)
    wikipedia_failures: int = field(default=0, init=False)
    context_matched: int = field(default=0, init=False)
    context_unmatched: int = field(default=0, init=False)
    locations_created: int = field(default=0, init=False)
    locations_degraded: int = field(default=0, init=False)
    answers_ok: int = field(default=0, init=False)
    answers_degraded: int = field(default=0, init=False)
    auth_failures: int = field(default=0, init=False)

    _latencies: list[float] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _start_time: float = field(default_factory=time.monotonic, init=False, repr=False)

    # -- Counters -----------------------------------------------------------

    def inc_request(self, status_code: int) -> None:
        with self._lock:
            self.total_requests += 1
            self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

    def inc_geocoder(self, outcome: str) -> None:
        with self._lock:
            if outcome == "ok":
                self.geocoder_ok += 1
            elif outcome == "not_found":
                self.geocoder_not_found += 1
            else:
                self.geocoder_failures += 1

    def inc_wikipedia(self, outcome: str) -> None:
        with self._lock:
            if outcome == "ok":
                self.wikipedia_ok += 1
            elif outcome == "empty":
                self.wikipedia_empty += 1
            else:
                self.wikipedia_failures += 1

    def inc_context(self, matched: bool) -> None:
        with self._lock:
            if matched:
                self.context_matched += 1
            else:
                self.context_unmatched += 1

    def inc_location_created(self, degraded: bool) -> None:
        with self._lock:
            self.locations_created += 1
            if degraded:
                self.locations_degraded += 1

    def inc_answer(self, degraded: bool) -> None:
        with self._lock:
            if degraded:
                self.answers_degraded += 1
            else:
                self.answers_ok += 1

    def inc_auth_failure(self) -> None:
        with self._lock:
            self.auth_failures += 1

    # -- Latency ------------------------------------------------------------

    def record_latency(self, ms: float) -> None:
        with self._lock:
            self._latencies.append(ms)
            if len(self._latencies) > self._MAX_LATENCY_SAMPLES:
                self._latencies = self._latencies[-(self._MAX_LATENCY_SAMPLES // 2):]

    def _percentiles_unlocked(self) -> dict[str, float]:
        if not self._latencies:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0}
        s = sorted(self._latencies)
        n = len(s)
        return {
            "p50": round(s[int(n * 0.50)], 2),
            "p90": round(s[int(min(n * 0.90, n - 1))], 2),
            "p99": round(s[int(min(n * 0.99, n - 1))], 2),
        }

    # -- Snapshot / reset ---------------------------------------------------

    def uptime_seconds(self) -> float:
        return round(time.monotonic() - self._start_time, 2)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "total_requests": self.total_requests,
                "status_codes": dict(self.status_codes),
                "geocoder": {
                    "ok": self.geocoder_ok,
                    "not_found": self.geocoder_not_found,
                    "failures": self.geocoder_failures,
                },
                "wikipedia": {
                    "ok": self.wikipedia_ok,
                    "empty": self.wikipedia_empty,
                    "failures": self.wikipedia_failures,
                },
                "context": {
                    "matched": self.context_matched,
                    "unmatched": self.context_unmatched,
                },
                "locations": {
                    "created": self.locations_created,
                    "degraded": self.locations_degraded,
                },
                "answers": {
                    "ok": self.answers_ok,
                    "degraded": self.answers_degraded,
                },
                "auth_failures": self.auth_failures,
                "latency_ms": self._percentiles_unlocked(),
            }

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.status_codes.clear()
            self.geocoder_ok = self.geocoder_not_found = self.geocoder_failures = 0
            self.wikipedia_ok = self.wikipedia_empty = self.wikipedia_failures = 0
            self.context_matched = self.context_unmatched = 0
            self.locations_created = self.locations_degraded = 0
            self.answers_ok = self.answers_degraded = 0
            self.auth_failures = 0
            self._latencies.clear()
            self._start_time = time.monotonic()


metrics = MetricsCollector()
