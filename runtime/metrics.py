"""Metrics aggregation for ActionGate observability.

Computes terminal outcomes, denial breakdown, tool usage and review
latency from audit entries.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from contracts.audit import AuditEntry
from contracts.invocation import TERMINAL_STATUSES, InvocationStatus
from runtime.audit.query import read_all

DENIAL_POLICY = "policy"
DENIAL_REJECTED = "rejected"
DENIAL_EXPIRED = "expired"


def compute_metrics(
    entries: list[AuditEntry],
    *,
    since: datetime | None = None,
    window_seconds: int = 60,
) -> dict[str, Any]:
    """Compute aggregated metrics from audit entries."""
    if since:
        entries = [e for e in entries if e.ts >= since]

    return {
        "throughput": _throughput_buckets(entries, window_seconds),
        "outcomes": _outcomes(entries),
        "denials": _denials(entries),
        "tool_usage": _tool_usage(entries),
        "review_latency": _review_latency(entries),
        "summary": _summary(entries),
    }


def compute_metrics_from_log(
    log_path: str | Path,
    *,
    since: datetime | None = None,
    window_seconds: int = 60,
) -> dict[str, Any]:
    return compute_metrics(read_all(log_path), since=since, window_seconds=window_seconds)


def classify_denial(entry: AuditEntry) -> str:
    """Which path led to a DENIED entry: policy, reviewer rejection or expiry."""
    if entry.from_status == InvocationStatus.VALIDATED:
        return DENIAL_POLICY
    if entry.reason == "Expired":
        return DENIAL_EXPIRED
    return DENIAL_REJECTED


def _throughput_buckets(
    entries: list[AuditEntry], window_seconds: int
) -> list[dict[str, Any]]:
    """Bucket invocation creations into time windows."""
    starts = [e for e in entries if e.from_status is None]
    if not starts:
        return []

    starts.sort(key=lambda e: e.ts)
    bucket_start = starts[0].ts
    last_ts = starts[-1].ts
    buckets: list[dict[str, Any]] = []

    while bucket_start <= last_ts:
        bucket_end = bucket_start + timedelta(seconds=window_seconds)
        count = sum(1 for e in starts if bucket_start <= e.ts < bucket_end)
        buckets.append({
            "time": bucket_start.isoformat(),
            "count": count,
        })
        bucket_start = bucket_end

    return buckets


def _outcomes(entries: list[AuditEntry]) -> dict[str, int]:
    counts = {status.value: 0 for status in sorted(TERMINAL_STATUSES, key=lambda s: s.value)}
    for e in entries:
        if e.to_status in TERMINAL_STATUSES:
            counts[e.to_status.value] += 1
    return counts


def _denials(entries: list[AuditEntry]) -> dict[str, int]:
    counts = {DENIAL_POLICY: 0, DENIAL_REJECTED: 0, DENIAL_EXPIRED: 0}
    for e in entries:
        if e.to_status == InvocationStatus.DENIED:
            counts[classify_denial(e)] += 1
    return counts


def _tool_usage(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    """Count invocations by tool name."""
    counts: dict[str, int] = {}
    for e in entries:
        if e.from_status is None:
            counts[e.tool_name] = counts.get(e.tool_name, 0) + 1

    return [{"tool": t, "count": c} for t, c in sorted(counts.items(), key=lambda x: (-x[1], x[0]))]


def _review_latency(entries: list[AuditEntry]) -> dict[str, Any]:
    """p50/p95/p99 seconds between parking and the reviewer (or expiry) decision."""
    parked: dict[str, datetime] = {}
    durations: list[float] = []

    for e in entries:
        if e.to_status == InvocationStatus.AWAITING_CONFIRMATION:
            parked[e.invocation_id] = e.ts
        elif e.from_status == InvocationStatus.AWAITING_CONFIRMATION and e.invocation_id in parked:
            dt = (e.ts - parked.pop(e.invocation_id)).total_seconds()
            durations.append(dt)

    if not durations:
        return {"p50": 0, "p95": 0, "p99": 0, "count": 0, "open": len(parked)}

    durations.sort()
    n = len(durations)
    return {
        "p50": round(durations[int(n * 0.50)], 3),
        "p95": round(durations[int(min(n * 0.95, n - 1))], 3),
        "p99": round(durations[int(min(n * 0.99, n - 1))], 3),
        "count": n,
        "open": len(parked),
    }


def _summary(entries: list[AuditEntry]) -> dict[str, Any]:
    """High-level summary stats."""
    if not entries:
        return {"total_entries": 0, "invocations": 0, "first_entry": None, "last_entry": None}

    sorted_entries = sorted(entries, key=lambda e: (e.ts, e.seq))
    return {
        "total_entries": len(entries),
        "invocations": len({e.invocation_id for e in entries}),
        "first_entry": sorted_entries[0].ts.isoformat(),
        "last_entry": sorted_entries[-1].ts.isoformat(),
    }
