"""Audit query helpers.

Standalone functions over a JSONL audit file, for read-only callers that
do not hold a logger instance (HTTP endpoints, metrics).
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from contracts.audit import AuditEntry
from contracts.invocation import InvocationStatus


def query_by_invocation(log_path: str | Path, invocation_id: str) -> list[AuditEntry]:
    """Return all audit entries for a given invocation."""
    return [e for e in read_all(log_path) if e.invocation_id == invocation_id]


def query_by_status(
    log_path: str | Path, status: InvocationStatus, limit: int = 100
) -> list[AuditEntry]:
    """Return recent entries that moved an invocation into *status*."""
    matches = [e for e in read_all(log_path) if e.to_status == status]
    return matches[-limit:]


def tail(log_path: str | Path, n: int = 20) -> list[AuditEntry]:
    """Return the last N entries from the audit log."""
    entries = read_all(log_path)
    return entries[-n:]


def query_filtered(
    log_path: str | Path,
    *,
    status: InvocationStatus | None = None,
    tool_name: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    invocation_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditEntry], int]:
    """Return paginated, filtered audit entries.

    Returns (entries, total_matching_count).
    """
    filtered = read_all(log_path)

    if status is not None:
        filtered = [e for e in filtered if e.to_status == status]
    if tool_name is not None:
        filtered = [e for e in filtered if e.tool_name == tool_name]
    if invocation_id is not None:
        filtered = [e for e in filtered if e.invocation_id == invocation_id]
    if since is not None:
        filtered = [e for e in filtered if e.ts >= since]
    if until is not None:
        filtered = [e for e in filtered if e.ts <= until]

    total = len(filtered)
    # Most recent first
    filtered.sort(key=lambda e: (e.ts, e.seq), reverse=True)
    page = filtered[offset : offset + limit]
    return page, total


def reconstruct_history(
    entries: list[AuditEntry], invocation_id: str
) -> list[InvocationStatus]:
    """Rebuild the status path of one invocation from its audit entries.

    Raises ``ValueError`` if the entries do not chain (a ``from_status``
    that differs from the previous ``to_status``).
    """
    own = sorted(
        (e for e in entries if e.invocation_id == invocation_id),
        key=lambda e: (e.ts, e.seq),
    )
    history: list[InvocationStatus] = []
    current: InvocationStatus | None = None
    for entry in own:
        if entry.from_status != current:
            raise ValueError(
                f"Audit chain broken for {invocation_id} at seq {entry.seq}: "
                f"expected from_status {current}, got {entry.from_status}"
            )
        history.append(entry.to_status)
        current = entry.to_status
    return history


def read_all(log_path: str | Path) -> list[AuditEntry]:
    p = Path(log_path)
    if not p.exists():
        return []
    entries: list[AuditEntry] = []
    with p.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            entries.append(AuditEntry(**json.loads(line)))
    return entries
