"""Append-only audit loggers: JSONL file and in-memory."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from contracts.audit import AuditEntry, AuditLogger
from contracts.invocation import InvocationStatus


class JsonlAuditLogger(AuditLogger):
    """Thread-safe, append-only JSONL audit logger."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        # Ensure parent directory exists
        self._path.parent.mkdir(parents=True, exist_ok=True)
        existing = self._read_all()
        self._next_seq = existing[-1].seq + 1 if existing else 1

    @property
    def path(self) -> Path:
        return self._path

    def log(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            stored = entry.model_copy(update={"seq": self._next_seq})
            line = stored.model_dump_json() + "\n"
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
            self._next_seq += 1
        return stored

    def query_by_invocation(self, invocation_id: str) -> list[AuditEntry]:
        return [e for e in self._read_all() if e.invocation_id == invocation_id]

    def query_by_status(self, status: InvocationStatus, limit: int = 100) -> list[AuditEntry]:
        matches = [e for e in self._read_all() if e.to_status == status]
        return matches[-limit:]

    def tail(self, n: int = 20) -> list[AuditEntry]:
        entries = self._read_all()
        return entries[-n:]

    # ── internal ────────────────────────────────────────────────────

    def _read_all(self) -> list[AuditEntry]:
        if not self._path.exists():
            return []
        entries: list[AuditEntry] = []
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                entries.append(AuditEntry(**json.loads(line)))
        return entries


class InMemoryAuditLogger(AuditLogger):
    """Audit store kept in process memory; used for fresh stores and tests."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def log(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            stored = entry.model_copy(update={"seq": len(self._entries) + 1})
            self._entries.append(stored)
        return stored

    def query_by_invocation(self, invocation_id: str) -> list[AuditEntry]:
        return [e for e in self._entries if e.invocation_id == invocation_id]

    def query_by_status(self, status: InvocationStatus, limit: int = 100) -> list[AuditEntry]:
        matches = [e for e in self._entries if e.to_status == status]
        return matches[-limit:]

    def tail(self, n: int = 20) -> list[AuditEntry]:
        return list(self._entries[-n:])

    def all(self) -> list[AuditEntry]:
        return list(self._entries)
