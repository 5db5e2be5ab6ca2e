"""Append-only audit stores.

Entries are keyed by their UUID and are never updated or deleted. The
only later write is attaching the published reference, which the JSONL
store records as a separate appended line.
"""

from __future__ import annotations

import json
import threading
import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import ValidationError

from audited_query.core.exceptions import AuditedQueryError, InputError
from audited_query.core.logging import get_logger
from audited_query.core.models import AuditEntry

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_LIST_LIMIT = 100


@runtime_checkable
class AuditStore(Protocol):
    def add(self, entry: AuditEntry) -> AuditEntry: ...

    def get(self, entry_id: uuid.UUID) -> AuditEntry | None: ...

    def list_recent(self, limit: int | None = DEFAULT_LIST_LIMIT) -> list[AuditEntry]: ...

    def attach_reference(self, entry_id: uuid.UUID, reference: str) -> None: ...


class InMemoryAuditStore:
    """Thread-safe in-process store; iteration order is insertion order."""

    def __init__(self) -> None:
        self._entries: dict[uuid.UUID, AuditEntry] = {}
        self._lock = threading.Lock()

    def add(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            if entry.id in self._entries:
                msg = f"Audit entry {entry.id} already recorded"
                raise InputError(msg)
            self._entries[entry.id] = entry
        return entry

    def get(self, entry_id: uuid.UUID) -> AuditEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def list_recent(self, limit: int | None = DEFAULT_LIST_LIMIT) -> list[AuditEntry]:
        with self._lock:
            entries = list(self._entries.values())
        return entries[::-1][:limit]

    def attach_reference(self, entry_id: uuid.UUID, reference: str) -> None:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                msg = f"Audit entry {entry_id} not found"
                raise InputError(msg)
            entry.published_reference = reference

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class JsonlAuditStore:
    """Append-only JSON-lines file.

    Each line is either {"type": "entry", "entry": {...}} or
    {"type": "reference", "id": ..., "published_reference": ...}.

    Appends never re-parse earlier entries: the ids already on disk are
    scanned once, skipping unreadable lines, and kept in memory. Corrupt
    lines are reported when entries are read back.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._known_ids: set[uuid.UUID] | None = None

    def _write_line(self, record: dict[str, object]) -> None:
        line = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _scan_ids(self) -> set[uuid.UUID]:
        ids: set[uuid.UUID] = set()
        if not self.path.exists():
            return ids

        unreadable = 0
        with open(self.path, encoding="utf-8") as f:
            for raw in f:
                if not raw.strip():
                    continue
                try:
                    record = json.loads(raw)
                    if record.get("type") == "entry":
                        ids.add(uuid.UUID(record["entry"]["id"]))
                except (ValueError, KeyError, TypeError, AttributeError):
                    unreadable += 1
        if unreadable:
            get_logger("store").warning(
                "audit log has unreadable lines",
                path=str(self.path),
                count=unreadable,
            )
        return ids

    def _load(self) -> dict[uuid.UUID, AuditEntry]:
        entries: dict[uuid.UUID, AuditEntry] = {}
        if not self.path.exists():
            return entries

        with self._lock, open(self.path, encoding="utf-8") as f:
            lines = f.readlines()

        for lineno, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            try:
                record = json.loads(raw)
                kind = record.get("type")
                if kind == "entry":
                    entry = AuditEntry.model_validate(record["entry"])
                    entries[entry.id] = entry
                elif kind == "reference":
                    entry_id = uuid.UUID(record["id"])
                    if entry_id in entries:
                        entries[entry_id].published_reference = record[
                            "published_reference"
                        ]
                else:
                    msg = f"unknown record type {kind!r}"
                    raise ValueError(msg)
            except (ValueError, KeyError, TypeError, ValidationError) as e:
                msg = f"Corrupt audit log {self.path} at line {lineno}: {e}"
                raise AuditedQueryError(msg) from e
        return entries

    def add(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            if self._known_ids is None:
                self._known_ids = self._scan_ids()
            if entry.id in self._known_ids:
                msg = f"Audit entry {entry.id} already recorded"
                raise InputError(msg)
            self._write_line({"type": "entry", "entry": entry.model_dump(mode="json")})
            self._known_ids.add(entry.id)
        return entry

    def get(self, entry_id: uuid.UUID) -> AuditEntry | None:
        return self._load().get(entry_id)

    def list_recent(self, limit: int | None = DEFAULT_LIST_LIMIT) -> list[AuditEntry]:
        return list(self._load().values())[::-1][:limit]

    def attach_reference(self, entry_id: uuid.UUID, reference: str) -> None:
        with self._lock:
            self._write_line(
                {
                    "type": "reference",
                    "id": str(entry_id),
                    "published_reference": reference,
                }
            )
