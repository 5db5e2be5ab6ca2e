"""Audit entry construction, rendering and best-effort publication."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from audited_query.core.exceptions import AuditedQueryError
from audited_query.core.integrity import format_timestamp, generate_audit_hash
from audited_query.core.logging import audit_context, get_logger
from audited_query.core.models import AuditEntry, PublicationResult
from audited_query.core.validator import sanitize_for_audit

if TYPE_CHECKING:
    from audited_query.core.models import QueryRequest, QueryResult
    from audited_query.core.publisher import AuditPublisher
    from audited_query.core.store import AuditStore


def format_markdown(entry: AuditEntry) -> str:
    """Render an audit entry as a markdown comment with an integrity footer."""
    status = "✅ Success" if entry.succeeded else "❌ Failed"
    lines = [
        f"## Query Audit — {status}",
        "",
        f"**User:** `{entry.requested_by}`",
        f"**Timestamp:** {format_timestamp(entry.request_timestamp)}",
        f"**Execution Time:** {entry.execution_milliseconds}ms",
        f"**Rows Returned:** {entry.row_count}",
        f"**Columns:** {entry.column_count}",
        "",
        "**Query:**",
        "```sql",
        sanitize_for_audit(entry.sql),
        "```",
    ]
    if entry.error_message:
        lines += ["", f"> ⚠️ **Error:** {entry.error_message}"]
    lines += ["", f"*Integrity: `{entry.integrity_hash}`*"]
    return "\n".join(lines) + "\n"


class AuditLogger:
    """Seal, store and (optionally) publish one audit entry per query.

    Publication runs on a background thread; log_query() returns as soon
    as the entry is stored. A failed publication is logged and leaves
    the entry without a published_reference.
    """

    def __init__(
        self,
        store: AuditStore,
        publisher: AuditPublisher | None = None,
        max_workers: int = 2,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self._pool = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="audit-publish")
            if publisher is not None
            else None
        )
        self._pending: set[Future[PublicationResult]] = set()

    def __enter__(self) -> AuditLogger:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def log_query(self, request: QueryRequest, result: QueryResult) -> AuditEntry:
        log = get_logger("audit")
        entry = AuditEntry.from_execution(
            request, result, integrity_hash=generate_audit_hash(request, result)
        )
        self.store.add(entry)
        with audit_context(audit_id=entry.id):
            log.info(
                "query audited",
                user=entry.requested_by,
                row_count=entry.row_count,
                execution_ms=entry.execution_milliseconds,
                succeeded=entry.succeeded,
                integrity_hash=entry.integrity_hash,
            )

            if self.publisher is None or self._pool is None:
                log.debug("audit publisher not configured, entry recorded locally only")
                return entry

        future = self._pool.submit(self._publish, self.publisher, entry)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)
        return entry

    def _publish(self, publisher: AuditPublisher, entry: AuditEntry) -> PublicationResult:
        with audit_context(audit_id=entry.id, requested_by=entry.requested_by):
            return self._publish_entry(publisher, entry)

    def _publish_entry(
        self, publisher: AuditPublisher, entry: AuditEntry
    ) -> PublicationResult:
        log = get_logger("audit")
        try:
            outcome = publisher.publish(entry)
        except Exception as e:  # noqa: BLE001
            log.error("audit publication crashed", error=repr(e))
            return PublicationResult(error=repr(e))

        if not outcome.ok or outcome.reference is None:
            log.error("audit publication failed", error=outcome.error)
            return outcome

        entry.published_reference = outcome.reference
        try:
            self.store.attach_reference(entry.id, outcome.reference)
        except AuditedQueryError as e:
            log.error("could not record published reference", error=e.message)
            return outcome
        log.info("audit published", url=outcome.reference)
        return outcome

    def flush(self, timeout: float | None = None) -> None:
        """Wait for publications already submitted."""
        wait(list(self._pending), timeout=timeout)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
