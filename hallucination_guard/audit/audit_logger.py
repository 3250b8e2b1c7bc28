"""
Audit - Audit Logger

Privacy-filtered audit entries kept in a bounded in-memory buffer and
periodically flushed to a JSON array on disk.
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from hallucination_guard.audit.privacy import hash_text, redact_pii
from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    AuditEntry,
    AuditHallucination,
    AuditSource,
    Hallucination,
    SanitizationAction,
    Source,
)
from hallucination_guard.schemas.audit import AuditEntryMetrics

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Append-only audit log.

    Entries are buffered in memory (bounded to max_memory_entries) and
    written by flush(), which merges them with the history on disk,
    trims the result to the same bound and replaces the file atomically.
    Entries leave the buffer only once they are on disk.
    """

    def __init__(self, settings=None, log_file: Optional[Path] = None):
        self.settings = settings or get_settings()
        self.config = self.settings.audit
        self.log_file = Path(log_file or self.config.log_file)

        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._entries = deque(maxlen=self.config.max_memory_entries)

        self._stop_event = threading.Event()
        self._flush_thread: Optional[threading.Thread] = None

    def log(
        self,
        query: str,
        response: str,
        hallucinations: Sequence[Hallucination],
        action: SanitizationAction,
        sources: Sequence[Source] = (),
        confidence: float = 0.0,
        response_time_ms: int = 0,
        session_id: str = "unknown",
    ) -> AuditEntry:
        """Build a privacy-filtered entry and buffer it."""
        entry = self._create_entry(
            query, response, hallucinations, action, sources,
            confidence, response_time_ms, session_id,
        )

        with self._lock:
            if self._entries and len(self._entries) == self._entries.maxlen:
                dropped = self._entries[0]
                logger.error(
                    f"Audit buffer full ({self._entries.maxlen} entries), "
                    f"dropping unflushed entry {dropped.id} from {dropped.timestamp.isoformat()}"
                )
            self._entries.append(entry)

        if action == SanitizationAction.BLOCKED:
            logger.warning(
                f"BLOCKED response - {len(hallucinations)} hallucination(s), "
                f"max severity: {entry.metrics.max_severity}"
            )
        elif action == SanitizationAction.REDACTED:
            logger.warning(f"REDACTED {len(hallucinations)} claim(s) from response")
        elif action == SanitizationAction.WARNED:
            logger.info(f"Added warnings for {len(hallucinations)} unverified claim(s)")

        return entry

    def _create_entry(
        self, query, response, hallucinations, action, sources,
        confidence, response_time_ms, session_id,
    ) -> AuditEntry:
        privacy = self.config

        stored_query = query or ""
        if privacy.redact_pii:
            stored_query = redact_pii(stored_query)
        if privacy.hash_queries:
            stored_query = hash_text(query)

        response_hash = hash_text(response) if privacy.hash_responses else (response or "")

        return AuditEntry(
            id=f"audit_{uuid.uuid4().hex[:16]}",
            timestamp=datetime.now(timezone.utc),
            session_id=session_id,
            query=stored_query,
            response_hash=response_hash,
            hallucinations=[
                AuditHallucination(
                    type=h.type.value,
                    severity=h.severity,
                    detected=redact_pii(h.detected) if privacy.redact_pii else h.detected,
                )
                for h in hallucinations
            ],
            action=action,
            metrics=AuditEntryMetrics(
                confidence=confidence,
                response_time_ms=response_time_ms,
                hallucination_count=len(hallucinations),
                max_severity=max((h.severity for h in hallucinations), default=0.0),
            ),
            sources=[AuditSource(title=s.title, score=s.score) for s in list(sources)[:3]],
        )

    @property
    def pending(self) -> int:
        """Entries not yet written to disk."""
        with self._lock:
            return len(self._entries)

    def flush(self) -> int:
        """
        Write buffered entries to disk.

        Returns:
            Number of entries flushed (0 on failure; entries stay buffered)
        """
        if not self.config.enable_persistence:
            return 0

        with self._flush_lock:
            with self._lock:
                snapshot = list(self._entries)

            if not snapshot:
                return 0

            try:
                history = self._read_disk_entries()
                merged = history + [e.to_wire() for e in snapshot]
                self._write_atomic(merged[-self.config.max_memory_entries:])
            except OSError as e:
                logger.error(
                    f"Error flushing {len(snapshot)} audit entries to {self.log_file}: {e}"
                )
                return 0

            flushed_ids = {e.id for e in snapshot}
            with self._lock:
                remaining = [e for e in self._entries if e.id not in flushed_ids]
                self._entries.clear()
                self._entries.extend(remaining)

        logger.info(f"Flushed {len(snapshot)} audit entries to disk")
        return len(snapshot)

    def _read_disk_entries(self) -> List[dict]:
        if not self.log_file.exists():
            return []

        try:
            with open(self.log_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading audit log {self.log_file}: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Audit log {self.log_file} is not a JSON array, ignoring history")
            return []
        return data

    def _write_atomic(self, entries: List[dict]) -> None:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=self.log_file.parent, prefix=f".{self.log_file.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.log_file)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_all_entries(self) -> List[AuditEntry]:
        """Entries on disk followed by buffered ones."""
        entries = []
        for raw in self._read_disk_entries():
            try:
                entries.append(AuditEntry.model_validate(raw))
            except ValueError as e:
                logger.warning(f"Skipping malformed audit entry: {e}")

        with self._lock:
            entries.extend(self._entries)
        return entries

    def search(
        self,
        action: Optional[SanitizationAction] = None,
        min_severity: Optional[float] = None,
        type: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Filter all entries by action, severity, hallucination type and time."""
        from_date = _as_utc(from_date)
        to_date = _as_utc(to_date)

        results = []
        for entry in self.get_all_entries():
            if action and entry.action != action:
                continue
            if min_severity is not None and entry.metrics.max_severity < min_severity:
                continue
            if type and not any(h.type == type for h in entry.hallucinations):
                continue
            if from_date and entry.timestamp < from_date:
                continue
            if to_date and entry.timestamp > to_date:
                continue
            results.append(entry)
        return results

    def clear_memory(self) -> None:
        with self._lock:
            self._entries.clear()

    def start_auto_flush(self) -> None:
        """Flush on a daemon thread every flush_interval_seconds."""
        if not self.config.enable_persistence:
            return
        if self._flush_thread is not None and self._flush_thread.is_alive():
            return

        self._stop_event.clear()
        self._flush_thread = threading.Thread(
            target=self._flush_loop, name="audit-flush", daemon=True
        )
        self._flush_thread.start()
        logger.info(
            f"Audit auto-flush started (every {self.config.flush_interval_seconds}s "
            f"to {self.log_file})"
        )

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(self.config.flush_interval_seconds):
            self.flush()

    def stop(self) -> None:
        self._stop_event.set()
        if self._flush_thread is not None:
            self._flush_thread.join(timeout=5)
            self._flush_thread = None

    def close(self) -> None:
        """Stop auto-flush and persist what is left."""
        self.stop()
        self.flush()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
