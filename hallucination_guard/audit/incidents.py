"""
Audit - Incident Tracker

Bounded history of validations that contained hallucinations, plus a
pattern table that surfaces fabrications the model keeps repeating.
"""

import threading
import uuid
from collections import Counter, deque
from datetime import datetime, timezone
from typing import List, Sequence

from hallucination_guard.audit.privacy import hash_text
from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    AuditHallucination,
    Incident,
    IncidentSummary,
    RecurringPattern,
    SanitizationAction,
)


class IncidentTracker:
    """Records incidents and counts (type, detected value) patterns."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self._lock = threading.Lock()
        self._incidents = deque(maxlen=self.settings.audit.max_incidents)
        self._patterns = Counter()

    def record_incident(
        self,
        entry_id: str,
        hallucinations: Sequence[AuditHallucination],
        action: SanitizationAction,
        query: str = "",
    ) -> Incident:
        incident = Incident(
            id=f"incident_{uuid.uuid4().hex[:12]}",
            timestamp=datetime.now(timezone.utc),
            entry_id=entry_id,
            query=query,
            hallucinations=list(hallucinations),
            action=action,
        )

        with self._lock:
            self._incidents.append(incident)
            for h in hallucinations:
                self._patterns[self.pattern_key(h.type, h.detected)] += 1

        return incident

    @staticmethod
    def pattern_key(hallucination_type: str, detected: str) -> str:
        return f"{hallucination_type}:{hash_text(detected)}"

    def get_recent_incidents(self, limit: int = 50) -> List[Incident]:
        """Most recent incidents first."""
        with self._lock:
            incidents = list(self._incidents)
        return list(reversed(incidents[-limit:])) if limit > 0 else []

    def get_recurring_patterns(self, min_occurrences: int = None) -> List[RecurringPattern]:
        min_occurrences = min_occurrences or self.settings.audit.recurring_min_occurrences

        with self._lock:
            counts = list(self._patterns.items())

        patterns = []
        for key, count in counts:
            if count >= min_occurrences:
                hallucination_type, digest = key.split(":", 1)
                patterns.append(RecurringPattern(
                    type=hallucination_type, hash=digest, occurrences=count,
                ))

        return sorted(patterns, key=lambda p: p.occurrences, reverse=True)

    def get_incidents_by_type(self, hallucination_type: str) -> List[Incident]:
        with self._lock:
            return [
                incident for incident in self._incidents
                if any(h.type == hallucination_type for h in incident.hallucinations)
            ]

    def get_summary(self) -> IncidentSummary:
        with self._lock:
            incidents = list(self._incidents)

        by_type = Counter(h.type for incident in incidents for h in incident.hallucinations)

        return IncidentSummary(
            total_incidents=len(incidents),
            by_type=dict(by_type),
            recurring_patterns=self.get_recurring_patterns(),
            oldest_incident=incidents[0].timestamp if incidents else None,
            newest_incident=incidents[-1].timestamp if incidents else None,
        )

    def clear(self) -> None:
        with self._lock:
            self._incidents.clear()
            self._patterns.clear()
