"""
detection/engine.py -- ThreatDetectionEngine: buffer, registry and background jobs.

Two paths feed the threat registry:

  immediate   analyze_log_entry() buffers a copy of the entry, runs the
              PatternMatcher synchronously and registers what it finds.

  batch       process_log_buffer() (every 5 s) runs the statistical analyzer
              over buffered entries not yet analysed, registers the anomalies
              and marks every selected entry analysed. No retries.

Registered threats are kept in detection order and dropped after 7 days.
CRITICAL threats trigger the automated responder when ENABLE_AUTO_RESPONSE
is set.

All mutable state is guarded by one RLock. FastAPI runs sync routes on a
thread pool, so ingestion may be concurrent with itself and with the jobs.
Events and responses run after the lock is released.
"""

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Any, Optional

from audit.trail import AuditTrail
from core.config import Settings
from core.events import THREAT_DETECTED, EventEmitter
from core.models import SEVERITIES, BufferedEntry, LogEntry, Threat
from core.scheduler import PeriodicJob, stop_all
from detection.analyzer import detect_anomalies
from detection.baseline import GENERIC_DECAY, AnomalyBaselineStore
from detection.matcher import PatternMatcher
from detection.patterns import build_threat_patterns
from detection.responder import AutomatedResponder, LoggingResponseActions, ResponseActions

logger = logging.getLogger("sentinelops.detection")

THREAT_RETENTION = timedelta(days=7)
RECENT_WINDOW = timedelta(hours=24)
BUFFER_TRIM_RATIO = 0.8
TOP_SOURCE_IPS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ThreatDetectionEngine:
    def __init__(
        self,
        settings: Settings,
        audit: Optional[AuditTrail] = None,
        events: Optional[EventEmitter] = None,
        actions: Optional[ResponseActions] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.audit = audit
        self.events = events
        self.clock = clock

        self.baseline = AnomalyBaselineStore()
        self.patterns = build_threat_patterns(self.baseline)
        self.matcher = PatternMatcher(self.patterns, settings.confidence_threshold)
        self.responder = AutomatedResponder(
            actions or LoggingResponseActions(settings.alert_webhook_url),
            audit,
        )
        self.max_buffer_size = settings.max_buffer_size

        self._buffer: list[BufferedEntry] = []
        self._threats: dict[str, Threat] = {}
        self._lock = RLock()
        self.jobs = [
            PeriodicJob("log-buffer-analysis", settings.analysis_interval_seconds, self.process_log_buffer),
            PeriodicJob("baseline-pruning", settings.baseline_prune_interval_seconds, self.update_anomaly_baselines),
            PeriodicJob("threat-cleanup", settings.threat_cleanup_interval_seconds, self.cleanup_old_threats),
        ]
        logger.info("Loaded %d threat detection patterns", len(self.patterns))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic jobs. Needs a running event loop."""
        for job in self.jobs:
            job.start()
        logger.info("Threat detection engine started")

    async def stop(self) -> None:
        await stop_all(self.jobs)
        logger.info("Threat detection engine stopped")

    # ------------------------------------------------------------------
    # Immediate path
    # ------------------------------------------------------------------

    def analyze_log_entry(self, entry: LogEntry) -> list[Threat]:
        """Buffer entry, score it against the catalog and register any threats.

        Returns the new threats (possibly empty). Never raises: an ingestion
        error is logged and yields [].
        """
        try:
            now = self.clock()
            self._buffer_entry(entry, now)
            threats = self.detect_immediate_threats(entry, now)
        except Exception:
            logger.exception("Log entry analysis failed")
            return []
        for threat in threats:
            self.handle_threat_detection(threat)
        return threats

    def detect_immediate_threats(self, entry: LogEntry, now: Optional[datetime] = None) -> list[Threat]:
        return self.matcher.detect(entry, now or self.clock())

    def _buffer_entry(self, entry: LogEntry, now: datetime) -> None:
        with self._lock:
            self._buffer.append(BufferedEntry(entry=dict(entry), timestamp=now))
            if len(self._buffer) > self.max_buffer_size:
                keep = int(self.max_buffer_size * BUFFER_TRIM_RATIO)
                self._buffer = self._buffer[-keep:]

    def buffer_size(self) -> int:
        with self._lock:
            return len(self._buffer)

    # ------------------------------------------------------------------
    # Registry & response
    # ------------------------------------------------------------------

    def handle_threat_detection(self, threat: Threat) -> None:
        with self._lock:
            self._threats[threat.id] = threat
        if self.events is not None:
            self.events.emit(THREAT_DETECTED, threat)
        logger.warning(
            "Threat detected: id=%s type=%s severity=%s score=%.2f confidence=%.2f source_ip=%s",
            threat.id,
            threat.type,
            threat.severity,
            threat.score,
            threat.confidence,
            threat.source_ip,
        )
        if threat.severity == "CRITICAL" and self.settings.enable_auto_response:
            self.trigger_automated_response(threat)

    def trigger_automated_response(self, threat: Threat) -> list[str]:
        logger.info("Triggering automated response for threat %s", threat.id)
        return self.responder.respond(threat)

    # ------------------------------------------------------------------
    # Background jobs
    # ------------------------------------------------------------------

    def process_log_buffer(self) -> int:
        """Batch pass over unanalysed entries. Returns the number of anomalies."""
        with self._lock:
            pending = [b for b in self._buffer if not b.analyzed]
        if not pending:
            return 0

        anomalies: list[Threat] = []
        try:
            anomalies = detect_anomalies(pending, self.clock())
            for anomaly in anomalies:
                self.handle_threat_detection(anomaly)
        except Exception:
            logger.exception("Log buffer processing failed")
        finally:
            with self._lock:
                for buffered in pending:
                    buffered.analyzed = True
        logger.debug("Processed %d buffered entries, %d anomalies", len(pending), len(anomalies))
        return len(anomalies)

    def update_anomaly_baselines(self) -> int:
        logger.info("Updating anomaly detection baselines")
        return self.baseline.prune(self.clock(), GENERIC_DECAY)

    def cleanup_old_threats(self) -> int:
        cutoff = self.clock() - THREAT_RETENTION
        with self._lock:
            expired = [tid for tid, t in self._threats.items() if t.detected_at < cutoff]
            for tid in expired:
                del self._threats[tid]
        if expired:
            logger.info("Removed %d threats older than %d days", len(expired), THREAT_RETENTION.days)
        return len(expired)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_threats(self) -> list[Threat]:
        with self._lock:
            return list(self._threats.values())

    def get_threat_statistics(self) -> dict[str, Any]:
        threats = self.get_active_threats()
        recent_cutoff = self.clock() - RECENT_WINDOW
        by_severity = Counter(t.severity for t in threats)

        # Counter keeps first-encounter order, and sorted() is stable, so ties
        # rank by first appearance.
        ip_counts = Counter(t.source_ip for t in threats if t.source_ip is not None)
        top_ips = sorted(ip_counts.items(), key=lambda kv: kv[1], reverse=True)[:TOP_SOURCE_IPS]
        type_counts = Counter(t.type for t in threats)

        stats: dict[str, Any] = {
            "total_threats": len(threats),
            "recent_threats": sum(1 for t in threats if t.detected_at > recent_cutoff),
        }
        for severity in SEVERITIES[:4]:
            stats[f"{severity.lower()}_threats"] = by_severity.get(severity, 0)
        stats["top_source_ips"] = [{"ip": ip, "count": count} for ip, count in top_ips]
        stats["threat_types"] = [{"type": type_, "count": count} for type_, count in type_counts.items()]
        return stats
