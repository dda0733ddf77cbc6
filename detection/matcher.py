"""
detection/matcher.py -- Immediate, per-entry scoring against the pattern catalog.

For each pattern, in catalog order:
  signature = pattern.score if the content regex matches, else 0
  indicator = scorer.evaluate(...).score, else 0
  total     = signature + indicator

Every pattern must clear confidence_threshold * 10 before it becomes a
Threat, except self-gated ones (brute force, DDoS) whose window thresholds
already decide when they fire. Scores are clipped to 10 and
confidence is score / 10.

An exception inside one pattern is logged and that pattern is skipped; the
rest of the catalog still runs.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any

from core.models import SOURCE_IP_KEYS, TARGET_HOST_KEYS, LogEntry, Threat, ThreatPattern, entry_field

logger = logging.getLogger("sentinelops.detection")

MAX_SCORE = 10.0


def serialize_entry(entry: LogEntry) -> str:
    """Lower-cased JSON text used for signature matching."""
    return json.dumps(entry, default=str, sort_keys=True).lower()


def new_threat_id() -> str:
    return f"threat_{uuid.uuid4().hex[:12]}"


class PatternMatcher:
    def __init__(self, patterns: dict[str, ThreatPattern], confidence_threshold: float = 0.85) -> None:
        self.patterns = patterns
        self.confidence_threshold = confidence_threshold

    @property
    def signature_gate(self) -> float:
        return self.confidence_threshold * 10

    def detect(self, entry: LogEntry, now: datetime) -> list[Threat]:
        content = serialize_entry(entry)
        threats = []
        for pattern in self.patterns.values():
            try:
                threat = self._evaluate(pattern, entry, content, now)
            except Exception:
                logger.exception("Pattern %s failed while evaluating entry", pattern.id)
                continue
            if threat is not None:
                threats.append(threat)
        return threats

    def _evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> Threat | None:
        signature = 0.0
        if pattern.content_pattern is not None and pattern.content_pattern.search(content):
            signature = pattern.score

        indicator = 0.0
        details: dict[str, Any] = {}
        if pattern.scorer is not None:
            signal = pattern.scorer.evaluate(pattern, entry, content, now)
            indicator = signal.score
            details = dict(signal.details)

        if signature <= 0 and indicator <= 0:
            return None
        total = signature + indicator
        if not pattern.self_gated and total < self.signature_gate:
            return None

        score = min(total, MAX_SCORE)
        if signature > 0:
            details["signature_match"] = True
        return Threat(
            id=new_threat_id(),
            pattern_id=pattern.id,
            type=pattern.name,
            description=pattern.description,
            severity=pattern.severity,
            score=round(score, 2),
            confidence=round(min(score / MAX_SCORE, 1.0), 3),
            detected_at=now,
            source_ip=str(entry_field(entry, SOURCE_IP_KEYS, "unknown")),
            target_host=_optional_str(entry_field(entry, TARGET_HOST_KEYS)),
            details=details,
            log_entry=dict(entry),
        )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)
