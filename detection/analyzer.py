"""
detection/analyzer.py -- Statistical anomaly pass over buffered log entries.

Pure functions: they read a list of BufferedEntry and return anomaly Threats
(pattern_id None). They never touch engine state, so the engine decides when
to run them and what to mark as analysed.

Three sub-analyses, each isolated from the others:

  behavioural   per source IP: request rate, then endpoint diversity
  time-based    hour-of-day buckets against the batch mean
  protocol      share of DELETE / PUT / PATCH in the batch

Rates and hour buckets use the ingest time on the BufferedEntry, not any
timestamp the producer wrote into the entry itself.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Optional

from core.models import ENDPOINT_KEYS, BufferedEntry, Threat, entry_field
from detection.matcher import new_threat_id

logger = logging.getLogger("sentinelops.detection")

HIGH_RATE_PER_MINUTE = 100
ENDPOINT_SCAN_THRESHOLD = 50
HOURLY_SPIKE_FACTOR = 3

# Method -> maximum share (percent) of the batch before it is unusual.
METHOD_SHARE_LIMITS = {"DELETE": 5.0, "PUT": 10.0, "PATCH": 5.0}


def _anomaly(
    now: datetime,
    type_: str,
    description: str,
    severity: str,
    score: float,
    confidence: float,
    details: dict[str, Any],
    source_ip: Optional[str] = None,
) -> Threat:
    return Threat(
        id=new_threat_id(),
        type=type_,
        description=description,
        severity=severity,
        score=round(min(max(score, 0.0), 10.0), 2),
        confidence=confidence,
        detected_at=now,
        source_ip=source_ip,
        details=details,
    )


# ---------------------------------------------------------------------------
# Behavioural
# ---------------------------------------------------------------------------


def analyze_ip_behavior(ip: str, entries: list[BufferedEntry], now: datetime) -> Optional[Threat]:
    """At most one anomaly per IP. Request rate is checked before endpoint diversity."""
    if not entries:
        return None
    span_minutes = (entries[-1].timestamp - entries[0].timestamp).total_seconds() / 60
    rate = len(entries) / max(span_minutes, 1)

    if rate > HIGH_RATE_PER_MINUTE:
        return _anomaly(
            now,
            "High Request Rate Anomaly",
            f"Abnormally high request rate from IP {ip}",
            "HIGH",
            min(8.0 + (rate - HIGH_RATE_PER_MINUTE) / 50, 10.0),
            0.85,
            {"request_rate": rate, "total_requests": len(entries), "time_span_minutes": span_minutes},
            source_ip=ip,
        )

    endpoints = {str(entry_field(e.entry, ENDPOINT_KEYS, "")) for e in entries}
    if len(endpoints) > ENDPOINT_SCAN_THRESHOLD:
        return _anomaly(
            now,
            "Endpoint Scanning Anomaly",
            f"Suspicious endpoint scanning behavior from IP {ip}",
            "MEDIUM",
            7.5,
            0.80,
            {"unique_endpoints": len(endpoints), "total_requests": len(entries)},
            source_ip=ip,
        )
    return None


def detect_behavioral_anomalies(entries: list[BufferedEntry], now: datetime) -> list[Threat]:
    groups: dict[str, list[BufferedEntry]] = {}
    for buffered in entries:
        groups.setdefault(buffered.source_ip, []).append(buffered)

    anomalies = []
    for ip, group in groups.items():
        try:
            anomaly = analyze_ip_behavior(ip, group, now)
        except Exception:
            logger.exception("IP behavior analysis failed for %s", ip)
            continue
        if anomaly is not None:
            anomalies.append(anomaly)
    return anomalies


# ---------------------------------------------------------------------------
# Time-based
# ---------------------------------------------------------------------------


def detect_time_based_anomalies(entries: list[BufferedEntry], now: datetime) -> list[Threat]:
    if not entries:
        return []
    hourly = Counter(e.timestamp.hour for e in entries)
    average = sum(hourly.values()) / len(hourly)
    threshold = average * HOURLY_SPIKE_FACTOR

    return [
        _anomaly(
            now,
            "Time-based Traffic Anomaly",
            f"Unusual traffic spike at hour {hour}",
            "MEDIUM",
            6.5,
            0.75,
            {"hour": hour, "request_count": count, "average": average, "threshold": threshold},
        )
        for hour, count in hourly.items()
        if count > threshold
    ]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


def detect_protocol_anomalies(entries: list[BufferedEntry], now: datetime) -> list[Threat]:
    if not entries:
        return []
    methods = Counter(str(e.entry.get("method") or "UNKNOWN").upper() for e in entries)
    total = len(entries)

    anomalies = []
    for method, count in methods.items():
        limit = METHOD_SHARE_LIMITS.get(method)
        percentage = count * 100 / total
        if limit is not None and percentage > limit:
            anomalies.append(
                _anomaly(
                    now,
                    "Protocol Usage Anomaly",
                    f"Unusual {method} method usage pattern",
                    "MEDIUM",
                    6.0,
                    0.70,
                    {"method": method, "count": count, "percentage": percentage},
                )
            )
    return anomalies


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

_SUB_ANALYSES = (
    ("behavioral", detect_behavioral_anomalies),
    ("time-based", detect_time_based_anomalies),
    ("protocol", detect_protocol_anomalies),
)


def detect_anomalies(entries: list[BufferedEntry], now: datetime) -> list[Threat]:
    """Run every sub-analysis. One failing analysis does not stop the others."""
    anomalies: list[Threat] = []
    for name, analysis in _SUB_ANALYSES:
        try:
            anomalies.extend(analysis(entries, now))
        except Exception:
            logger.exception("%s anomaly analysis failed", name.capitalize())
    return anomalies
