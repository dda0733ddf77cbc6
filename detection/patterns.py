"""
detection/patterns.py -- Threat pattern catalog and indicator scorers.

A ThreatPattern can carry two kinds of evidence:

  signature   a regex run against the lower-cased JSON of the log entry.
              A hit contributes the pattern's base score.

  indicator   a ThreatScorer that looks at structured fields or at sliding
              windows in the AnomalyBaselineStore and returns an
              IndicatorSignal (score 0 means "nothing seen").

The scorers here are the stand-ins shipped with the engine. Anything with an
evaluate() method of the same shape can replace them -- a real C2 feed, a
flow-log exfiltration detector -- without touching the matcher.

Catalog order matters: the matcher walks patterns in definition order and
emits threats in that order.
"""

import re
from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional, Protocol

from core.models import SOURCE_IP_KEYS, TARGET_HOST_KEYS, LogEntry, ThreatPattern, entry_field
from detection.baseline import AnomalyBaselineStore


class IndicatorSignal(NamedTuple):
    score: float
    details: dict[str, Any]


NO_SIGNAL = IndicatorSignal(0.0, {})


class ThreatScorer(Protocol):
    def evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> IndicatorSignal: ...


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

_DOMAIN_KEYS = ("domain", "destination", "dest_host", "destinationHost", *TARGET_HOST_KEYS)
_DNS_KEYS = ("dns_query", "dnsQuery", "query")
_PORT_KEYS = ("port", "destination_port", "destinationPort", "dest_port", "dstPort")
_BYTES_KEYS = ("bytes", "bytes_sent", "bytesSent", "size", "transfer_size", "transferSize")
_FILE_KEYS = ("file", "filename", "fileName", "path", "url")


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _source_ip(entry: LogEntry) -> str:
    return str(entry_field(entry, SOURCE_IP_KEYS, "unknown"))


# ---------------------------------------------------------------------------
# Scorers
# ---------------------------------------------------------------------------


class BruteForceScorer:
    """Counts authentication failures per source IP over a short window.

    Any entry whose text mentions a failure keyword is recorded; every entry
    from the IP prunes the window. At the threshold the signal starts at 8.0
    and climbs 0.1 per extra failure, for at most 20 extra failures.
    """

    def __init__(self, baseline: AnomalyBaselineStore) -> None:
        self._baseline = baseline

    def evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> IndicatorSignal:
        ind = pattern.indicators
        threshold = ind["failed_login_threshold"]
        window = timedelta(minutes=ind["timeframe_minutes"])
        failed = any(keyword in content for keyword in ind["failure_keywords"])

        count = self._baseline.record(f"brute_force:{_source_ip(entry)}", now, window, add=failed)
        if count < threshold:
            return NO_SIGNAL
        score = min(8.0 + min(count - threshold, 20) * 0.1, 10.0)
        return IndicatorSignal(
            score,
            {"failed_attempts": count, "threshold": threshold, "window_seconds": window.total_seconds()},
        )


class DDoSScorer:
    """Global request-volume window with a distinct-source floor.

    Both conditions are required: a single noisy client is a rate problem for
    the batch analyzer, not a distributed attack.
    """

    KEY = "ddos_analysis"

    def __init__(self, baseline: AnomalyBaselineStore) -> None:
        self._baseline = baseline

    def evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> IndicatorSignal:
        ind = pattern.indicators
        request_threshold = ind["request_threshold"]
        ip = entry_field(entry, SOURCE_IP_KEYS)
        requests, unique_ips = self._baseline.record_tagged(
            self.KEY, now, timedelta(minutes=ind["timeframe_minutes"]), str(ip) if ip is not None else None
        )
        if requests < request_threshold or unique_ips < ind["unique_ips_threshold"]:
            return NO_SIGNAL
        score = 8.0 + min((requests - request_threshold) / 100, 2.0)
        return IndicatorSignal(score, {"requests_per_window": requests, "unique_ips": unique_ips})


class MalwareCommunicationScorer:
    """Flags traffic to known C2 domains, classic backdoor ports or hashed DNS labels."""

    def evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> IndicatorSignal:
        ind = pattern.indicators

        domain = str(entry_field(entry, _DOMAIN_KEYS, "")).lower()
        for bad in ind["suspicious_domains"]:
            if domain == bad or domain.endswith("." + bad):
                return IndicatorSignal(pattern.score, {"reason": "suspicious_domain", "domain": domain})

        port = _as_int(entry_field(entry, _PORT_KEYS))
        if port is not None and port in ind["unusual_ports"]:
            return IndicatorSignal(pattern.score, {"reason": "unusual_port", "port": port})

        query = str(entry_field(entry, _DNS_KEYS, "")).lower()
        if query and ind["dns_pattern"].match(query):
            return IndicatorSignal(pattern.score, {"reason": "hashed_dns_label", "query": query})

        return NO_SIGNAL


class DataExfiltrationScorer:
    """Large transfers of dump-like or archive files."""

    def evaluate(self, pattern: ThreatPattern, entry: LogEntry, content: str, now: datetime) -> IndicatorSignal:
        ind = pattern.indicators
        size = _as_int(entry_field(entry, _BYTES_KEYS))
        if size is None or size < ind["data_size_threshold"]:
            return NO_SIGNAL
        filename = str(entry_field(entry, _FILE_KEYS, ""))
        for rx in (*ind["file_patterns"], *ind["compression_patterns"]):
            if rx.search(filename):
                return IndicatorSignal(pattern.score, {"bytes": size, "file": filename})
        return NO_SIGNAL


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def build_threat_patterns(baseline: AnomalyBaselineStore) -> dict[str, ThreatPattern]:
    """Return the catalog keyed by pattern id, in evaluation order.

    Built per engine because the window scorers share that engine's baseline.
    """
    patterns = [
        ThreatPattern(
            id="BRUTE_FORCE",
            name="Brute Force Attack",
            description="Multiple failed authentication attempts",
            severity="HIGH",
            score=8.5,
            scorer=BruteForceScorer(baseline),
            self_gated=True,
            indicators={
                "failed_login_threshold": 10,
                "timeframe_minutes": 5,
                "failure_keywords": ("failed", "invalid", "denied"),
            },
        ),
        ThreatPattern(
            id="SQL_INJECTION",
            name="SQL Injection Attack",
            description="Malicious SQL query patterns detected",
            severity="CRITICAL",
            score=9.2,
            content_pattern=re.compile(r"(union.*select|or.*1=1|drop.*table|exec.*sp_|xp_cmdshell)", re.I),
        ),
        ThreatPattern(
            id="XSS_ATTACK",
            name="Cross-Site Scripting Attack",
            description="XSS attack patterns in web requests",
            severity="HIGH",
            score=7.8,
            content_pattern=re.compile(r"(<script|javascript:|on\w+\s*=|eval\(|document\.cookie)", re.I),
        ),
        ThreatPattern(
            id="DDoS_PATTERN",
            name="DDoS Attack Pattern",
            description="Distributed Denial of Service attack indicators",
            severity="HIGH",
            score=8.0,
            scorer=DDoSScorer(baseline),
            self_gated=True,
            indicators={"request_threshold": 1000, "timeframe_minutes": 1, "unique_ips_threshold": 100},
        ),
        ThreatPattern(
            id="MALWARE_COMMUNICATION",
            name="Malware Communication",
            description="Suspicious outbound connections to known malware C&C servers",
            severity="CRITICAL",
            score=9.5,
            scorer=MalwareCommunicationScorer(),
            indicators={
                "suspicious_domains": ("malware-tracker.com", "botnet-command.net"),
                "unusual_ports": (1337, 31337, 6667),
                "dns_pattern": re.compile(r"^[a-f0-9]{32}\.", re.I),
            },
        ),
        ThreatPattern(
            id="PRIVILEGE_ESCALATION",
            name="Privilege Escalation Attempt",
            description="Attempts to gain elevated system privileges",
            severity="HIGH",
            score=8.7,
            content_pattern=re.compile(r"(sudo.*su|runas.*admin|net.*user.*add|whoami.*admin)", re.I),
        ),
        ThreatPattern(
            id="DATA_EXFILTRATION",
            name="Data Exfiltration Pattern",
            description="Unusual data transfer patterns indicating data theft",
            severity="CRITICAL",
            score=9.0,
            scorer=DataExfiltrationScorer(),
            indicators={
                "data_size_threshold": 100 * 1024 * 1024,
                "file_patterns": (
                    re.compile(r"\.sql$", re.I),
                    re.compile(r"\.csv$", re.I),
                    re.compile(r"\.xlsx?$", re.I),
                    re.compile(r"backup", re.I),
                ),
                "compression_patterns": (
                    re.compile(r"\.zip$", re.I),
                    re.compile(r"\.rar$", re.I),
                    re.compile(r"\.7z$", re.I),
                ),
            },
        ),
    ]
    return {p.id: p for p in patterns}
