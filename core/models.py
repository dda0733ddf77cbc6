"""
core/models.py -- Domain dataclasses shared by the detection and compliance engines.

These are pure data containers with zero logic beyond trivial helpers. All
scoring, aggregation and retention rules live in detection/, compliance/ and
audit/. API transport models live separately in api/models.py.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

SEVERITIES = ("CRITICAL", "HIGH", "MEDIUM", "LOW", "INFO")

# Ranking used wherever findings or recommendations are ordered.
SEVERITY_ORDER: dict[str, int] = {name: rank for rank, name in enumerate(SEVERITIES)}

THREAT_STATUS_ACTIVE = "active"

# Log entries are free-form dicts. Producers disagree on key names, so every
# reader goes through entry_field() with the accepted aliases below.
SOURCE_IP_KEYS = ("sourceIp", "source_ip", "ip")
TARGET_HOST_KEYS = ("targetHost", "target_host", "host")
ENDPOINT_KEYS = ("url", "endpoint")

LogEntry = dict[str, Any]


def entry_field(entry: LogEntry, keys: tuple[str, ...], default: Any = None) -> Any:
    """Return the first non-empty value among keys, else default."""
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return value
    return default


# ---------------------------------------------------------------------------
# Threat detection
# ---------------------------------------------------------------------------


@dataclass
class BufferedEntry:
    """A log entry as held in the analysis buffer.

    timestamp is the ingest time, not whatever the producer put in the entry.
    analyzed flips to True once a batch pass has seen the entry.
    """

    entry: LogEntry
    timestamp: datetime
    analyzed: bool = False

    @property
    def source_ip(self) -> str:
        return str(entry_field(self.entry, SOURCE_IP_KEYS, "unknown"))


@dataclass
class ThreatPattern:
    """Static catalog definition of a known attack pattern.

    content_pattern is matched against the lower-cased JSON of the entry.
    scorer (a detection.patterns.ThreatScorer) contributes an indicator score
    from its own sliding windows or field checks. indicators holds the
    pattern's tunables (thresholds, suspicious domains, ...).
    self_gated patterns fire on their scorer's own window thresholds and skip
    the confidence gate.
    """

    id: str
    name: str
    description: str
    severity: str
    score: float
    content_pattern: Optional[re.Pattern] = None
    scorer: Any = None
    indicators: dict[str, Any] = field(default_factory=dict)
    self_gated: bool = False


@dataclass
class Threat:
    """A detected instance of suspicious activity.

    pattern_id is None for statistical anomalies from the batch analyzer.
    source_ip is None for batch-wide anomalies (time / protocol) that do not
    belong to a single address.
    """

    id: str
    type: str
    description: str
    severity: str
    score: float
    confidence: float
    detected_at: datetime
    pattern_id: Optional[str] = None
    source_ip: Optional[str] = None
    target_host: Optional[str] = None
    status: str = THREAT_STATUS_ACTIVE
    details: dict[str, Any] = field(default_factory=dict)
    log_entry: Optional[LogEntry] = None


# ---------------------------------------------------------------------------
# Compliance catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComplianceRequirement:
    id: str
    title: str
    description: str
    category: str
    severity: str
    checks: tuple[str, ...]


@dataclass(frozen=True)
class ComplianceStandard:
    id: str
    name: str
    version: str
    description: str
    requirements: tuple[ComplianceRequirement, ...]


# ---------------------------------------------------------------------------
# Compliance results
# ---------------------------------------------------------------------------


@dataclass
class ComplianceCheckResult:
    """Outcome of one check invocation. Ephemeral -- never stored on its own."""

    passed: bool
    description: str
    severity: str
    recommendation: str
    evidence: Optional[dict[str, Any]] = None


@dataclass
class RequirementFinding:
    check_id: str
    description: str
    severity: str
    recommendation: str


@dataclass
class RequirementResult:
    requirement_id: str
    title: str
    category: str
    severity: str
    score: float = 0.0
    status: str = "NON_COMPLIANT"
    findings: list[RequirementFinding] = field(default_factory=list)
    evidence: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class StandardResult:
    standard_id: str
    standard_name: str
    version: str
    score: float = 0.0
    status: str = "UNKNOWN"
    requirements: list[RequirementResult] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class Finding:
    """A failed check lifted out of its requirement with reporting context."""

    check_id: str
    description: str
    severity: str
    recommendation: str
    standard_id: str
    requirement_id: str
    requirement_title: str
    category: str


@dataclass
class Recommendation:
    priority: str  # severity bucket this bundle covers
    title: str
    description: str
    actions: list[str] = field(default_factory=list)
    impacted_standards: list[str] = field(default_factory=list)


@dataclass
class AssessmentResult:
    """One compliance assessment run.

    status moves running -> completed, or running -> failed (with error).
    Nothing else changes after completion.
    """

    assessment_id: str
    start_time: datetime
    standards: list[str]
    systems: list[str]
    status: str = "running"
    overall_score: float = 0.0
    compliance_level: str = "UNKNOWN"
    findings: list[Finding] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    standard_results: list[StandardResult] = field(default_factory=list)
    end_time: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


@dataclass
class AuditEntry:
    """Immutable record appended to the audit trail. Never updated in place."""

    id: str
    timestamp: datetime
    action: str
    actor: str = "system"
    detail: dict[str, Any] = field(default_factory=dict)
