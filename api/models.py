"""
API request and response models for SentinelOps REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py, which
own the internal domain representation. Response models set
from_attributes=True so route handlers can validate a domain dataclass
(and its nested dataclasses) straight into the transport shape.

Separation of concerns: core/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_BATCH_ENTRIES = 500

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SeverityEnum(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    role: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    role: str


# ---------------------------------------------------------------------------
# Log ingestion
# ---------------------------------------------------------------------------


class LogBatchRequest(BaseModel):
    """Request body for POST /api/v1/logs/batch."""

    entries: list[dict[str, Any]] = Field(
        min_length=1,
        max_length=MAX_BATCH_ENTRIES,
        description=f"Log entries to ingest in order. Min 1, max {MAX_BATCH_ENTRIES} per request.",
    )


class ThreatResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    pattern_id: Optional[str]
    type: str
    description: str
    severity: SeverityEnum
    score: float
    confidence: float
    source_ip: Optional[str]
    target_host: Optional[str]
    detected_at: datetime
    status: str
    details: dict[str, Any] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    """Response for POST /api/v1/logs and POST /api/v1/logs/batch."""

    model_config = ConfigDict(frozen=True)

    entries_processed: int
    threats: list[ThreatResponse]


class SourceIpCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str
    count: int


class ThreatTypeCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    count: int


class ThreatStatisticsResponse(BaseModel):
    """Response for GET /api/v1/threats/statistics."""

    model_config = ConfigDict(frozen=True)

    total_threats: int
    recent_threats: int
    critical_threats: int
    high_threats: int
    medium_threats: int
    low_threats: int
    top_source_ips: list[SourceIpCount]
    threat_types: list[ThreatTypeCount]


# ---------------------------------------------------------------------------
# Compliance -- catalog
# ---------------------------------------------------------------------------


class ComplianceRequirementResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    description: str
    category: str
    severity: SeverityEnum
    checks: list[str]


class ComplianceStandardResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str
    version: str
    description: str
    requirements: list[ComplianceRequirementResponse]


# ---------------------------------------------------------------------------
# Compliance -- assessments
# ---------------------------------------------------------------------------


class AssessmentRequest(BaseModel):
    """Request body for POST /api/v1/compliance/assessments.

    Both fields are optional: no standards means the whole catalog, no
    target_systems means ["all"].
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    standards: Optional[list[str]] = Field(default=None, max_length=20)
    target_systems: Optional[list[str]] = Field(default=None, max_length=100)

    @field_validator("standards", mode="before")
    @classmethod
    def normalize_standards(cls, values: Optional[list]) -> Optional[list[str]]:
        """Uppercase and deduplicate standard ids while preserving order."""
        if values is None:
            return None
        return list(dict.fromkeys(str(v).strip().upper() for v in values))


class RequirementFindingResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    check_id: str
    description: str
    severity: str
    recommendation: str


class RequirementResultResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    requirement_id: str
    title: str
    category: str
    severity: str
    score: float
    status: str
    findings: list[RequirementFindingResponse]
    evidence: list[dict[str, Any]]
    error: Optional[str] = None


class StandardResultResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    standard_id: str
    standard_name: str
    version: str
    score: float
    status: str
    requirements: list[RequirementResultResponse]
    error: Optional[str] = None


class FindingResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    check_id: str
    description: str
    severity: str
    recommendation: str
    standard_id: str
    requirement_id: str
    requirement_title: str
    category: str


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    priority: str
    title: str
    description: str
    actions: list[str]
    impacted_standards: list[str]


class AssessmentResponse(BaseModel):
    """Full assessment tree as stored by the compliance monitor."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    assessment_id: str
    status: str
    start_time: datetime
    end_time: Optional[datetime]
    duration_seconds: Optional[float]
    standards: list[str]
    systems: list[str]
    overall_score: float
    compliance_level: str
    findings: list[FindingResponse]
    recommendations: list[RecommendationResponse]
    standard_results: list[StandardResultResponse]
    error: Optional[str] = None


class ComplianceHistoryPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime
    score: float
    level: str


class ComplianceDashboardResponse(BaseModel):
    """Response for GET /api/v1/compliance/dashboard."""

    model_config = ConfigDict(frozen=True)

    latest_assessment: Optional[AssessmentResponse]
    latest_assessment_id: Optional[str]
    overall_score: float
    compliance_level: str
    total_findings: int
    critical_findings: int
    standards_assessed: int
    last_assessment_date: Optional[datetime]
    compliance_history: list[ComplianceHistoryPoint]
    audit_trail_count: int


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    timestamp: datetime
    action: str
    actor: str
    detail: dict[str, Any]


class AuditPageResponse(BaseModel):
    """Response for GET /api/v1/audit -- newest entries first."""

    model_config = ConfigDict(frozen=True)

    total: int
    limit: int
    offset: int
    entries: list[AuditEntryResponse]
