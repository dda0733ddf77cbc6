"""
api/routes/v1/compliance.py -- Compliance catalog, assessments and dashboard.

Routes:
  GET  /api/v1/compliance/standards             -- catalog (standards -> requirements -> checks)
  POST /api/v1/compliance/assessments           -- run an assessment now (admin)
  GET  /api/v1/compliance/assessments/{id}      -- stored result, including running/failed
  GET  /api/v1/compliance/dashboard             -- latest completed assessment + history

The assessment route awaits the whole run. Requests naming a standard that
is not in the catalog are rejected up front with 422 rather than silently
skipped, which is what the monitor does for scheduled scans.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.limiter import limiter
from api.models import (
    AssessmentRequest,
    AssessmentResponse,
    ComplianceDashboardResponse,
    ComplianceStandardResponse,
    ErrorDetail,
)
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from compliance.monitor import ComplianceMonitor

logger = logging.getLogger("sentinelops.api")

# Auth policy:
# - GET  /api/v1/compliance/*:           any authenticated user
# - POST /api/v1/compliance/assessments: admin only -- runs checks against systems
router = APIRouter()


@router.get("/compliance/standards", response_model=list[ComplianceStandardResponse])
def list_standards(request: Request, user: User = Depends(get_current_user)) -> list[ComplianceStandardResponse]:
    monitor: ComplianceMonitor = request.app.state.compliance_monitor
    return [ComplianceStandardResponse.model_validate(s) for s in monitor.get_compliance_standards()]


@limiter.limit("10/minute")
@router.post("/compliance/assessments", response_model=AssessmentResponse, status_code=201)
async def run_assessment(
    request: Request,
    body: AssessmentRequest,
    user: User = Depends(require_admin),
) -> AssessmentResponse:
    monitor: ComplianceMonitor = request.app.state.compliance_monitor

    if body.standards:
        unknown = [s for s in body.standards if s not in monitor.standards]
        if unknown:
            raise HTTPException(
                status_code=422,
                detail=ErrorDetail(
                    code="unknown_standard",
                    message="Unknown compliance standard.",
                    detail=", ".join(unknown),
                ).model_dump(),
            )

    try:
        result = await monitor.perform_compliance_assessment(
            body.standards, body.target_systems, actor=user.username
        )
    except Exception as e:
        # Already logged with traceback by the monitor.
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(code="assessment_failed", message="Compliance assessment failed.", detail=str(e)).model_dump(),
        ) from e
    return AssessmentResponse.model_validate(result)


@router.get("/compliance/assessments/{assessment_id}", response_model=AssessmentResponse)
def get_assessment(
    request: Request,
    assessment_id: str,
    user: User = Depends(get_current_user),
) -> AssessmentResponse:
    monitor: ComplianceMonitor = request.app.state.compliance_monitor
    result = monitor.get_compliance_results(assessment_id)
    if result is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message=f"Assessment {assessment_id} not found.").model_dump(),
        )
    return AssessmentResponse.model_validate(result)


@router.get("/compliance/dashboard", response_model=ComplianceDashboardResponse)
def compliance_dashboard(request: Request, user: User = Depends(get_current_user)) -> ComplianceDashboardResponse:
    monitor: ComplianceMonitor = request.app.state.compliance_monitor
    dashboard = monitor.get_compliance_dashboard()
    latest = dashboard["latest_assessment"]
    dashboard["latest_assessment"] = AssessmentResponse.model_validate(latest) if latest is not None else None
    return ComplianceDashboardResponse.model_validate(dashboard)
