"""
api/routes/v1/audit.py -- Paged view of the shared audit trail.

GET /api/v1/audit?limit=100&offset=0 returns entries newest first.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import AuditEntryResponse, AuditPageResponse
from audit.trail import AuditTrail
from auth.dependencies import require_admin

# Auth policy:
# - GET /api/v1/audit: admin only -- the trail records logins and responses
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/audit", response_model=AuditPageResponse)
def audit_trail(
    request: Request,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> AuditPageResponse:
    audit: AuditTrail = request.app.state.audit
    entries = audit.get_audit_trail(limit=limit, offset=offset)
    return AuditPageResponse(
        total=audit.count(),
        limit=limit,
        offset=offset,
        entries=[AuditEntryResponse.model_validate(e) for e in entries],
    )
