"""
api/routes/v1/threats.py -- Read-only views of the threat registry.

Routes:
  GET /api/v1/threats/active      -- active threats in detection order
  GET /api/v1/threats/statistics  -- totals, severity counts, top IPs, types
"""

from fastapi import APIRouter, Depends, Request

from api.models import ThreatResponse, ThreatStatisticsResponse
from auth.dependencies import get_current_user
from detection.engine import ThreatDetectionEngine

# Auth policy:
# - GET /api/v1/threats/*: any authenticated user
router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/threats/active", response_model=list[ThreatResponse])
def active_threats(request: Request) -> list[ThreatResponse]:
    engine: ThreatDetectionEngine = request.app.state.threat_engine
    return [ThreatResponse.model_validate(t) for t in engine.get_active_threats()]


@router.get("/threats/statistics", response_model=ThreatStatisticsResponse)
def threat_statistics(request: Request) -> ThreatStatisticsResponse:
    engine: ThreatDetectionEngine = request.app.state.threat_engine
    return ThreatStatisticsResponse.model_validate(engine.get_threat_statistics())
