"""
api/routes/v1/logs.py -- Log ingestion endpoints.

Routes:
  POST /api/v1/logs        -- ingest one entry, return the threats it raised
  POST /api/v1/logs/batch  -- ingest up to 500 entries in order

Handlers are plain `def`: ThreatDetectionEngine is synchronous and
lock-guarded, so FastAPI runs these on its thread pool.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from api.limiter import limiter
from api.models import IngestResponse, LogBatchRequest, ThreatResponse
from auth.dependencies import require_analyst
from detection.engine import ThreatDetectionEngine

# Auth policy:
# - POST /api/v1/logs, /api/v1/logs/batch: analyst or admin -- ingestion feeds
#   the threat registry and can trigger automated response.
router = APIRouter(dependencies=[Depends(require_analyst)])


@limiter.limit("600/minute")
@router.post("/logs", response_model=IngestResponse)
def ingest_log(request: Request, entry: dict[str, Any] = Body(...)) -> IngestResponse:
    engine: ThreatDetectionEngine = request.app.state.threat_engine
    threats = engine.analyze_log_entry(entry)
    return IngestResponse(
        entries_processed=1,
        threats=[ThreatResponse.model_validate(t) for t in threats],
    )


@limiter.limit("60/minute")
@router.post("/logs/batch", response_model=IngestResponse)
def ingest_log_batch(request: Request, body: LogBatchRequest) -> IngestResponse:
    engine: ThreatDetectionEngine = request.app.state.threat_engine
    threats = []
    for entry in body.entries:
        threats.extend(engine.analyze_log_entry(entry))
    return IngestResponse(
        entries_processed=len(body.entries),
        threats=[ThreatResponse.model_validate(t) for t in threats],
    )
