"""
compliance/monitor.py -- ComplianceMonitor: assessment runner, results store and jobs.

perform_compliance_assessment() walks the catalog top-down and aggregates
bottom-up:

  check        -> ComplianceCheckResult   (injected ComplianceChecker)
  requirement  -> passes / checks * 100
  standard     -> sum(requirement scores) / (100 * requirements) * 100
  assessment   -> flat mean of every requirement score

Failures are contained at the smallest scope that can absorb them:

  check        exception or timeout becomes a synthetic failing result
  requirement  status ERROR with the message, siblings continue
  standard     status ERROR with the message, siblings continue
  assessment   stored result marked "failed", exception re-raised

The AssessmentResult is stored by id as soon as it exists (status
"running"), so a caller polling get_compliance_results() can watch it.

Concurrency: the results store is guarded by an RLock that is never held
across an await. Checks within a requirement are awaited one at a time.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Any, Optional

from audit.trail import AuditTrail
from compliance.catalog import STANDARDS, STANDARDS_BY_ID
from compliance.checks import ComplianceChecker, SimulatedComplianceChecker
from compliance.scoring import (
    aggregate_findings,
    calculate_overall_score,
    determine_compliance_level,
    determine_requirement_status,
    generate_recommendations,
)
from core.config import Settings
from core.models import (
    AssessmentResult,
    ComplianceCheckResult,
    ComplianceRequirement,
    ComplianceStandard,
    RequirementFinding,
    RequirementResult,
    StandardResult,
)
from core.scheduler import PeriodicJob, stop_all

logger = logging.getLogger("sentinelops.compliance")

DASHBOARD_WINDOW = timedelta(days=30)
DASHBOARD_HISTORY = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComplianceMonitor:
    def __init__(
        self,
        settings: Settings,
        audit: Optional[AuditTrail] = None,
        checker: Optional[ComplianceChecker] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.audit = audit if audit is not None else AuditTrail(clock=clock)
        self.checker = checker or SimulatedComplianceChecker()
        self.clock = clock
        self.standards: dict[str, ComplianceStandard] = dict(STANDARDS_BY_ID)

        self._results: dict[str, AssessmentResult] = {}
        self._lock = RLock()
        self.jobs = [
            PeriodicJob(
                "compliance-scan",
                settings.compliance_scan_interval_seconds,
                self.run_scheduled_compliance_checks,
            ),
            PeriodicJob("audit-cleanup", settings.audit_cleanup_interval_seconds, self.audit.cleanup),
        ]
        logger.info("Loaded %d compliance standards", len(self.standards))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        for job in self.jobs:
            job.start()
        logger.info("Compliance monitoring started")

    async def stop(self) -> None:
        await stop_all(self.jobs)
        logger.info("Compliance monitoring stopped")

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    async def perform_compliance_assessment(
        self,
        standard_ids: Optional[list[str]] = None,
        target_systems: Optional[list[str]] = None,
        actor: Optional[str] = None,
    ) -> AssessmentResult:
        """Assess standard_ids (default: whole catalog) and return the stored result.

        Unknown standard ids are logged and skipped. Raises whatever the
        aggregation step raises, after marking the stored result failed.
        """
        requested = list(standard_ids) if standard_ids else [s.id for s in STANDARDS]
        systems = list(target_systems) if target_systems else ["all"]
        result = AssessmentResult(
            assessment_id=f"assessment_{uuid.uuid4().hex[:12]}",
            start_time=self.clock(),
            standards=requested,
            systems=systems,
        )
        with self._lock:
            self._results[result.assessment_id] = result
        logger.info(
            "Starting compliance assessment %s (standards=%s systems=%s)",
            result.assessment_id,
            ",".join(requested),
            ",".join(systems),
        )

        try:
            standard_results = []
            for standard_id in requested:
                standard = self.standards.get(standard_id)
                if standard is None:
                    logger.warning("Unknown compliance standard %r skipped", standard_id)
                    continue
                standard_results.append(await self.assess_standard(standard, systems))

            overall = calculate_overall_score(standard_results)
            findings = aggregate_findings(standard_results)
            recommendations = generate_recommendations(findings)
            end_time = self.clock()

            with self._lock:
                result.standard_results = standard_results
                result.overall_score = overall
                result.compliance_level = determine_compliance_level(overall)
                result.findings = findings
                result.recommendations = recommendations
                result.status = "completed"
                result.end_time = end_time
                result.duration_seconds = (end_time - result.start_time).total_seconds()

            self.audit.add_audit_entry(
                "COMPLIANCE_ASSESSMENT_COMPLETED",
                {
                    "assessment_id": result.assessment_id,
                    "standards": requested,
                    "score": overall,
                    "level": result.compliance_level,
                    "findings": len(findings),
                },
                actor=actor,
            )
        except Exception as e:
            logger.exception("Compliance assessment %s failed", result.assessment_id)
            with self._lock:
                result.status = "failed"
                result.error = str(e)
                result.end_time = self.clock()
            raise

        logger.info(
            "Compliance assessment %s completed: score=%.1f level=%s findings=%d",
            result.assessment_id,
            result.overall_score,
            result.compliance_level,
            len(result.findings),
        )
        return result

    async def assess_standard(self, standard: ComplianceStandard, target_systems: list[str]) -> StandardResult:
        result = StandardResult(standard_id=standard.id, standard_name=standard.name, version=standard.version)
        try:
            for requirement in standard.requirements:
                result.requirements.append(await self.assess_requirement(requirement, target_systems))
            max_possible = 100 * len(result.requirements)
            total = sum(r.score for r in result.requirements)
            result.score = total / max_possible * 100 if max_possible else 0.0
            result.status = determine_requirement_status(result.score)
        except Exception as e:
            logger.exception("Standard assessment failed for %s", standard.id)
            result.status = "ERROR"
            result.error = str(e)
        return result

    async def assess_requirement(
        self, requirement: ComplianceRequirement, target_systems: list[str]
    ) -> RequirementResult:
        result = RequirementResult(
            requirement_id=requirement.id,
            title=requirement.title,
            category=requirement.category,
            severity=requirement.severity,
        )
        try:
            passed = 0
            for check_id in requirement.checks:
                check = await self.perform_compliance_check(check_id, requirement, target_systems)
                if check.passed:
                    passed += 1
                else:
                    result.findings.append(
                        RequirementFinding(
                            check_id=check_id,
                            description=check.description,
                            severity=check.severity or requirement.severity,
                            recommendation=check.recommendation,
                        )
                    )
                if check.evidence:
                    result.evidence.append(check.evidence)
            total = len(requirement.checks)
            result.score = passed / total * 100 if total else 0.0
            result.status = determine_requirement_status(result.score)
        except Exception as e:
            logger.exception("Requirement assessment failed for %s", requirement.id)
            result.status = "ERROR"
            result.error = str(e)
        return result

    async def perform_compliance_check(
        self, check_id: str, requirement: ComplianceRequirement, target_systems: list[str]
    ) -> ComplianceCheckResult:
        """Run one check through the checker. Never raises."""
        timeout = self.settings.compliance_check_timeout_seconds
        try:
            call = self.checker.check(check_id, requirement, target_systems)
            if timeout > 0:
                return await asyncio.wait_for(call, timeout=timeout)
            return await call
        except asyncio.TimeoutError:
            logger.warning("Compliance check %s timed out after %.1fs", check_id, timeout)
            return ComplianceCheckResult(
                passed=False,
                description=f"Check timed out after {timeout:g} seconds",
                severity="HIGH",
                recommendation="Review system configuration and resolve technical issues",
                evidence={"check_type": check_id, "result": "TIMEOUT", "details": f"No answer within {timeout:g}s"},
            )
        except Exception as e:
            logger.exception("Compliance check failed for %s", check_id)
            return ComplianceCheckResult(
                passed=False,
                description=f"Check failed due to error: {e}",
                severity="HIGH",
                recommendation="Review system configuration and resolve technical issues",
            )

    async def run_scheduled_compliance_checks(self) -> Optional[AssessmentResult]:
        """Scheduled full scan. Does nothing unless AUTO_COMPLIANCE_SCAN is set."""
        if not self.settings.auto_compliance_scan:
            logger.debug("Scheduled compliance scan skipped: AUTO_COMPLIANCE_SCAN is off")
            return None
        logger.info("Running scheduled compliance checks")
        try:
            return await self.perform_compliance_assessment(self.settings.compliance_standard_ids)
        except Exception:
            logger.exception("Scheduled compliance checks failed")
            return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_compliance_results(self, assessment_id: str) -> Optional[AssessmentResult]:
        with self._lock:
            return self._results.get(assessment_id)

    def get_compliance_standards(self) -> list[ComplianceStandard]:
        return list(self.standards.values())

    def get_compliance_dashboard(self) -> dict[str, Any]:
        """Summary of the newest assessment started in the last 30 days, whatever
        its status, plus the score history of that window.
        """
        cutoff = self.clock() - DASHBOARD_WINDOW
        with self._lock:
            recent = [r for r in self._results.values() if r.start_time > cutoff]
        recent.sort(key=lambda r: r.start_time, reverse=True)
        latest = recent[0] if recent else None

        return {
            "latest_assessment": latest,
            "latest_assessment_id": latest.assessment_id if latest else None,
            "overall_score": latest.overall_score if latest else 0.0,
            "compliance_level": latest.compliance_level if latest else "UNKNOWN",
            "total_findings": len(latest.findings) if latest else 0,
            "critical_findings": sum(1 for f in latest.findings if f.severity == "CRITICAL") if latest else 0,
            "standards_assessed": len(latest.standards) if latest else 0,
            "last_assessment_date": latest.start_time if latest else None,
            "compliance_history": [
                {"date": r.start_time, "score": r.overall_score, "level": r.compliance_level}
                for r in recent[:DASHBOARD_HISTORY]
            ],
            "audit_trail_count": self.audit.count(),
        }
