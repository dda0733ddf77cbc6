"""
compliance/scoring.py -- Threshold tables and bottom-up aggregation.

Pure functions, no state. Score thresholds (inclusive lower bounds):

  score   requirement/standard status   assessment level
  >= 95   COMPLIANT                     FULLY_COMPLIANT
  >= 80   LARGELY_COMPLIANT             LARGELY_COMPLIANT
  >= 60   PARTIALLY_COMPLIANT           PARTIALLY_COMPLIANT
  >= 40   NON_COMPLIANT                 MINIMALLY_COMPLIANT
  else    NON_COMPLIANT                 NON_COMPLIANT

The overall score is the flat mean of every requirement score across every
assessed standard, so a standard with more requirements weighs more.
"""

from core.models import SEVERITY_ORDER, Finding, Recommendation, StandardResult

MAX_RECOMMENDATION_ACTIONS = 5


def determine_requirement_status(score: float) -> str:
    if score >= 95:
        return "COMPLIANT"
    if score >= 80:
        return "LARGELY_COMPLIANT"
    if score >= 60:
        return "PARTIALLY_COMPLIANT"
    return "NON_COMPLIANT"


def determine_compliance_level(score: float) -> str:
    if score >= 95:
        return "FULLY_COMPLIANT"
    if score >= 80:
        return "LARGELY_COMPLIANT"
    if score >= 60:
        return "PARTIALLY_COMPLIANT"
    if score >= 40:
        return "MINIMALLY_COMPLIANT"
    return "NON_COMPLIANT"


def calculate_overall_score(standard_results: list[StandardResult]) -> float:
    scores = [req.score for std in standard_results for req in std.requirements]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def aggregate_findings(standard_results: list[StandardResult]) -> list[Finding]:
    """Flatten requirement findings and sort CRITICAL first.

    The sort is stable: equal severities keep catalog order.
    """
    findings = [
        Finding(
            check_id=f.check_id,
            description=f.description,
            severity=f.severity,
            recommendation=f.recommendation,
            standard_id=std.standard_id,
            requirement_id=req.requirement_id,
            requirement_title=req.title,
            category=req.category,
        )
        for std in standard_results
        for req in std.requirements
        for f in req.findings
    ]
    findings.sort(key=lambda f: SEVERITY_ORDER.get(f.severity, len(SEVERITY_ORDER)))
    return findings


def generate_recommendations(findings: list[Finding]) -> list[Recommendation]:
    """One bundle per severity present, in severity order."""
    groups: dict[str, list[Finding]] = {}
    for finding in findings:
        groups.setdefault(finding.severity, []).append(finding)

    recommendations = []
    for severity in sorted(groups, key=lambda s: SEVERITY_ORDER.get(s, len(SEVERITY_ORDER))):
        group = groups[severity]
        recommendations.append(
            Recommendation(
                priority=severity,
                title=f"Address {severity.lower()} compliance issues",
                description=f"{len(group)} {severity.lower()} compliance issues require attention",
                actions=[f.recommendation for f in group[:MAX_RECOMMENDATION_ACTIONS]],
                impacted_standards=list(dict.fromkeys(f.standard_id for f in group)),
            )
        )
    return recommendations
