"""Unit tests for compliance/scoring.py and compliance/catalog.py.

Covers:
- Status / level threshold tables, including the inclusive lower bounds
- Overall score is the flat mean of requirement scores
- Findings sorted CRITICAL first, stable within a severity
- One recommendation bundle per severity, at most 5 actions
- Catalog shape
"""

import pytest

from compliance.catalog import STANDARDS, get_standard
from compliance.scoring import (
    aggregate_findings,
    calculate_overall_score,
    determine_compliance_level,
    determine_requirement_status,
    generate_recommendations,
)
from core.models import RequirementFinding, RequirementResult, StandardResult


def _req(req_id: str, score: float, findings: list[tuple[str, str]] = ()) -> RequirementResult:
    return RequirementResult(
        requirement_id=req_id,
        title=f"Requirement {req_id}",
        category="Test",
        severity="HIGH",
        score=score,
        findings=[RequirementFinding(check_id=c, description=c, severity=s, recommendation=f"fix {c}") for c, s in findings],
    )


def _std(std_id: str, *reqs: RequirementResult) -> StandardResult:
    return StandardResult(standard_id=std_id, standard_name=std_id, version="1", requirements=list(reqs))


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "score,status",
    [(100, "COMPLIANT"), (95, "COMPLIANT"), (94.9, "LARGELY_COMPLIANT"), (80, "LARGELY_COMPLIANT"),
     (60, "PARTIALLY_COMPLIANT"), (59.9, "NON_COMPLIANT"), (0, "NON_COMPLIANT")],
)
def test_requirement_status(score, status):
    assert determine_requirement_status(score) == status


@pytest.mark.parametrize(
    "score,level",
    [(95, "FULLY_COMPLIANT"), (80, "LARGELY_COMPLIANT"), (60, "PARTIALLY_COMPLIANT"),
     (40, "MINIMALLY_COMPLIANT"), (39.9, "NON_COMPLIANT")],
)
def test_compliance_level(score, level):
    assert determine_compliance_level(score) == level


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def test_overall_score_is_flat_mean_over_requirements():
    results = [_std("A", _req("a1", 100), _req("a2", 80)), _std("B", _req("b1", 60), _req("b2", 40))]
    assert calculate_overall_score(results) == pytest.approx(70.0)


def test_overall_score_weights_by_requirement_count():
    results = [_std("A", _req("a1", 100)), _std("B", _req("b1", 0), _req("b2", 0), _req("b3", 0))]
    assert calculate_overall_score(results) == pytest.approx(25.0)


def test_overall_score_of_nothing_is_zero():
    assert calculate_overall_score([]) == 0.0


def test_findings_sorted_by_severity_and_stable():
    results = [
        _std("A", _req("a1", 0, [("m1", "MEDIUM"), ("h1", "HIGH")])),
        _std("B", _req("b1", 0, [("c1", "CRITICAL"), ("h2", "HIGH")])),
    ]
    findings = aggregate_findings(results)

    assert [f.check_id for f in findings] == ["c1", "h1", "h2", "m1"]
    assert findings[0].standard_id == "B"
    assert findings[0].requirement_title == "Requirement b1"


def test_recommendations_one_per_severity():
    results = [
        _std("A", _req("a1", 0, [(f"h{i}", "HIGH") for i in range(7)])),
        _std("B", _req("b1", 0, [("c1", "CRITICAL"), ("h9", "HIGH")])),
    ]
    recs = generate_recommendations(aggregate_findings(results))

    assert [r.priority for r in recs] == ["CRITICAL", "HIGH"]
    high = recs[1]
    assert high.title == "Address high compliance issues"
    assert high.description == "8 high compliance issues require attention"
    assert len(high.actions) == 5
    assert high.impacted_standards == ["A", "B"]


def test_no_findings_no_recommendations():
    assert generate_recommendations([]) == []


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def test_catalog_shape():
    assert [s.id for s in STANDARDS] == ["PCI_DSS", "GDPR", "SOC2", "HIPAA"]
    pci = get_standard("PCI_DSS")
    assert pci.version == "4.0"
    assert len(pci.requirements) == 5
    assert pci.requirements[0].checks == (
        "firewall_configured",
        "default_passwords_changed",
        "unnecessary_services_disabled",
    )


def test_unknown_standard_lookup():
    assert get_standard("ISO_27001") is None
