"""Unit tests for detection/responder.py -- playbooks and default actions.

Covers:
- Playbook table: BRUTE_FORCE, DDoS_PATTERN, SQL_INJECTION; others do nothing
- Every executed playbook is audited; failures are logged, not raised
- Webhook alerts POST the threat as JSON; request errors are swallowed
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests

from audit.trail import AuditTrail
from core.models import Threat
from detection.responder import AutomatedResponder, LoggingResponseActions


def _threat(pattern_id: str | None, severity: str = "CRITICAL") -> Threat:
    return Threat(
        id="threat_abc123def456",
        pattern_id=pattern_id,
        type="test",
        description="test threat",
        severity=severity,
        score=9.0,
        confidence=0.9,
        detected_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        source_ip="198.51.100.4",
    )


def _responder(audit: AuditTrail | None = None) -> tuple[AutomatedResponder, MagicMock]:
    actions = MagicMock()
    return AutomatedResponder(actions, audit), actions


# ---------------------------------------------------------------------------
# Playbooks
# ---------------------------------------------------------------------------


def test_brute_force_blocks_for_fifteen_minutes():
    responder, actions = _responder()
    assert responder.respond(_threat("BRUTE_FORCE")) == ["block_ip:900s"]
    actions.block_ip.assert_called_once_with("198.51.100.4", 900)


def test_ddos_activates_rate_limiting():
    responder, actions = _responder()
    assert responder.respond(_threat("DDoS_PATTERN")) == ["rate_limit"]
    actions.activate_rate_limiting.assert_called_once_with("198.51.100.4")


def test_sql_injection_blocks_for_an_hour_and_alerts():
    responder, actions = _responder()
    threat = _threat("SQL_INJECTION")
    assert responder.respond(threat) == ["block_ip:3600s", "security_alert"]
    actions.block_ip.assert_called_once_with("198.51.100.4", 3600)
    actions.send_security_alert.assert_called_once_with(threat)


def test_patterns_without_playbook_do_nothing():
    audit = AuditTrail()
    responder, actions = _responder(audit)
    assert responder.respond(_threat("DATA_EXFILTRATION")) == []
    assert responder.respond(_threat(None)) == []
    assert actions.method_calls == []
    assert audit.count() == 0


def test_executed_playbook_is_audited():
    audit = AuditTrail()
    responder, _ = _responder(audit)
    responder.respond(_threat("BRUTE_FORCE"))

    entry = audit.get_audit_trail()[0]
    assert entry.action == "AUTOMATED_RESPONSE"
    assert entry.actor == "system"
    assert entry.detail == {
        "threat_id": "threat_abc123def456",
        "pattern_id": "BRUTE_FORCE",
        "source_ip": "198.51.100.4",
        "actions": ["block_ip:900s"],
    }


def test_failing_action_is_contained():
    audit = AuditTrail()
    responder, actions = _responder(audit)
    actions.block_ip.side_effect = RuntimeError("firewall API down")
    assert responder.respond(_threat("SQL_INJECTION")) == []
    assert audit.count() == 0


# ---------------------------------------------------------------------------
# Default actions
# ---------------------------------------------------------------------------


def test_alert_without_webhook_only_logs():
    with patch("detection.responder._session") as session:
        LoggingResponseActions().send_security_alert(_threat("SQL_INJECTION"))
    session.post.assert_not_called()


def test_alert_posts_threat_json_to_webhook():
    with patch("detection.responder._session") as session:
        LoggingResponseActions("https://hooks.example.test/alert", timeout=2.0).send_security_alert(
            _threat("SQL_INJECTION")
        )

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args == ("https://hooks.example.test/alert",)
    assert kwargs["timeout"] == 2.0
    body = json.loads(kwargs["data"])
    assert body["id"] == "threat_abc123def456"
    assert body["detected_at"].startswith("2024-03-01")


def test_webhook_errors_are_swallowed():
    with patch("detection.responder._session") as session:
        session.post.side_effect = requests.ConnectionError("unreachable")
        LoggingResponseActions("https://hooks.example.test/alert").send_security_alert(_threat("SQL_INJECTION"))
