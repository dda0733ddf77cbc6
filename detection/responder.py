"""
detection/responder.py -- Automated response playbooks for detected threats.

The playbook table maps a pattern id to the actions taken when a threat of
that pattern arrives with auto-response enabled:

  BRUTE_FORCE     block the source IP for 15 minutes
  DDoS_PATTERN    activate rate limiting for the source
  SQL_INJECTION   block the source IP for 1 hour, then send a security alert

Patterns without a playbook get no action. Every executed playbook leaves an
AUTOMATED_RESPONSE record in the audit trail.

ResponseActions is the seam to real enforcement. The default implementation
logs block / rate-limit requests and, when ALERT_WEBHOOK_URL is set, POSTs
the threat as JSON to that webhook.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Optional, Protocol

import requests

from audit.trail import AuditTrail
from core.models import Threat

logger = logging.getLogger("sentinelops.detection.response")

BLOCK_SHORT_SECONDS = 15 * 60
BLOCK_LONG_SECONDS = 60 * 60


class ResponseActions(Protocol):
    def block_ip(self, ip: str, duration_seconds: int) -> None: ...

    def activate_rate_limiting(self, ip: str) -> None: ...

    def send_security_alert(self, threat: Threat) -> None: ...


# Module-level session shared by every alert delivery. Redirects capped at 3.
_session = requests.Session()
_session.max_redirects = 3


class LoggingResponseActions:
    """Default actions: enforcement is logged, alerts go to an optional webhook."""

    def __init__(self, webhook_url: str = "", timeout: float = 5.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    def block_ip(self, ip: str, duration_seconds: int) -> None:
        logger.warning("Blocking IP %s for %d seconds", ip, duration_seconds)

    def activate_rate_limiting(self, ip: str) -> None:
        logger.warning("Activating rate limiting for %s", ip)

    def send_security_alert(self, threat: Threat) -> None:
        if not self.webhook_url:
            logger.warning("Security alert: %s (%s) from %s", threat.type, threat.severity, threat.source_ip)
            return
        body = json.dumps(asdict(threat), default=str)
        try:
            resp = _session.post(
                self.webhook_url,
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Security alert webhook failed for %s: %s", threat.id, e)


# ---------------------------------------------------------------------------
# Playbooks
# ---------------------------------------------------------------------------

Playbook = Callable[[ResponseActions, Threat], list[str]]


def _block_short(actions: ResponseActions, threat: Threat) -> list[str]:
    actions.block_ip(threat.source_ip or "unknown", BLOCK_SHORT_SECONDS)
    return [f"block_ip:{BLOCK_SHORT_SECONDS}s"]


def _rate_limit(actions: ResponseActions, threat: Threat) -> list[str]:
    actions.activate_rate_limiting(threat.source_ip or "unknown")
    return ["rate_limit"]


def _block_and_alert(actions: ResponseActions, threat: Threat) -> list[str]:
    actions.block_ip(threat.source_ip or "unknown", BLOCK_LONG_SECONDS)
    actions.send_security_alert(threat)
    return [f"block_ip:{BLOCK_LONG_SECONDS}s", "security_alert"]


PLAYBOOKS: dict[str, Playbook] = {
    "BRUTE_FORCE": _block_short,
    "DDoS_PATTERN": _rate_limit,
    "SQL_INJECTION": _block_and_alert,
}


class AutomatedResponder:
    def __init__(self, actions: ResponseActions, audit: Optional[AuditTrail] = None) -> None:
        self.actions = actions
        self.audit = audit

    def respond(self, threat: Threat) -> list[str]:
        """Run the playbook for threat's pattern. Returns the actions taken.

        Errors are logged and swallowed: a broken enforcement hook must not
        affect detection.
        """
        playbook = PLAYBOOKS.get(threat.pattern_id or "")
        if playbook is None:
            return []
        try:
            taken = playbook(self.actions, threat)
        except Exception:
            logger.exception("Automated response failed for threat %s", threat.id)
            return []
        logger.info("Automated response for %s: %s", threat.id, ", ".join(taken))
        if self.audit is not None:
            self.audit.add_audit_entry(
                "AUTOMATED_RESPONSE",
                {
                    "threat_id": threat.id,
                    "pattern_id": threat.pattern_id,
                    "source_ip": threat.source_ip,
                    "actions": taken,
                },
            )
        return taken
