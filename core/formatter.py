"""
formatter.py -- Renders threats, statistics and compliance assessments to terminal output or JSON.
"""

import json
import os
import re
import sys
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

from .models import SEVERITY_ORDER, AssessmentResult, ComplianceStandard, Threat

W = 68  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR (https://no-color.org) and FORCE_COLOR.
    disable_color() / enable_color() override both.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def enable_color() -> None:
    global _color_enabled
    _color_enabled = True


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers -- return empty string when color is off
# ---------------------------------------------------------------------------

SEVERITY_COLORS = {
    "CRITICAL": "\033[91m",  # red
    "HIGH": "\033[93m",  # yellow
    "MEDIUM": "\033[94m",  # blue
    "LOW": "\033[92m",  # green
    "INFO": "\033[2m",  # dim
}

LEVEL_COLORS = {
    "FULLY_COMPLIANT": "\033[92m",
    "LARGELY_COMPLIANT": "\033[92m",
    "PARTIALLY_COMPLIANT": "\033[93m",
    "MINIMALLY_COMPLIANT": "\033[91m",
    "NON_COMPLIANT": "\033[91m",
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _s_color(severity: str) -> str:
    return SEVERITY_COLORS.get(severity, "") if _color_active() else ""


def _l_color(level: str) -> str:
    return LEVEL_COLORS.get(level, "") if _color_active() else ""


# ---------------------------------------------------------------------------
# Layout helpers
# ---------------------------------------------------------------------------


def _bar(char: str = "═") -> str:
    return char * W


def _section(title: str) -> str:
    bold = _bold()
    reset = _reset()
    return f"\n  {bold}{title}{reset}\n  {'─' * (W - 2)}"


def _wrap(text: str, indent: int = 4, width: int = W) -> str:
    """Simple word-wrap at `width` chars with leading indent."""
    words = text.split()
    lines = []
    line = " " * indent
    for word in words:
        if len(line) + len(word) + 1 > width:
            lines.append(line)
            line = " " * indent + word
        else:
            line += ("" if line.strip() == "" else " ") + word
    if line.strip():
        lines.append(line)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Threats
# ---------------------------------------------------------------------------


def print_threats(threats: list[Threat]) -> None:
    """One line per threat, most severe first, detection order within a severity."""
    bold = _bold()
    reset = _reset()

    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}THREATS -- {len(threats)} detected{reset}")
    print(f"{bold}{_bar()}{reset}")
    if not threats:
        print("\n    No threats detected.")
        print(f"\n{_bar()}\n")
        return

    for threat in sorted(threats, key=lambda t: SEVERITY_ORDER.get(t.severity, len(SEVERITY_ORDER))):
        color = _s_color(threat.severity)
        source = threat.source_ip or "-"
        print(f"\n  {color}{bold}{threat.severity:<9}{reset} {threat.score:>5.2f}  {threat.type}")
        print(f"    source {source}   confidence {threat.confidence:.2f}   id {threat.id}")
        print(_wrap(threat.description, indent=4))
    print(f"\n{_bar()}\n")


def print_threat_statistics(stats: dict[str, Any]) -> None:
    print(_section("THREAT STATISTICS"))
    print(f"    Total            {stats['total_threats']}")
    print(f"    Last 24 hours    {stats['recent_threats']}")
    for severity in ("CRITICAL", "HIGH", "MEDIUM", "LOW"):
        color = _s_color(severity)
        print(f"    {color}{severity:<16}{_reset()} {stats[f'{severity.lower()}_threats']}")

    if stats["top_source_ips"]:
        print(_section("TOP SOURCE IPS"))
        for row in stats["top_source_ips"]:
            print(f"    {row['ip']:<40} {row['count']:>5}")

    if stats["threat_types"]:
        print(_section("THREAT TYPES"))
        for row in stats["threat_types"]:
            print(f"    {row['type']:<40} {row['count']:>5}")
    print()


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------


def print_assessment(result: AssessmentResult) -> None:
    bold = _bold()
    reset = _reset()
    dim = _dim()
    l_color = _l_color(result.compliance_level)

    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}COMPLIANCE ASSESSMENT{reset}  │  {result.assessment_id}")
    print(f"{bold}{_bar()}{reset}")

    print(_section("OVERALL"))
    print(f"    Score    {l_color}{bold}{result.overall_score:.1f} / 100{reset}")
    print(f"    Level    {l_color}{bold}{result.compliance_level}{reset}")
    print(f"    Status   {result.status}")
    if result.duration_seconds is not None:
        print(f"    {dim}Completed in {result.duration_seconds:.2f}s{reset}")

    print(_section("STANDARDS"))
    for std in result.standard_results:
        print(f"    {bold}{std.standard_id:<10}{reset} {std.score:>6.1f}  {std.status}")
        for req in std.requirements:
            marker = "✓" if not req.findings and req.status != "ERROR" else "✗"
            print(f"      {marker} {req.requirement_id:<18} {req.score:>6.1f}  {req.title[:36]}")

    if result.findings:
        print(_section(f"FINDINGS ({len(result.findings)})"))
        for finding in result.findings:
            color = _s_color(finding.severity)
            print(f"    {color}{finding.severity:<9}{reset} {finding.standard_id}/{finding.requirement_id}")
            print(_wrap(finding.description, indent=6))

    if result.recommendations:
        print(_section("RECOMMENDATIONS"))
        for rec in result.recommendations:
            color = _s_color(rec.priority)
            print(f"\n    {color}{bold}{rec.title}{reset}  {dim}({', '.join(rec.impacted_standards)}){reset}")
            print(_wrap(rec.description, indent=6))
            for action in rec.actions:
                print(_wrap(f"• {action}", indent=6))

    print(f"\n{_bar()}\n")


def print_standards(standards: list[ComplianceStandard]) -> None:
    bold = _bold()
    reset = _reset()
    dim = _dim()
    for std in standards:
        print(f"\n  {bold}{std.id}{reset}  {std.name} ({std.version})")
        print(f"  {dim}{std.description}{reset}")
        for req in std.requirements:
            color = _s_color(req.severity)
            print(f"    {req.id:<18} {color}{req.severity:<9}{reset} {req.title}")
            print(f"      {dim}checks: {', '.join(req.checks)}{reset}")
    print()


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def to_json(obj: Any) -> str:
    """Serialize a domain dataclass (or list / dict of them) to indented JSON.

    datetimes are written as ISO-8601 strings; compiled regexes as their pattern.
    """

    def _default(value: Any) -> Any:
        if hasattr(value, "isoformat"):
            return value.isoformat()
        if isinstance(value, re.Pattern):
            return value.pattern
        return str(value)

    def _plain(value: Any) -> Any:
        if is_dataclass(value) and not isinstance(value, type):
            return asdict(value)
        if isinstance(value, list):
            return [_plain(v) for v in value]
        if isinstance(value, dict):
            return {k: _plain(v) for k, v in value.items()}
        return value

    return json.dumps(_plain(obj), indent=2, default=_default)
