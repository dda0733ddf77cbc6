"""Unit tests for core/config.py -- Settings validation and environment mapping.

Covers:
- Production mode refuses to start without SECRET_KEY; short keys rejected
- DEBUG mode generates a signing key and a bootstrap admin password
- ML_CONFIDENCE_THRESHOLD alias and range validation
- Comma-separated list settings
"""

import pytest
from pydantic import ValidationError

from core.config import Settings

KEY = "k" * 40


def test_production_requires_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_is_rejected():
    with pytest.raises(ValidationError, match="at least 32"):
        Settings(secret_key="short")


def test_debug_generates_key_and_admin_password():
    s = Settings(debug=True, secret_key="", admin_password="")
    assert len(s.secret_key) >= 32
    assert s.admin_password


def test_confidence_threshold_env_alias(monkeypatch):
    monkeypatch.setenv("ML_CONFIDENCE_THRESHOLD", "0.7")
    assert Settings(secret_key=KEY).confidence_threshold == pytest.approx(0.7)


def test_confidence_threshold_range(monkeypatch):
    monkeypatch.setenv("ML_CONFIDENCE_THRESHOLD", "1.5")
    with pytest.raises(ValidationError):
        Settings(secret_key=KEY)


def test_defaults(monkeypatch):
    for name in ("ML_CONFIDENCE_THRESHOLD", "ENABLE_AUTO_RESPONSE", "AUTO_COMPLIANCE_SCAN", "MAX_BUFFER_SIZE"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(secret_key=KEY)
    assert s.confidence_threshold == pytest.approx(0.85)
    assert s.enable_auto_response is False
    assert s.auto_compliance_scan is False
    assert s.max_buffer_size == 10000
    assert s.compliance_check_timeout_seconds == 0


def test_list_settings_are_split_and_trimmed():
    s = Settings(
        secret_key=KEY,
        compliance_standards=" PCI_DSS, GDPR ,,",
        allowed_hosts="a.example,b.example",
    )
    assert s.compliance_standard_ids == ["PCI_DSS", "GDPR"]
    assert s.allowed_host_list == ["a.example", "b.example"]


def test_tiny_buffer_is_rejected():
    with pytest.raises(ValidationError):
        Settings(secret_key=KEY, max_buffer_size=5)
