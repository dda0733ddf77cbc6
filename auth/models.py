"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors core/models.py:
dataclasses own domain shape; the store and routes do the work.

Layer rule: no imports from api/, detection/, compliance/ or audit/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_ANALYST = "analyst"
ROLE_VIEWER = "viewer"
ROLES = (ROLE_ADMIN, ROLE_ANALYST, ROLE_VIEWER)


@dataclass
class User:
    """An identity allowed to call the API.

    admin    everything, including assessments and the audit trail
    analyst  ingest logs and read threats / compliance results
    viewer   read-only
    """

    username: str
    role: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
