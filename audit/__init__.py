"""audit/ -- Append-only, bounded audit trail shared by both engines.

Layer rule: audit/ imports only from core/. detection/, compliance/ and api/
import from audit/, not the other way around.
"""
