"""detection/ -- Real-time threat and anomaly detection engine.

Layer rule: detection/ imports from core/ and audit/ only. api/ and the CLI
import from detection/, never the other way around.
"""
