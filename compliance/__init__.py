"""compliance/ -- Hierarchical compliance assessment engine.

Layer rule: compliance/ imports from core/ and audit/ only. api/ and the CLI
import from compliance/, never the other way around.
"""
