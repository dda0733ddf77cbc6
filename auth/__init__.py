"""auth/ -- Authentication and authorization package for SentinelOps.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, detection/, compliance/ or audit/.
api/ imports from auth/, not the other way around.
"""
