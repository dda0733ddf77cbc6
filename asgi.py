"""
asgi.py -- ASGI entry point for SentinelOps.

Kept separate from api/main.py so process managers have one stable import
path regardless of how the api/ package is organised.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
