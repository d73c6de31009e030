"""
asgi.py -- ASGI entry point for the portfolio backend.

The import target for ASGI servers and process managers, so deployment
config does not need to know the app lives in api/main.py.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
