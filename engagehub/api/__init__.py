"""
engagehub.api - FastAPI REST API

Adapter health, metrics and rollout administration, plus demo routes
served through the adapter factory.

Usage:
    uvicorn engagehub.api.main:app --reload
"""

from engagehub.api.main import app, create_app

__all__ = ["app", "create_app"]
