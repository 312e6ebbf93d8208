"""
engagehub.api.v1.endpoints - API Endpoints

Contains all v1 API endpoint modules.
"""

from engagehub.api.v1.endpoints import adapters, demo

__all__ = ["adapters", "demo"]
