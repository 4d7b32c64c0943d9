"""
FastAPI cart application that runs the promotion handler on cart changes.
"""

from api.main import app

__all__ = ["app"]
