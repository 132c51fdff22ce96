"""
API route modules.

Import all route modules here for easy access.
"""

from app.api.routes import embeddings, insights, search

__all__ = ["embeddings", "insights", "search"]
