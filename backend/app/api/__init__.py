"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from app.api.routes import embeddings, insights, search

# Create main API router
api_router = APIRouter()

# Smart search
api_router.include_router(search.router)

# Embedding maintenance
api_router.include_router(embeddings.router)

# Platform insight sync
api_router.include_router(insights.router)
