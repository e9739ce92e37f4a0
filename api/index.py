"""Vercel serverless entry point.

The Python runtime picks up the ASGI ``app`` exported here for every request
under /api/*. Routing happens inside the FastAPI application.
"""

from app.main import app  # noqa: F401
