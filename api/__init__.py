"""API Package.

FastAPI server for the batch weight service.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
