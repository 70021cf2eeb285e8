"""
asgi.py -- Process entry point for the Users API.

Run with:  uvicorn asgi:app --reload

Configuration comes from the environment (see core/config.py). At minimum
set SECRET_KEY (32+ characters), or DEBUG=true for a throwaway dev key.
"""

from api.main import app

__all__ = ["app"]
