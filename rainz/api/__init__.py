"""FastAPI boundary for the Rainz forecast core."""
from .app import create_app

__all__ = ["create_app"]
