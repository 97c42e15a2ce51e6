"""HTTP surface for the Teams relay bot."""
from .routes import router

__all__ = ["router"]
