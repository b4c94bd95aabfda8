"""Routers module - API endpoints"""

from . import config, optimize, review

__all__ = ["config", "optimize", "review"]
