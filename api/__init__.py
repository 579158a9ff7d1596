"""
FastAPI application exposing the IP range filter (`api.main:app`).
"""

__all__ = ["main"]
